# services/kitchen_display/connections.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Coroutine, Dict, List, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

_background_tasks: Set[asyncio.Task] = set()


def fire_and_forget(coro: Coroutine[Any, Any, Any]) -> None:
    """Schedules ``coro`` on the running loop; drops it when there is no loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        return
    task = loop.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, event: str, data: Dict[str, Any]) -> None:
        message = json.dumps({"event": event, "data": data})
        for conn in list(self.active_connections):
            try:
                await conn.send_text(message)
            except Exception as e:
                logger.warning("Dropping kitchen connection after send failure: %s", e)
                self.disconnect(conn)
