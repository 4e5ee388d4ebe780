from __future__ import annotations

import json

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, WebSocket, WebSocketDisconnect

from services.kitchen_display.connections import fire_and_forget
from services.kitchen_display.init_services import KitchenServices

router = APIRouter()


def get_services() -> KitchenServices:
    """
    This should be overridden in app/main.py so the API shares the services the adapters feed.
    """
    raise RuntimeError("KitchenServices dependency is not configured")


@router.get("/health")
def health_check():
    return {"status": "healthy"}


@router.get("/kitchen/board")
async def kitchen_board(services: KitchenServices = Depends(get_services)):
    return services.display.board.model_dump()


@router.post("/kitchen/orders/{order_id}/ready", status_code=202)
async def mark_order_ready(order_id: str, background_tasks: BackgroundTasks, services: KitchenServices = Depends(get_services)):
    order = services.store.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    # lock now so a second press arriving before the task runs gets 409
    if not services.handler.claim(order):
        raise HTTPException(status_code=409, detail="order is already being marked ready")

    background_tasks.add_task(services.handler.send_ready, order)
    return {"orderId": order_id, "processing": True}


@router.websocket("/ws/kitchen")
async def kitchen_socket(websocket: WebSocket, services: KitchenServices = Depends(get_services)):
    await services.connections.connect(websocket)
    await websocket.send_text(json.dumps({"event": "board", "data": services.display.board.model_dump()}))
    try:
        while True:
            message = await websocket.receive_text()
            _handle_screen_message(message, services)
    except WebSocketDisconnect:
        services.connections.disconnect(websocket)


def _handle_screen_message(message: str, services: KitchenServices) -> None:
    # Screens press "Mark as Ready" by sending {"action": "ready", "orderId": ...}
    try:
        data = json.loads(message)
    except ValueError:
        return
    if not isinstance(data, dict) or data.get("action") != "ready":
        return

    order = services.store.get(str(data.get("orderId", "")))
    if order is not None:
        fire_and_forget(services.handler.mark_ready(order))
