# services/kitchen_display/notifier.py
from __future__ import annotations

import logging
from typing import FrozenSet

from .connections import ConnectionManager, fire_and_forget

logger = logging.getLogger(__name__)


class LogNotifier:
    def notify(self, new_ids: FrozenSet[str]) -> None:
        logger.info("%d new order(s) in kitchen: %s", len(new_ids), ", ".join(sorted(new_ids)))


class BroadcastNotifier(LogNotifier):
    """Sends a ``new_orders`` chime to every connected kitchen screen without waiting on it."""

    def __init__(self, connections: ConnectionManager) -> None:
        self.connections = connections

    def notify(self, new_ids: FrozenSet[str]) -> None:
        super().notify(new_ids)
        if self.connections.active_connections:
            fire_and_forget(self.connections.broadcast("new_orders", {"orderIds": sorted(new_ids)}))
