# services/kitchen_display/action_handler.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, FrozenSet, List, Set

from libs.kafka_common.models import Order, OrderStatus
from .aggregator import CombinedView
from .subscriptions import OrderUpdater

logger = logging.getLogger(__name__)

READY_FIELDS = {"orderStatus": OrderStatus.READY.value}


class ActionOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ActionHandler:
    """
    Marks orders ready through the external update operation.

    Each order gets its own processing lock. A successful update does not touch
    the store: the lock is held until a recompute shows the order has left the
    in-kitchen status. A failed update releases the lock straight away.
    """

    def __init__(self, updater: OrderUpdater) -> None:
        self.updater = updater
        self._processing: Set[str] = set()
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def is_processing(self, order_id: str) -> bool:
        return order_id in self._processing

    def processing_ids(self) -> FrozenSet[str]:
        return frozenset(self._processing)

    def claim(self, order: Order) -> bool:
        """Takes the processing lock for ``order``; False when it has no id or is already locked."""
        if not order.id or order.id in self._processing:
            return False
        self._processing.add(order.id)
        self._changed()
        return True

    async def mark_ready(self, order: Order) -> ActionOutcome:
        if not self.claim(order):
            return ActionOutcome.SKIPPED
        return await self.send_ready(order)

    async def send_ready(self, order: Order) -> ActionOutcome:
        """Runs the update for an order already locked by :meth:`claim`."""
        try:
            await self.updater.update(order.id, dict(READY_FIELDS))
        except Exception:
            logger.exception("Failed to mark order %s ready", order.id)
            self._release(order.id)
            return ActionOutcome.FAILED

        if order.status != OrderStatus.IN_KITCHEN:
            # nothing will move in the views for an order that was not in-kitchen
            self._release(order.id)
        return ActionOutcome.SUCCEEDED

    def release_settled(self, view: CombinedView) -> None:
        """
        Drops locks for orders the view no longer shows as in-kitchen.

        Called from the render path, which re-renders right after, so listeners
        are not notified.
        """
        in_kitchen = {order.id for order in view.orders if order.status == OrderStatus.IN_KITCHEN}
        settled = {order_id for order_id in self._processing if order_id not in in_kitchen}
        if settled:
            self._processing -= settled

    def _release(self, order_id: str) -> None:
        if order_id in self._processing:
            self._processing.discard(order_id)
            self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Action listener %r failed", listener)
