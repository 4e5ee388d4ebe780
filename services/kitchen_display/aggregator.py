# services/kitchen_display/aggregator.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, FrozenSet, Iterable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from libs.kafka_common.models import DISPLAYED_STATUSES, Order
from .order_store import OrderStore

logger = logging.getLogger(__name__)


class CombinedView(BaseModel):
    orders: List[Order]
    new_ids: FrozenSet[str]
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


class Notifier(Protocol):
    def notify(self, new_ids: FrozenSet[str]) -> None: ...


ViewSink = Callable[[CombinedView], None]


class Aggregator:
    """
    Recomputes the combined kitchen view from the store.

    Orders that are in-kitchen or ready, newest first. Equal timestamps keep
    the store's first-seen order (list.sort is stable, reverse included).
    """

    def __init__(
        self,
        store: OrderStore,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self._clock = clock
        self._sinks: List[ViewSink] = []
        self.latest: Optional[CombinedView] = None

    def add_sink(self, sink: ViewSink) -> None:
        self._sinks.append(sink)

    def recompute(self, new_ids: Iterable[str] = ()) -> CombinedView:
        visible = [order for order in self.store.all() if order.status in DISPLAYED_STATUSES]
        visible.sort(key=lambda order: order.timestamp or 0, reverse=True)

        view = CombinedView(orders=visible, new_ids=frozenset(new_ids), updated_at=self._clock())
        self.latest = view

        for sink in list(self._sinks):
            try:
                sink(view)
            except Exception:
                logger.exception("View sink %r failed", sink)

        if view.new_ids and self.notifier is not None:
            try:
                self.notifier.notify(view.new_ids)
            except Exception:
                logger.exception("Notifier failed for %d new order(s)", len(view.new_ids))

        return view
