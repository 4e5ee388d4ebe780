# services/kitchen_display/stream_adapter.py
from __future__ import annotations

import logging
from typing import List, Optional, Set

from pydantic import ValidationError

from libs.kafka_common.models import Order, OrderDocument
from .aggregator import Aggregator
from .order_store import NewArrivalTracker, OrderStore
from .subscriptions import NEWEST_FIRST, OrderingHint, OrderQueryService, StatusPredicate, Subscription

logger = logging.getLogger(__name__)


class StreamAdapter:
    """
    Feeds one filtered subscription into the shared store.

    Only the adapter built with a ``tracker`` (the preparation queue) reports
    new arrivals; any other adapter always signals an empty set.
    """

    def __init__(
        self,
        service: OrderQueryService,
        predicate: StatusPredicate,
        store: OrderStore,
        aggregator: Aggregator,
        tracker: Optional[NewArrivalTracker] = None,
        ordering: OrderingHint = NEWEST_FIRST,
    ) -> None:
        self.service = service
        self.predicate = predicate
        self.store = store
        self.aggregator = aggregator
        self.tracker = tracker
        self.ordering = ordering
        self._subscription: Optional[Subscription] = None
        self._stopped = False

    @property
    def active(self) -> bool:
        return self._subscription is not None and not self._stopped

    def start(self) -> None:
        if self._subscription is not None or self._stopped:
            return
        self._subscription = self.service.subscribe(
            self.predicate, self.ordering, self.on_snapshot, self.on_error
        )

    def stop(self) -> None:
        self._stopped = True
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()

    def on_snapshot(self, documents: List[OrderDocument]) -> None:
        if self._stopped:
            return

        new_ids: Set[str] = set()
        for document in documents:
            try:
                order = Order.from_document(document)
            except ValidationError as e:
                logger.warning("Skipping unreadable order document %s: %s", document.id, e)
                continue

            self.store.upsert(order.id, order)

            if self.tracker is not None and self.tracker.is_new(order.id):
                new_ids.add(order.id)
                self.tracker.mark_seen(order.id)

        self.aggregator.recompute(new_ids)

    def on_error(self, error: Exception) -> None:
        # No reconnect: the stream stays stalled until the process restarts.
        logger.error("Subscription for %s=%s failed: %s", self.predicate.field, self.predicate.value, error)
        self.stop()
