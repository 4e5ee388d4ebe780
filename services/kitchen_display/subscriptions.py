# services/kitchen_display/subscriptions.py
from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from libs.kafka_common.models import OrderDocument, OrderStatus, coerce_timestamp

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[OrderDocument]], None]
ErrorCallback = Callable[[Exception], None]


class StatusPredicate(BaseModel):
    """Equality filter on one document field."""

    field: str = "orderStatus"
    value: str

    model_config = ConfigDict(frozen=True)

    def matches(self, data: Mapping[str, Any]) -> bool:
        return data.get(self.field) == self.value


class OrderingHint(BaseModel):
    field: str = "timestamp"
    descending: bool = True

    model_config = ConfigDict(frozen=True)

    def apply(self, documents: List[OrderDocument]) -> List[OrderDocument]:
        return sorted(
            documents,
            key=lambda doc: coerce_timestamp(doc.data.get(self.field)) or 0,
            reverse=self.descending,
        )


IN_KITCHEN = StatusPredicate(value=OrderStatus.IN_KITCHEN.value)
READY = StatusPredicate(value=OrderStatus.READY.value)
NEWEST_FIRST = OrderingHint()


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class OrderQueryService(Protocol):
    """A live query source: every delivery is the full current result set for the predicate."""

    def subscribe(
        self,
        predicate: StatusPredicate,
        ordering: OrderingHint,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription: ...


class OrderUpdater(Protocol):
    async def update(self, order_id: str, fields: Dict[str, Any]) -> None: ...


class DocumentNotFound(KeyError):
    pass


class _MemorySubscription:
    def __init__(
        self,
        service: "InMemoryOrderQueryService",
        predicate: StatusPredicate,
        ordering: OrderingHint,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._service = service
        self.predicate = predicate
        self.ordering = ordering
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.last_result: Optional[List[Dict[str, Any]]] = None

    def unsubscribe(self) -> None:
        self._service._detach(self)


class InMemoryOrderQueryService:
    """
    Process-local order documents with live filtered queries.

    Subscribers get their initial snapshot on subscribe and a new full snapshot
    whenever their result set changes. Also serves as the update operation for
    the ``memory`` backend.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._subscriptions: List[_MemorySubscription] = []

    def subscribe(
        self,
        predicate: StatusPredicate,
        ordering: OrderingHint,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> _MemorySubscription:
        subscription = _MemorySubscription(self, predicate, ordering, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        self._deliver(subscription)
        return subscription

    def set_document(self, order_id: str, data: Dict[str, Any]) -> None:
        self._documents[order_id] = copy.deepcopy(data)
        self._publish()

    def remove_document(self, order_id: str) -> None:
        if self._documents.pop(order_id, None) is not None:
            self._publish()

    def get_document(self, order_id: str) -> Optional[Dict[str, Any]]:
        data = self._documents.get(order_id)
        return copy.deepcopy(data) if data is not None else None

    async def update(self, order_id: str, fields: Dict[str, Any]) -> None:
        if order_id not in self._documents:
            raise DocumentNotFound(order_id)
        self._documents[order_id] = {**self._documents[order_id], **copy.deepcopy(fields)}
        self._publish()

    def fail(self, error: Exception) -> None:
        """Pushes ``error`` to the error channel of every live subscription."""
        for subscription in list(self._subscriptions):
            subscription.on_error(error)

    def _detach(self, subscription: _MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _publish(self) -> None:
        for subscription in list(self._subscriptions):
            self._deliver(subscription)

    def _deliver(self, subscription: _MemorySubscription) -> None:
        matching = [
            OrderDocument(id=order_id, data=copy.deepcopy(data))
            for order_id, data in self._documents.items()
            if subscription.predicate.matches(data)
        ]
        documents = subscription.ordering.apply(matching)
        result = [doc.model_dump() for doc in documents]
        if result == subscription.last_result:
            return
        subscription.last_result = result
        logger.debug("Delivering %d document(s) for %s", len(documents), subscription.predicate.value)
        subscription.on_snapshot(documents)
