# services/kitchen_display/order_store.py
from __future__ import annotations

from typing import Dict, List, Optional, Set

from libs.kafka_common.models import Order


class OrderStore:
    """Latest known record per order id. Entries are replaced wholesale and never deleted."""

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}

    def upsert(self, order_id: str, record: Order) -> None:
        # dict keeps first-insertion position when an existing key is reassigned
        self._orders[order_id] = record

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def all(self) -> List[Order]:
        return list(self._orders.values())

    def __len__(self) -> int:
        return len(self._orders)


class NewArrivalTracker:
    """Ids already announced as new on the preparation queue. Append-only."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def is_new(self, order_id: str) -> bool:
        return order_id not in self._seen

    def mark_seen(self, order_id: str) -> None:
        self._seen.add(order_id)
