# services/kitchen_display/init_services.py
from __future__ import annotations

import asyncio
from typing import List, Optional

from .action_handler import ActionHandler
from .aggregator import Aggregator
from .config import KDS_CONSUMER_GROUP_PREFIX, KDS_EMPTY_TEXT, KDS_PREP_AREA, KDS_QUERY_BACKEND
from .connections import ConnectionManager
from .display import KitchenDisplay
from .kafka_subscriptions import KafkaOrderQueryService, KafkaOrderUpdater
from .notifier import BroadcastNotifier
from .order_store import NewArrivalTracker, OrderStore
from .stream_adapter import StreamAdapter
from .subscriptions import IN_KITCHEN, READY, InMemoryOrderQueryService, OrderQueryService, OrderUpdater


class KitchenServices:
    """Everything one kitchen screen needs, built once at startup and shared by reference."""

    def __init__(self, query_service: OrderQueryService, updater: OrderUpdater) -> None:
        self.query_service = query_service
        self.updater = updater
        self.store = OrderStore()
        self.tracker = NewArrivalTracker()
        self.connections = ConnectionManager()
        self.aggregator = Aggregator(self.store, notifier=BroadcastNotifier(self.connections))
        self.handler = ActionHandler(updater)
        self.display = KitchenDisplay(
            self.aggregator,
            self.handler,
            connections=self.connections,
            prep_area=KDS_PREP_AREA,
            empty_text=KDS_EMPTY_TEXT,
        )
        self.adapters: List[StreamAdapter] = [
            StreamAdapter(query_service, IN_KITCHEN, self.store, self.aggregator, tracker=self.tracker),
            StreamAdapter(query_service, READY, self.store, self.aggregator),
        ]

    def start(self) -> None:
        for adapter in self.adapters:
            adapter.start()

    def stop(self) -> None:
        for adapter in self.adapters:
            adapter.stop()


def build_services(backend: str = KDS_QUERY_BACKEND, loop: Optional[asyncio.AbstractEventLoop] = None) -> KitchenServices:
    if backend == "memory":
        service = InMemoryOrderQueryService()
        return KitchenServices(service, service)
    if backend == "kafka":
        query_service = KafkaOrderQueryService(loop=loop, group_prefix=KDS_CONSUMER_GROUP_PREFIX)
        return KitchenServices(query_service, KafkaOrderUpdater())
    raise ValueError(f"Unknown query backend: {backend}")
