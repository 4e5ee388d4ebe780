from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field

from .models import OrderDocument


class EventType(str, Enum):
    ORDER_SNAPSHOT = "ORDER_SNAPSHOT"
    ORDER_UPDATE_REQUESTED = "ORDER_UPDATE_REQUESTED"


class BaseEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OrderSnapshotEvent(BaseEvent):
    """Full current set of order documents holding one status value."""
    event_type: Literal[EventType.ORDER_SNAPSHOT] = EventType.ORDER_SNAPSHOT
    status: str
    documents: List[OrderDocument] = Field(default_factory=list)


class OrderUpdateRequestedEvent(BaseEvent):
    event_type: Literal[EventType.ORDER_UPDATE_REQUESTED] = EventType.ORDER_UPDATE_REQUESTED
    order_id: str
    fields: Dict[str, Any]


OrderEvent = Union[OrderSnapshotEvent, OrderUpdateRequestedEvent]
