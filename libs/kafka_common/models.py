from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceKind(str, Enum):
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"


class OrderStatus(str, Enum):
    IN_KITCHEN = "in-kitchen"
    READY = "ready"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "OrderStatus":
        return cls.OTHER


# Statuses shown on the kitchen board, in-kitchen first.
DISPLAYED_STATUSES = (OrderStatus.IN_KITCHEN, OrderStatus.READY)


def coerce_timestamp(value: Any) -> Optional[int]:
    """
    Normalizes a document timestamp to epoch milliseconds.

    Accepts millis as int/float/numeric string, datetimes and ISO strings,
    ``{"seconds", "nanoseconds"}`` mappings and objects exposing ``to_millis()``
    or ``timestamp()`` (seconds).
    Anything unreadable becomes None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        text = value.strip()
        try:
            return coerce_timestamp(float(text))
        except ValueError:
            pass
        try:
            return coerce_timestamp(datetime.fromisoformat(text))
        except ValueError:
            return None
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        try:
            return int(seconds) * 1000 + int(nanos) // 1_000_000
        except (TypeError, ValueError, OverflowError):
            return None
    to_millis = getattr(value, "to_millis", None)
    if callable(to_millis):
        return coerce_timestamp(to_millis())
    to_seconds = getattr(value, "timestamp", None)
    if callable(to_seconds):
        try:
            return coerce_timestamp(to_seconds() * 1000)
        except (TypeError, ValueError, OverflowError, OSError):
            return None
    return None


class OrderItem(BaseModel):
    """A line on an order. Missing or blank fields fall back to name "Item", qty 1."""

    name: str = "Item"
    quantity: int = Field(1, alias="qty")
    prep_area: str = Field("", alias="prep")

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        if v is None or v == "" or isinstance(v, (dict, list)):
            return "Item"
        return str(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> int:
        if isinstance(v, bool):
            return 1
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        if isinstance(v, str):
            try:
                v = int(v.strip())
            except ValueError:
                return 1
        if not isinstance(v, int) or v <= 0:
            return 1
        return v

    @field_validator("prep_area", mode="before")
    @classmethod
    def default_prep_area(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""


class OrderDocument(BaseModel):
    """A raw order document as delivered by a query snapshot: identity plus untyped fields."""

    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class Order(BaseModel):
    """
    A kitchen order record.

    Built once from a raw document by :meth:`from_document`; the field
    validators below are the single defaulting table for the display.
    Document keys are the aliases (``orderId``, ``orderStatus``, ``qty``...).
    """

    id: str
    label: str = Field("Order", alias="orderId")
    table: str = "-"
    service: ServiceKind = ServiceKind.TAKEAWAY
    items: List[OrderItem] = Field(default_factory=list)
    notes: Optional[str] = None
    timestamp: Optional[int] = None
    status: OrderStatus = Field(OrderStatus.OTHER, alias="orderStatus")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_document(cls, document: OrderDocument) -> "Order":
        return cls.model_validate({**document.data, "id": document.id})

    @field_validator("label", mode="before")
    @classmethod
    def default_label(cls, v: Any) -> str:
        return str(v) if v not in (None, "") else "Order"

    @field_validator("table", mode="before")
    @classmethod
    def default_table(cls, v: Any) -> str:
        if v is None or v == "" or v == 0 or isinstance(v, bool):
            return "-"
        return str(v)

    @field_validator("service", mode="before")
    @classmethod
    def normalize_service(cls, v: Any) -> ServiceKind:
        if isinstance(v, str) and v.lower() == ServiceKind.DINE_IN.value:
            return ServiceKind.DINE_IN
        return ServiceKind.TAKEAWAY

    @field_validator("items", mode="before")
    @classmethod
    def keep_item_objects(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, (dict, OrderItem))]

    @field_validator("notes", mode="before")
    @classmethod
    def blank_notes(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("timestamp", mode="before")
    @classmethod
    def normalize_timestamp(cls, v: Any) -> Optional[int]:
        return coerce_timestamp(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> OrderStatus:
        if isinstance(v, OrderStatus):
            return v
        if isinstance(v, str):
            return OrderStatus(v)
        return OrderStatus.OTHER
