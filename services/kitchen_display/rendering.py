# services/kitchen_display/rendering.py
from __future__ import annotations

from datetime import datetime
from typing import Callable, Collection, List, Optional, Sequence

from pydantic import BaseModel

from libs.kafka_common.models import Order, OrderStatus, ServiceKind

KITCHEN_AREA = "kitchen"
EMPTY_TEXT = "Waiting for orders"
NO_ITEMS_TEXT = "No kitchen items."
READY_ACTION_LABEL = "Mark as Ready"


class Pill(BaseModel):
    label: str
    css: str


class ActionControl(BaseModel):
    label: str = READY_ACTION_LABEL
    order_id: str
    disabled: bool = False


class OrderCard(BaseModel):
    order_id: str
    title: str
    classes: List[str]
    pills: List[Pill]
    items: List[str]
    notes: Optional[str] = None
    meta: str = ""
    action: Optional[ActionControl] = None


class Board(BaseModel):
    cards: List[OrderCard]
    empty_text: Optional[str] = None
    updated_label: str = ""


def format_timestamp(millis: Optional[int]) -> str:
    if not millis:
        return ""
    try:
        moment = datetime.fromtimestamp(millis / 1000)
    except (OverflowError, OSError, ValueError):
        # e.g. microseconds sent as millis; the card just shows no time
        return ""
    return moment.strftime("%b %d, %H:%M")


def service_pill(service: ServiceKind) -> Pill:
    if service == ServiceKind.DINE_IN:
        return Pill(label="Dine-in", css="pill dine")
    return Pill(label="Takeaway", css="pill take")


def item_lines(order: Order, prep_area: str = KITCHEN_AREA) -> List[str]:
    area = prep_area.lower()
    lines = [f"{item.quantity} × {item.name}" for item in order.items if item.prep_area.lower() == area]
    return lines or [NO_ITEMS_TEXT]


def render_card(
    order: Order,
    is_new: bool,
    on_ready: Optional[Callable] = None,
    processing: bool = False,
    prep_area: str = KITCHEN_AREA,
) -> OrderCard:
    classes = ["order-card"]
    if is_new:
        classes.append("new")
    if order.status == OrderStatus.READY:
        classes.append("ready")
    if processing:
        classes.append("processing")

    action = None
    if on_ready is not None:
        action = ActionControl(order_id=order.id, disabled=processing)

    return OrderCard(
        order_id=order.id,
        title=order.label,
        classes=classes,
        pills=[Pill(label=f"Table {order.table}", css="pill table"), service_pill(order.service)],
        items=item_lines(order, prep_area),
        notes=f"Notes: {order.notes}" if order.notes else None,
        meta=format_timestamp(order.timestamp),
        action=action,
    )


def render_board(
    orders: Sequence[Order],
    new_ids: Collection[str],
    on_ready: Optional[Callable] = None,
    processing: Collection[str] = (),
    updated_at: Optional[datetime] = None,
    prep_area: str = KITCHEN_AREA,
    empty_text: str = EMPTY_TEXT,
) -> Board:
    """
    Builds the whole board from scratch.

    ``on_ready`` only decides whether cards carry a ready control; the platform
    renderer wires the control back to it by ``order_id``. ``processing`` holds
    the ids whose control must render disabled.
    """
    updated_label = f"Updated: {updated_at.strftime('%H:%M:%S')}" if updated_at else ""
    if not orders:
        return Board(cards=[], empty_text=empty_text, updated_label=updated_label)

    cards = [
        render_card(order, order.id in new_ids, on_ready, order.id in processing, prep_area)
        for order in orders
    ]
    return Board(cards=cards, updated_label=updated_label)
