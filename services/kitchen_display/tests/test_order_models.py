import json
from datetime import datetime, timezone

from libs.kafka_common.models import (
    Order,
    OrderDocument,
    OrderStatus,
    ServiceKind,
    coerce_timestamp,
)


def make_order(order_id="doc-1", **data):
    return Order.from_document(OrderDocument(id=order_id, data=data))


def test_empty_document_gets_every_default():
    order = make_order()

    assert order.id == "doc-1"
    assert order.label == "Order"
    assert order.table == "-"
    assert order.service == ServiceKind.TAKEAWAY
    assert order.items == []
    assert order.notes is None
    assert order.timestamp is None
    assert order.status == OrderStatus.OTHER


def test_document_fields_are_read_by_their_keys():
    order = make_order(
        orderId="K-12",
        table=7,
        service="dine-in",
        items=[{"name": "Masala Dosa", "qty": 2, "prep": "kitchen"}],
        notes="no onion",
        timestamp=1700000000000,
        orderStatus="in-kitchen",
    )

    assert order.label == "K-12"
    assert order.table == "7"
    assert order.service == ServiceKind.DINE_IN
    assert order.items[0].name == "Masala Dosa"
    assert order.items[0].quantity == 2
    assert order.items[0].prep_area == "kitchen"
    assert order.notes == "no onion"
    assert order.timestamp == 1700000000000
    assert order.status == OrderStatus.IN_KITCHEN


def test_document_id_wins_over_id_field_in_data():
    order = make_order("doc-9", id="something-else")
    assert order.id == "doc-9"


def test_service_kind_is_case_insensitive_and_defaults_to_takeaway():
    assert make_order(service="Dine-In").service == ServiceKind.DINE_IN
    assert make_order(service="DINE-IN").service == ServiceKind.DINE_IN
    assert make_order(service="delivery").service == ServiceKind.TAKEAWAY
    assert make_order(service=None).service == ServiceKind.TAKEAWAY


def test_unknown_status_is_kept_as_other():
    assert make_order(orderStatus="served").status == OrderStatus.OTHER
    assert make_order(orderStatus="ready").status == OrderStatus.READY
    assert make_order(orderStatus=3).status == OrderStatus.OTHER


def test_malformed_items_are_defaulted_not_rejected():
    order = make_order(items=[{"prep": "kitchen"}, "junk", {"name": "", "qty": 0}, {"name": "Idly", "qty": "3"}])

    assert [item.name for item in order.items] == ["Item", "Item", "Idly"]
    assert [item.quantity for item in order.items] == [1, 1, 3]
    assert make_order(items="not a list").items == []
    assert make_order(items=[{"qty": -2, "prep": None}]).items[0].quantity == 1
    assert make_order(items=[{"qty": -2, "prep": None}]).items[0].prep_area == ""


def test_blank_optional_text_fields_fall_back():
    order = make_order(orderId="", table="", notes="")
    assert order.label == "Order"
    assert order.table == "-"
    assert order.notes is None


class _FirestoreLikeTimestamp:
    def __init__(self, millis):
        self._millis = millis

    def to_millis(self):
        return self._millis


def test_timestamp_accepts_convertible_values():
    assert coerce_timestamp(1700000000000) == 1700000000000
    assert coerce_timestamp(1700000000000.7) == 1700000000000
    assert coerce_timestamp("1700000000000") == 1700000000000
    assert coerce_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == 1704067200000
    assert coerce_timestamp("2024-01-01T00:00:00+00:00") == 1704067200000
    assert coerce_timestamp({"seconds": 1700000000, "nanoseconds": 500000000}) == 1700000000500
    assert coerce_timestamp({"_seconds": 1700000000}) == 1700000000000
    assert coerce_timestamp(_FirestoreLikeTimestamp(42)) == 42


def test_unreadable_timestamp_becomes_none():
    assert coerce_timestamp(None) is None
    assert coerce_timestamp(True) is None
    assert coerce_timestamp("yesterday") is None
    assert coerce_timestamp(float("nan")) is None
    assert coerce_timestamp({"nanoseconds": 5}) is None
    assert coerce_timestamp({"seconds": float("inf")}) is None
    assert coerce_timestamp({"seconds": 1700000000, "nanoseconds": float("-inf")}) is None
    assert coerce_timestamp("1e400") is None
    assert make_order(timestamp=[1, 2]).timestamp is None


def test_infinite_seconds_from_json_default_instead_of_raising():
    data = json.loads('{"orderStatus": "in-kitchen", "timestamp": {"seconds": Infinity}}')

    order = make_order(**data)

    assert order.timestamp is None
    assert order.status == OrderStatus.IN_KITCHEN


class _SecondsTimestamp:
    def __init__(self, seconds):
        self._seconds = seconds

    def timestamp(self):
        return self._seconds


def test_timestamp_accepts_objects_exposing_seconds():
    assert coerce_timestamp(_SecondsTimestamp(1700000000.25)) == 1700000000250
    assert coerce_timestamp(_SecondsTimestamp(float("inf"))) is None
    assert coerce_timestamp(_SecondsTimestamp(None)) is None
