import asyncio
import logging

from libs.kafka_common.models import Order, OrderDocument, OrderStatus
from services.kitchen_display.action_handler import ActionHandler, ActionOutcome
from services.kitchen_display.aggregator import Aggregator
from services.kitchen_display.order_store import OrderStore


def make_order(order_id, status="in-kitchen"):
    return Order.from_document(OrderDocument(id=order_id, data={"orderStatus": status}))


class RecordingUpdater:
    def __init__(self):
        self.calls = []

    async def update(self, order_id, fields):
        self.calls.append((order_id, fields))


class FailingUpdater:
    async def update(self, order_id, fields):
        raise ConnectionError("backend unreachable")


class GatedUpdater:
    """Holds every update open until the test releases it."""

    def __init__(self):
        self.calls = []
        self.gate = asyncio.Event()

    async def update(self, order_id, fields):
        self.calls.append(order_id)
        await self.gate.wait()


def test_mark_ready_sends_ready_status_without_touching_the_store():
    store = OrderStore()
    order = make_order("1")
    store.upsert("1", order)
    updater = RecordingUpdater()
    handler = ActionHandler(updater)

    outcome = asyncio.run(handler.mark_ready(order))

    assert outcome == ActionOutcome.SUCCEEDED
    assert updater.calls == [("1", {"orderStatus": "ready"})]
    assert store.get("1").status == OrderStatus.IN_KITCHEN


def test_lock_is_held_until_a_view_shows_the_order_left_the_kitchen():
    store = OrderStore()
    store.upsert("1", make_order("1"))
    aggregator = Aggregator(store)
    handler = ActionHandler(RecordingUpdater())

    asyncio.run(handler.mark_ready(store.get("1")))
    handler.release_settled(aggregator.recompute())
    assert handler.is_processing("1")

    store.upsert("1", make_order("1", "ready"))
    handler.release_settled(aggregator.recompute())
    assert not handler.is_processing("1")


def test_pending_action_leaves_other_orders_actionable():
    a, b = make_order("A"), make_order("B")
    updater = GatedUpdater()
    handler = ActionHandler(updater)

    async def scenario():
        task_a = asyncio.create_task(handler.mark_ready(a))
        await asyncio.sleep(0)
        assert handler.is_processing("A")
        assert not handler.is_processing("B")
        assert handler.processing_ids() == frozenset({"A"})

        task_b = asyncio.create_task(handler.mark_ready(b))
        await asyncio.sleep(0)
        assert handler.processing_ids() == frozenset({"A", "B"})

        updater.gate.set()
        return await task_a, await task_b

    assert asyncio.run(scenario()) == (ActionOutcome.SUCCEEDED, ActionOutcome.SUCCEEDED)
    assert updater.calls == ["A", "B"]


def test_second_press_while_pending_is_skipped():
    order = make_order("A")
    updater = GatedUpdater()
    handler = ActionHandler(updater)

    async def scenario():
        first = asyncio.create_task(handler.mark_ready(order))
        await asyncio.sleep(0)
        second = await handler.mark_ready(order)
        updater.gate.set()
        return await first, second

    assert asyncio.run(scenario()) == (ActionOutcome.SUCCEEDED, ActionOutcome.SKIPPED)
    assert updater.calls == ["A"]


def test_failed_update_releases_the_lock_and_is_logged(caplog):
    store = OrderStore()
    store.upsert("1", make_order("1"))
    handler = ActionHandler(FailingUpdater())

    with caplog.at_level(logging.ERROR):
        outcome = asyncio.run(handler.mark_ready(store.get("1")))

    assert outcome == ActionOutcome.FAILED
    assert not handler.is_processing("1")
    assert "backend unreachable" in caplog.text

    view = Aggregator(store).recompute()
    assert view.orders[0].status == OrderStatus.IN_KITCHEN


def test_order_without_identity_is_skipped():
    updater = RecordingUpdater()
    handler = ActionHandler(updater)

    outcome = asyncio.run(handler.mark_ready(make_order("")))

    assert outcome == ActionOutcome.SKIPPED
    assert updater.calls == []


def test_marking_an_already_ready_order_releases_on_success():
    handler = ActionHandler(RecordingUpdater())

    asyncio.run(handler.mark_ready(make_order("1", "ready")))

    assert not handler.is_processing("1")


def test_listeners_hear_lock_and_release():
    events = []
    handler = ActionHandler(FailingUpdater())
    handler.add_listener(lambda: events.append(handler.processing_ids()))

    asyncio.run(handler.mark_ready(make_order("1")))

    assert events == [frozenset({"1"}), frozenset()]


def test_claim_locks_before_any_update_is_sent():
    updater = RecordingUpdater()
    handler = ActionHandler(updater)
    order = make_order("1")

    assert handler.claim(order)
    assert not handler.claim(order)
    assert not handler.claim(make_order(""))
    assert handler.is_processing("1")
    assert updater.calls == []

    assert asyncio.run(handler.mark_ready(order)) == ActionOutcome.SKIPPED
    assert asyncio.run(handler.send_ready(order)) == ActionOutcome.SUCCEEDED
    assert updater.calls == [("1", {"orderStatus": "ready"})]
    assert handler.is_processing("1")


def test_send_ready_failure_releases_a_claimed_order():
    handler = ActionHandler(FailingUpdater())
    order = make_order("1")
    handler.claim(order)

    assert asyncio.run(handler.send_ready(order)) == ActionOutcome.FAILED
    assert not handler.is_processing("1")
    assert handler.claim(order)
