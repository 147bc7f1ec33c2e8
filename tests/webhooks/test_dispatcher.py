"""EventDispatcher fan-out tests"""
import asyncio
import logging

import pytest

from webhooks.dispatcher import EventDispatcher
from webhooks.events import EventKind, parse_event
from webhooks.registry import EventRegistry, LazyRegistryLoader


def _event(event_id="evt_1", event_type="payment_intent.succeeded"):
    return parse_event(
        {
            "id": event_id,
            "type": event_type,
            "created": 1_700_000_000,
            "data": {"object": {"id": "pi_1", "amount": 450, "currency": "usd"}},
        }
    )


@pytest.mark.asyncio
async def test_zero_handler_dispatch_completes_without_side_effects(caplog):
    registry = EventRegistry()
    calls = []

    async def unrelated(event):
        calls.append(event.id)

    registry.register(EventKind.PAYOUT_PAID, unrelated)
    dispatcher = EventDispatcher(registry)

    with caplog.at_level(logging.INFO):
        report = await dispatcher.dispatch(_event(event_type="payment_intent.succeeded"))

    assert report.handler_count == 0
    assert report.succeeded == 0
    assert report.failed == []
    assert calls == []
    assert any("no handlers" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_unknown_event_type_is_a_noop():
    dispatcher = EventDispatcher(EventRegistry())

    report = await dispatcher.dispatch(_event(event_type="invoice.finalized"))

    assert report.handler_count == 0
    assert report.ok


@pytest.mark.asyncio
async def test_failing_handler_does_not_affect_siblings(caplog):
    registry = EventRegistry()
    calls = {"first": 0, "third": 0}

    async def first(event):
        calls["first"] += 1

    async def broken(event):
        raise RuntimeError("handler exploded")

    async def third(event):
        await asyncio.sleep(0)
        calls["third"] += 1

    for handler in (first, broken, third):
        registry.register(EventKind.PAYMENT_INTENT_SUCCEEDED, handler)

    with caplog.at_level(logging.ERROR):
        report = await EventDispatcher(registry).dispatch(_event())

    assert calls == {"first": 1, "third": 1}
    assert report.handler_count == 3
    assert report.succeeded == 2
    assert len(report.failed) == 1
    failure = report.failed[0]
    assert failure.handler.endswith("broken")
    assert failure.error_type == "RuntimeError"
    assert failure.message == "handler exploded"

    error_records = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert error_records
    assert error_records[0].event_id == "evt_1"
    assert error_records[0].event_type == "payment_intent.succeeded"
    assert error_records[0].handler.endswith("broken")


@pytest.mark.asyncio
async def test_handlers_run_concurrently():
    registry = EventRegistry()
    started = []
    gate = asyncio.Event()

    async def waiter(event):
        started.append("waiter")
        await asyncio.wait_for(gate.wait(), timeout=1)

    async def opener(event):
        started.append("opener")
        gate.set()

    registry.register(EventKind.PAYOUT_PAID, waiter)
    registry.register(EventKind.PAYOUT_PAID, opener)

    report = await EventDispatcher(registry).dispatch(_event(event_type="payout.paid"))

    assert report.succeeded == 2
    assert started == ["waiter", "opener"]


@pytest.mark.asyncio
async def test_two_events_of_one_kind_fire_only_that_kind():
    registry = EventRegistry()
    counters = {"succeeded": 0, "failed": 0}

    async def on_succeeded(event):
        counters["succeeded"] += 1

    async def on_failed(event):
        counters["failed"] += 1

    registry.register(EventKind.PAYMENT_INTENT_SUCCEEDED, on_succeeded)
    registry.register(EventKind.PAYMENT_INTENT_PAYMENT_FAILED, on_failed)
    dispatcher = EventDispatcher(registry)

    await dispatcher.dispatch(_event("evt_a"))
    await dispatcher.dispatch(_event("evt_b"))

    assert counters == {"succeeded": 2, "failed": 0}


@pytest.mark.asyncio
async def test_registry_build_failure_is_reported_not_raised():
    def build():
        raise RuntimeError("registry broken")

    report = await EventDispatcher(LazyRegistryLoader(build)).dispatch(_event())

    assert report.handler_count == 0
    assert report.failed[0].handler == "<registry>"


@pytest.mark.asyncio
async def test_cancellation_is_not_swallowed():
    registry = EventRegistry()

    async def cancelled(event):
        raise asyncio.CancelledError()

    registry.register(EventKind.PAYOUT_PAID, cancelled)

    with pytest.raises(asyncio.CancelledError):
        await EventDispatcher(registry).dispatch(_event(event_type="payout.paid"))


def test_report_as_dict():
    report_dict = asyncio.run(EventDispatcher(EventRegistry()).dispatch(_event())).as_dict()

    assert report_dict == {
        "event_id": "evt_1",
        "event_type": "payment_intent.succeeded",
        "handler_count": 0,
        "succeeded": 0,
        "failed": [],
    }


@pytest.mark.asyncio
async def test_handler_cannot_change_what_siblings_see():
    registry = EventRegistry()
    seen = []

    async def mutator(event):
        event.object["amount"] = 0

    async def reader(event):
        await asyncio.sleep(0)
        seen.append(event.object["amount"])

    registry.register(EventKind.PAYMENT_INTENT_SUCCEEDED, mutator)
    registry.register(EventKind.PAYMENT_INTENT_SUCCEEDED, reader)

    report = await EventDispatcher(registry).dispatch(_event())

    assert seen == [450]
    assert report.succeeded == 1
    assert report.failed[0].handler.endswith("mutator")
    assert report.failed[0].error_type == "TypeError"
