"""EventRegistry / LazyRegistryLoader tests"""
import asyncio

import pytest

from webhooks.events import EventKind
from webhooks.registry import EventRegistry, LazyRegistryLoader


async def _noop(event):
    return None


async def _other(event):
    return None


def test_register_appends_in_order():
    registry = EventRegistry()
    registry.register(EventKind.PAYOUT_PAID, _noop)
    registry.register("payout.paid", _other)

    assert registry.resolve(EventKind.PAYOUT_PAID) == [_noop, _other]
    assert registry.resolve("payout.paid") == [_noop, _other]
    assert len(registry) == 2


def test_on_decorator_registers_handler():
    registry = EventRegistry()

    @registry.on("customer.created")
    async def handle_customer(event):
        return None

    assert registry.resolve(EventKind.CUSTOMER_CREATED) == [handle_customer]


def test_resolve_returns_empty_list_for_unregistered_or_unknown():
    registry = EventRegistry()
    registry.register(EventKind.PAYOUT_PAID, _noop)

    assert registry.resolve(EventKind.PAYOUT_FAILED) == []
    assert registry.resolve("invoice.paid") == []
    assert registry.resolve(None) == []


def test_resolve_returns_a_copy():
    registry = EventRegistry()
    registry.register(EventKind.PAYOUT_PAID, _noop)

    handlers = registry.resolve(EventKind.PAYOUT_PAID)
    handlers.append(_other)

    assert registry.resolve(EventKind.PAYOUT_PAID) == [_noop]


def test_unknown_kind_cannot_be_registered():
    registry = EventRegistry()

    with pytest.raises(ValueError):
        registry.register("invoice.paid", _noop)


def test_event_kinds_lists_kinds_with_handlers():
    registry = EventRegistry()
    registry.register(EventKind.TRANSFER_CREATED, _noop)
    registry.register(EventKind.PAYOUT_PAID, _noop)

    assert set(registry.event_kinds()) == {EventKind.TRANSFER_CREATED, EventKind.PAYOUT_PAID}


@pytest.mark.asyncio
async def test_lazy_loader_builds_once_under_concurrent_first_use():
    builds = []

    async def build():
        builds.append(1)
        await asyncio.sleep(0.01)
        registry = EventRegistry()
        registry.register(EventKind.PAYOUT_PAID, _noop)
        return registry

    loader = LazyRegistryLoader(build)

    results = await asyncio.gather(*(loader.get() for _ in range(10)))

    assert len(builds) == 1
    assert all(result is results[0] for result in results)
    assert loader.loaded


@pytest.mark.asyncio
async def test_lazy_loader_accepts_sync_builder_and_retries_after_failure():
    attempts = []

    def build():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        return EventRegistry()

    loader = LazyRegistryLoader(build)

    with pytest.raises(RuntimeError):
        await loader.get()
    assert not loader.loaded

    registry = await loader.get()
    assert isinstance(registry, EventRegistry)
    assert await loader.get() is registry
    assert len(attempts) == 2
