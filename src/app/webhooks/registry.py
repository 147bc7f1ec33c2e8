"""
Event registry: EventKind -> ordered handler list
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from webhooks.events import EventKind, WebhookEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[WebhookEvent], Awaitable[Any]]
KindLike = Union[EventKind, str]


def _coerce_kind(kind: KindLike) -> EventKind:
    resolved = EventKind.from_type(kind)
    if resolved is None:
        raise ValueError(f"unknown event kind: {kind!r}")
    return resolved


def handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", None) or repr(handler)


class EventRegistry:
    """Handlers per event kind. Registration order is kept for logs only."""

    def __init__(self):
        self._handlers: Dict[EventKind, List[EventHandler]] = {}

    def register(self, kind: KindLike, handler: EventHandler) -> EventHandler:
        resolved = _coerce_kind(kind)
        self._handlers.setdefault(resolved, []).append(handler)
        logger.debug("[WEBHOOK] handler registered: %s -> %s", resolved.value, handler_name(handler))
        return handler

    def on(self, kind: KindLike) -> Callable[[EventHandler], EventHandler]:
        """Decorator form of ``register``."""

        def decorator(handler: EventHandler) -> EventHandler:
            return self.register(kind, handler)

        return decorator

    def resolve(self, kind: Optional[KindLike]) -> List[EventHandler]:
        resolved = EventKind.from_type(kind)
        if resolved is None:
            return []
        return list(self._handlers.get(resolved, ()))

    def event_kinds(self) -> List[EventKind]:
        return [kind for kind, handlers in self._handlers.items() if handlers]

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())


RegistryBuilder = Callable[[], Union[EventRegistry, Awaitable[EventRegistry]]]


class LazyRegistryLoader:
    """Builds the registry on first use and memoizes it.

    Concurrent first callers wait on one lock so the builder runs once. A failed
    build is not memoized.
    """

    def __init__(self, builder: RegistryBuilder):
        self._builder = builder
        self._registry: Optional[EventRegistry] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._registry is not None

    async def get(self) -> EventRegistry:
        if self._registry is not None:
            return self._registry

        async with self._lock:
            if self._registry is None:
                registry = self._builder()
                if asyncio.iscoroutine(registry):
                    registry = await registry
                logger.info(
                    "[WEBHOOK] event registry built: %s handlers for %s kinds",
                    len(registry),
                    len(registry.event_kinds()),
                )
                self._registry = registry
        return self._registry
