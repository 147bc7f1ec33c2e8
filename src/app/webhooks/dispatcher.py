"""
Event dispatcher: concurrent fan-out with per-handler isolation
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from webhooks.events import WebhookEvent
from webhooks.registry import EventHandler, EventRegistry, LazyRegistryLoader, handler_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HandlerFailure:
    handler: str
    error_type: str
    message: str


@dataclass(slots=True)
class DispatchReport:
    event_id: str
    event_type: str
    handler_count: int = 0
    succeeded: int = 0
    failed: List[HandlerFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "handler_count": self.handler_count,
            "succeeded": self.succeeded,
            "failed": [
                {"handler": f.handler, "error_type": f.error_type, "message": f.message}
                for f in self.failed
            ],
        }


class EventDispatcher:
    """Runs every handler registered for an event's kind.

    Handlers run concurrently. A failing handler is logged and reported in the
    DispatchReport; its siblings still run. ``dispatch`` returns once all
    handlers have settled.
    """

    def __init__(self, registry: Union[EventRegistry, LazyRegistryLoader]):
        if isinstance(registry, EventRegistry):
            prebuilt = registry
            registry = LazyRegistryLoader(lambda: prebuilt)
        self._loader = registry

    async def dispatch(self, event: WebhookEvent) -> DispatchReport:
        report = DispatchReport(event_id=event.id, event_type=event.type)
        log_extra = {"event_id": event.id, "event_type": event.type}

        try:
            registry = await self._loader.get()
        except Exception as e:
            logger.error("[WEBHOOK] event registry unavailable: %s", e, extra=log_extra)
            report.failed.append(HandlerFailure("<registry>", type(e).__name__, str(e)))
            return report

        handlers = registry.resolve(event.kind)
        report.handler_count = len(handlers)
        if not handlers:
            logger.info("[WEBHOOK] no handlers registered for event type: %s", event.type, extra=log_extra)
            return report

        logger.info(
            "[WEBHOOK] dispatching %s to %s handler(s)",
            event.type,
            len(handlers),
            extra=log_extra,
        )
        outcomes = await asyncio.gather(*(self._run_handler(event, handler) for handler in handlers))

        for outcome in outcomes:
            if outcome is None:
                report.succeeded += 1
            else:
                report.failed.append(outcome)
        return report

    async def _run_handler(self, event: WebhookEvent, handler: EventHandler) -> Optional[HandlerFailure]:
        name = handler_name(handler)
        try:
            await handler(event)
        except Exception as e:
            logger.error(
                "[WEBHOOK] handler %s failed for %s: %s",
                name,
                event.type,
                e,
                exc_info=True,
                extra={"event_id": event.id, "event_type": event.type, "handler": name},
            )
            return HandlerFailure(handler=name, error_type=type(e).__name__, message=str(e))
        return None
