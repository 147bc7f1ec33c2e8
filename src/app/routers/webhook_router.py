"""
Provider Webhook Router

- HMAC-SHA256 signature verification with timestamp window (fail closed)
- event parsing into a closed set of event kinds
- concurrent fan-out to registered handlers; handler failures never change the ack
- idempotency tracking via system_logs to avoid duplicate processing
"""
import logging

from fastapi import APIRouter, HTTPException, Request

from core.config import Settings
from core.container import get_container
from core.interfaces import IDatabaseHelper
from core.responses import IntegrityFailure, NotFoundException, success_response
from webhooks.dispatcher import EventDispatcher
from webhooks.events import EventParseError, parse_event
from webhooks.signature import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

SUPPORTED_WEBHOOK_PROVIDERS = {"stripe"}


def _ensure_provider(provider: str) -> str:
    normalized = (provider or "").strip().lower()
    if normalized not in SUPPORTED_WEBHOOK_PROVIDERS:
        raise NotFoundException(f"unsupported webhook provider: {provider}")
    return normalized


@router.get("/{provider}")
async def webhook_alive(provider: str):
    provider = _ensure_provider(provider)
    return success_response(data={"ok": True}, message=f"{provider} webhook alive")


@router.post("/{provider}")
async def receive_webhook(provider: str, request: Request):
    provider = _ensure_provider(provider)
    container = get_container(request)
    settings: Settings = container.get(Settings)

    raw = await request.body()
    signature = request.headers.get(f"{provider}-signature")
    logger.info(
        "[WEBHOOK] %s webhook received: len=%s, has_signature=%s",
        provider,
        len(raw),
        bool(signature),
    )

    if not signature:
        raise IntegrityFailure("missing signature")

    secret = settings.webhook_secret_for(provider)
    if not secret:
        logger.error("[WEBHOOK] %s webhook secret is not configured", provider)
        raise HTTPException(status_code=500, detail="webhook secret not configured")

    if not verify_signature(raw, signature, secret, tolerance=settings.WEBHOOK_TOLERANCE_SECONDS):
        raise IntegrityFailure()

    try:
        event = parse_event(raw)
    except EventParseError as e:
        logger.error("[WEBHOOK] %s event parse failed: %s", provider, e)
        raise HTTPException(status_code=500, detail="failed to parse webhook event")

    db_helper: IDatabaseHelper = container.get(IDatabaseHelper)
    if await db_helper.has_processed_webhook_event(provider, event.id):
        logger.info(
            "[WEBHOOK] duplicate event ignored: %s",
            event.id,
            extra={"event_id": event.id, "event_type": event.type},
        )
        return {"received": True, "duplicate": True}

    dispatcher: EventDispatcher = container.get(EventDispatcher)
    report = await dispatcher.dispatch(event)

    if report.failed:
        logger.warning(
            "[WEBHOOK] %s of %s handler(s) failed for %s",
            len(report.failed),
            report.handler_count,
            event.id,
            extra={"event_id": event.id, "event_type": event.type},
        )

    await db_helper.record_webhook_event(
        provider,
        event.id,
        "processed" if report.ok else "partial",
        payload=report.as_dict(),
    )
    return {"received": True}
