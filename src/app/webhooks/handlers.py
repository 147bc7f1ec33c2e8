"""
Default Stripe Connect event handlers

Each handler logs the event and records the derived fact in ``system_logs`` so
operators can reconcile provider-side activity against the trust ledger.
"""
import logging
from typing import Any, Callable, Dict

from core.interfaces import IDatabaseHelper
from webhooks.events import EventKind, WebhookEvent, thaw
from webhooks.registry import EventHandler, EventRegistry

logger = logging.getLogger(__name__)

FactBuilder = Callable[[WebhookEvent], Dict[str, Any]]


def _account_fact(event: WebhookEvent) -> Dict[str, Any]:
    account = event.object
    return {
        "account_id": account.get("id") or event.account,
        "charges_enabled": account.get("charges_enabled"),
        "payouts_enabled": account.get("payouts_enabled"),
        "details_submitted": account.get("details_submitted"),
    }


def _payment_intent_fact(event: WebhookEvent) -> Dict[str, Any]:
    intent = event.object
    last_error = intent.get("last_payment_error") or {}
    return {
        "payment_intent_id": intent.get("id"),
        "amount": intent.get("amount"),
        "currency": intent.get("currency"),
        "status": intent.get("status"),
        "connected_account": event.account,
        "metadata": intent.get("metadata") or {},
        "failure_message": last_error.get("message"),
    }


def _payment_method_fact(event: WebhookEvent) -> Dict[str, Any]:
    method = event.object
    return {
        "payment_method_id": method.get("id"),
        "customer": method.get("customer"),
        "type": method.get("type"),
    }


def _transfer_fact(event: WebhookEvent) -> Dict[str, Any]:
    transfer = event.object
    return {
        "transfer_id": transfer.get("id"),
        "amount": transfer.get("amount"),
        "currency": transfer.get("currency"),
        "destination": transfer.get("destination"),
        "source_transaction": transfer.get("source_transaction"),
    }


def _payout_fact(event: WebhookEvent) -> Dict[str, Any]:
    payout = event.object
    return {
        "payout_id": payout.get("id"),
        "amount": payout.get("amount"),
        "currency": payout.get("currency"),
        "status": payout.get("status"),
        "connected_account": event.account,
        "failure_message": payout.get("failure_message"),
    }


def _application_fee_fact(event: WebhookEvent) -> Dict[str, Any]:
    fee = event.object
    return {
        "application_fee_id": fee.get("id"),
        "amount": fee.get("amount"),
        "currency": fee.get("currency"),
        "account": fee.get("account") or event.account,
        "charge": fee.get("charge"),
    }


def _customer_fact(event: WebhookEvent) -> Dict[str, Any]:
    customer = event.object
    return {
        "customer_id": customer.get("id"),
        "email": customer.get("email"),
        "metadata": customer.get("metadata") or {},
    }


def _dispute_fact(event: WebhookEvent) -> Dict[str, Any]:
    dispute = event.object
    return {
        "dispute_id": dispute.get("id"),
        "charge": dispute.get("charge"),
        "amount": dispute.get("amount"),
        "currency": dispute.get("currency"),
        "reason": dispute.get("reason"),
        "status": dispute.get("status"),
    }


FACT_BUILDERS: Dict[EventKind, FactBuilder] = {
    EventKind.ACCOUNT_UPDATED: _account_fact,
    EventKind.PAYMENT_INTENT_SUCCEEDED: _payment_intent_fact,
    EventKind.PAYMENT_INTENT_PAYMENT_FAILED: _payment_intent_fact,
    EventKind.PAYMENT_METHOD_ATTACHED: _payment_method_fact,
    EventKind.TRANSFER_CREATED: _transfer_fact,
    EventKind.PAYOUT_PAID: _payout_fact,
    EventKind.PAYOUT_FAILED: _payout_fact,
    EventKind.APPLICATION_FEE_CREATED: _application_fee_fact,
    EventKind.CUSTOMER_CREATED: _customer_fact,
    EventKind.CHARGE_DISPUTE_CREATED: _dispute_fact,
}

# kinds that need operator attention
WARNING_KINDS = {
    EventKind.PAYMENT_INTENT_PAYMENT_FAILED,
    EventKind.PAYOUT_FAILED,
    EventKind.CHARGE_DISPUTE_CREATED,
}


def make_fact_recorder(kind: EventKind, db_helper: IDatabaseHelper, provider: str = "stripe") -> EventHandler:
    """Handler that records ``FACT_BUILDERS[kind]`` output as a system log row."""

    build_fact = FACT_BUILDERS[kind]
    log_type = f"{provider}_{kind.value.replace('.', '_')}"

    async def record_fact(event: WebhookEvent) -> Dict[str, Any]:
        fact = thaw({"event_id": event.id, "livemode": event.livemode, **build_fact(event)})
        level = logging.WARNING if kind in WARNING_KINDS else logging.INFO
        logger.log(
            level,
            "[WEBHOOK] %s: %s",
            kind.value,
            fact,
            extra={"event_id": event.id, "event_type": event.type},
        )
        recorded = await db_helper.log_system_event(event_type=log_type, event_data=fact)
        if not recorded:
            raise RuntimeError(f"failed to record {kind.value} fact for event {event.id}")
        return fact

    record_fact.__name__ = f"record_{kind.value.replace('.', '_')}"
    record_fact.__qualname__ = record_fact.__name__
    return record_fact


def build_default_registry(db_helper: IDatabaseHelper, provider: str = "stripe") -> EventRegistry:
    registry = EventRegistry()
    for kind in EventKind:
        registry.register(kind, make_fact_recorder(kind, db_helper, provider))
    return registry
