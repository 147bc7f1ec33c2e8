"""
Webhook event model

Provider events are parsed once into an immutable ``WebhookEvent``; nested
objects are frozen too (mappings become read-only proxies, lists become tuples)
so concurrently running handlers all see the same payload. The set of
event kinds this service reacts to is closed; unknown types parse fine but
resolve to ``kind=None`` and are acknowledged without side effects.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union


class EventKind(str, Enum):
    ACCOUNT_UPDATED = "account.updated"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_METHOD_ATTACHED = "payment_method.attached"
    TRANSFER_CREATED = "transfer.created"
    PAYOUT_PAID = "payout.paid"
    PAYOUT_FAILED = "payout.failed"
    APPLICATION_FEE_CREATED = "application_fee.created"
    CUSTOMER_CREATED = "customer.created"
    CHARGE_DISPUTE_CREATED = "charge.dispute.created"

    @classmethod
    def from_type(cls, value: Any) -> Optional["EventKind"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class EventParseError(ValueError):
    """Raised when a webhook body is not a well-formed event envelope."""


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Mutable, JSON-serializable copy of a frozen event value."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True, slots=True)
class WebhookEvent:
    id: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({"object": MappingProxyType({})}))
    account: Optional[str] = None
    pending_webhooks: int = 0
    request: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def kind(self) -> Optional[EventKind]:
        return EventKind.from_type(self.type)

    @property
    def object(self) -> Mapping[str, Any]:
        obj = self.data.get("object")
        return obj if isinstance(obj, Mapping) else MappingProxyType({})

    @property
    def previous_attributes(self) -> Optional[Mapping[str, Any]]:
        return self.data.get("previous_attributes")

    def summary(self) -> Dict[str, Any]:
        return {
            "event_id": self.id,
            "event_type": self.type,
            "object_id": self.object.get("id"),
            "account": self.account,
            "livemode": self.livemode,
        }


def parse_event(raw: Union[bytes, str, Dict[str, Any]]) -> WebhookEvent:
    """Parse a raw webhook body into a ``WebhookEvent``.

    Requires a string ``id``, a string ``type`` and an object ``data.object``.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EventParseError(f"body is not utf-8: {e}") from e

    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise EventParseError(f"invalid json: {e}") from e
    else:
        payload = raw

    if not isinstance(payload, dict):
        raise EventParseError("event payload must be a JSON object")

    event_id = payload.get("id")
    event_type = payload.get("type")
    if not isinstance(event_id, str) or not event_id:
        raise EventParseError("event id is missing")
    if not isinstance(event_type, str) or not event_type:
        raise EventParseError("event type is missing")

    data = payload.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("object"), dict):
        raise EventParseError("event data.object is missing")

    created = payload.get("created")
    if created is not None:
        try:
            created = int(created)
        except (TypeError, ValueError):
            raise EventParseError(f"invalid created timestamp: {created!r}")

    request = payload.get("request")
    if isinstance(request, str):
        # older API versions send the request id as a bare string
        request = {"id": request}
    elif not isinstance(request, dict):
        request = {}

    try:
        pending = int(payload.get("pending_webhooks") or 0)
    except (TypeError, ValueError):
        pending = 0

    return WebhookEvent(
        id=event_id,
        type=event_type,
        created=created,
        livemode=bool(payload.get("livemode", False)),
        data=_freeze(data),
        account=payload.get("account"),
        pending_webhooks=pending,
        request=_freeze(request),
    )
