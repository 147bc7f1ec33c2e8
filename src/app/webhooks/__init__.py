"""Webhook event parsing, verification and dispatch."""
from .events import EventKind, EventParseError, WebhookEvent, parse_event, thaw
from .registry import EventRegistry, LazyRegistryLoader
from .dispatcher import DispatchReport, EventDispatcher, HandlerFailure
from .signature import compute_signature, verify_signature

__all__ = [
    'EventKind',
    'EventParseError',
    'WebhookEvent',
    'parse_event',
    'thaw',
    'EventRegistry',
    'LazyRegistryLoader',
    'DispatchReport',
    'EventDispatcher',
    'HandlerFailure',
    'compute_signature',
    'verify_signature',
]
