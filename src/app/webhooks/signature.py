"""
Webhook signature verification (HMAC-SHA256 with timestamp window)

Header format: ``t=<unix seconds>,v1=<hex digest>[,v1=<hex digest>...]``
Signed payload: ``f"{t}.{raw_body}"``
"""
import hashlib
import hmac
import logging
import time
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300
SIGNATURE_SCHEME = "v1"


def _to_bytes(value: Union[bytes, str]) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def _sign(raw_body: Union[bytes, str], secret: str, timestamp: int) -> str:
    payload = str(timestamp).encode("utf-8") + b"." + _to_bytes(raw_body)
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def compute_signature(raw_body: Union[bytes, str], secret: str, timestamp: Optional[int] = None) -> str:
    """Build a signature header for ``raw_body`` (used to sign test/replay payloads)."""
    ts = int(time.time()) if timestamp is None else int(timestamp)
    return f"t={ts},{SIGNATURE_SCHEME}={_sign(raw_body, secret, ts)}"


def parse_signature_header(header: str) -> Tuple[Optional[str], List[str]]:
    timestamp: Optional[str] = None
    signatures: List[str] = []
    for chunk in header.split(","):
        chunk = chunk.strip()
        if not chunk or "=" not in chunk:
            continue
        key, value = chunk.split("=", 1)
        key = key.strip()
        value = value.strip()
        if key == "t":
            timestamp = value
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)
    return timestamp, signatures


def verify_signature(
    raw_body: Union[bytes, str],
    signature_header: Optional[str],
    secret: Optional[str],
    *,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> bool:
    """Verify a webhook signature header. Never raises; any doubt returns False."""

    if not secret:
        logger.warning("[WEBHOOK] no signing secret configured; rejecting event")
        return False

    if not signature_header:
        logger.warning("[WEBHOOK] missing signature header")
        return False

    timestamp_raw, signatures = parse_signature_header(signature_header)
    if not timestamp_raw or not signatures:
        logger.warning("[WEBHOOK] signature header missing t/v1 component")
        return False

    try:
        timestamp = int(timestamp_raw)
    except ValueError:
        logger.warning("[WEBHOOK] signature timestamp is not an integer: %s", timestamp_raw)
        return False

    current = time.time() if now is None else now
    if tolerance > 0 and abs(current - timestamp) > tolerance:
        logger.warning(
            "[WEBHOOK] signature timestamp outside tolerance: ts=%s now=%s tolerance=%s",
            timestamp,
            int(current),
            tolerance,
        )
        return False

    expected = _sign(raw_body, secret, timestamp)
    if any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        return True

    logger.error("[WEBHOOK] signature mismatch")
    return False
