"""
캡처 금액 분해 (gross / fee / net / credited)

모든 금액은 Decimal로 계산하고 통화 소수 2자리로 반올림한다.
"""
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# 이 상태의 캡처만 실제로 입금된 것으로 본다
CAPTURE_COMPLETED = "COMPLETED"

# 카드 결제 수수료 보전 공식: charge = 1.03 * topUp + 0.30
SURCHARGE_RATE = Decimal("1.03")
SURCHARGE_FIXED = Decimal("0.30")


@dataclass(slots=True)
class CustomField:
    resident_id: Optional[str] = None
    facility_id: Optional[str] = None
    trust_top_up: Optional[Decimal] = None
    card_charge: Optional[Decimal] = None


@dataclass(slots=True)
class CapturedPayment:
    capture_id: Optional[str]
    currency: str
    gross_amount: Optional[Decimal] = None
    fee_amount: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    # 주문 생성 시 요청한 금액 (purchase_unit.amount)
    requested_amount: Optional[Decimal] = None
    custom: CustomField = field(default_factory=CustomField)
    status: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == CAPTURE_COMPLETED


@dataclass(frozen=True, slots=True)
class ReconciledAmounts:
    currency: str
    gross_amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    credited_amount: Decimal
    trust_top_up: Optional[Decimal] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "gross_amount": str(self.gross_amount),
            "fee_amount": str(self.fee_amount),
            "net_amount": str(self.net_amount),
            "credited_amount": str(self.credited_amount),
            "trust_top_up": str(self.trust_top_up) if self.trust_top_up is not None else None,
        }


def to_money(value: Any) -> Optional[Decimal]:
    """문자열/숫자를 2자리 Decimal로 변환 (변환 불가 시 None)"""
    try:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _get(d: Any, *keys: Any, default=None):
    cur = d
    for k in keys:
        if isinstance(k, int):
            if not isinstance(cur, list) or len(cur) <= k:
                return default
        elif not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def parse_custom_field(raw: Any) -> CustomField:
    """주문 생성 시 첨부한 custom_id(JSON)를 해석"""
    data: Dict[str, Any] = {}
    if isinstance(raw, dict):
        data = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("[PAYPAL] failed to decode custom_id payload: %s", raw)
            parsed = None
        if isinstance(parsed, dict):
            data = parsed
        elif parsed is not None:
            logger.warning("[PAYPAL] custom_id parsed to non-dict type: %s", type(parsed))

    resident_id = data.get("residentId") or data.get("resident_id")
    facility_id = data.get("facilityId") or data.get("facility_id")
    return CustomField(
        resident_id=str(resident_id) if resident_id else None,
        facility_id=str(facility_id) if facility_id else None,
        trust_top_up=to_money(data.get("trustTopUp", data.get("trust_top_up"))),
        card_charge=to_money(data.get("cardCharge", data.get("card_charge"))),
    )


def extract_captured_payment(result: Dict[str, Any]) -> CapturedPayment:
    """PayPal 주문 캡처 응답에서 첫 번째 purchase unit의 캡처 정보를 추출"""
    unit = _get(result, "purchase_units", 0, default={}) or {}
    capture = _get(unit, "payments", "captures", 0, default={}) or {}
    breakdown = capture.get("seller_receivable_breakdown") or {}
    status = capture.get("status") or result.get("status")

    currency = (
        _get(capture, "amount", "currency_code")
        or _get(unit, "amount", "currency_code")
        or _get(breakdown, "gross_amount", "currency_code")
        or "USD"
    )

    gross = to_money(_get(breakdown, "gross_amount", "value"))
    if gross is None:
        gross = to_money(_get(capture, "amount", "value"))

    return CapturedPayment(
        capture_id=capture.get("id"),
        currency=str(currency).upper(),
        gross_amount=gross,
        fee_amount=to_money(_get(breakdown, "paypal_fee", "value")),
        net_amount=to_money(_get(breakdown, "net_amount", "value")),
        requested_amount=to_money(_get(unit, "amount", "value")),
        custom=parse_custom_field(unit.get("custom_id")),
        status=str(status).upper() if status else None,
    )


def reconcile(capture: CapturedPayment) -> ReconciledAmounts:
    """
    캡처 금액을 gross/fee/net/credited로 분해한다.

    우선순위:
        gross    = 보고된 gross, 없으면 주문 요청 금액
        fee      = 보고된 수수료, 없으면 0
        net      = 보고된 net, 없으면 gross - fee
        credited = custom 필드의 trustTopUp(> 0), 없으면 net
    """
    gross = capture.gross_amount
    if gross is None:
        gross = capture.requested_amount if capture.requested_amount is not None else ZERO

    fee = capture.fee_amount if capture.fee_amount is not None else ZERO

    net = capture.net_amount
    if net is None:
        net = (gross - fee).quantize(CENT, rounding=ROUND_HALF_UP)

    top_up = capture.custom.trust_top_up
    if top_up is not None and top_up <= ZERO:
        top_up = None

    return ReconciledAmounts(
        currency=capture.currency,
        gross_amount=gross,
        fee_amount=fee,
        net_amount=net,
        credited_amount=top_up if top_up is not None else net,
        trust_top_up=top_up,
    )


def compute_card_charge(top_up: Any) -> Decimal:
    """신탁 충전액에 결제 수수료를 더한 카드 청구액"""
    amount = to_money(top_up)
    if amount is None or amount <= ZERO:
        raise ValueError(f"invalid top-up amount: {top_up!r}")
    return (SURCHARGE_RATE * amount + SURCHARGE_FIXED).quantize(CENT, rounding=ROUND_HALF_UP)
