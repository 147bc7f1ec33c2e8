"""
PayPal 주문 생성/캡처 오케스트레이터

캡처 흐름:
    토큰 -> created_by 확인 -> 시설 결제 설정 로드 -> 시설 환경용 클라이언트 생성
    -> 캡처 -> 금액 분해 -> 원장 기록 -> 프로바이더 원본 응답 반환

캡처 이후 원장 기록이 실패하면 돈은 이미 이동한 상태이므로 요청은 성공으로
응답하고 reconciliation gap 으로 기록해 운영자가 수동 대사하도록 한다.
"""
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from core.base_service import BaseService
from core.config import Settings, settings as default_settings
from core.interfaces import IAuthService, IDatabaseHelper
from core.responses import (
    LedgerWriteError,
    ProviderFailure,
    ProviderTimeout,
    ReconciliationGap,
    ValidationException,
)
from services.amount_reconciliation import (
    ReconciledAmounts,
    ZERO,
    compute_card_charge,
    extract_captured_payment,
    reconcile,
    to_money,
)
from services.ledger_writer import LedgerEntry, LedgerWriter, build_capture_description
from services.payment_config_service import FacilityPaymentConfig, PaymentConfigService
from services.paypal_client import PayPalAPIError, PayPalClient

logger = logging.getLogger(__name__)

PROVIDER_NAME = "PayPal"
DEFAULT_ORDER_DESCRIPTION = "Resident Trust Deposit"

PayPalClientFactory = Callable[[FacilityPaymentConfig, float], PayPalClient]


def default_client_factory(config: FacilityPaymentConfig, timeout: float) -> PayPalClient:
    return PayPalClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        environment=config.environment,
        timeout=timeout,
    )


def capture_request_id(order_id: str) -> str:
    """같은 주문의 캡처 재요청이 프로바이더에서 동일 요청으로 처리되도록 하는 키"""
    return f"capture-{order_id}"


@dataclass
class CaptureResult:
    capture: Dict[str, Any]
    ledger_entry: Optional[LedgerEntry] = None
    amounts: Optional[ReconciledAmounts] = None
    reconciliation_gap: Optional[ReconciliationGap] = None

    @property
    def recorded(self) -> bool:
        return self.ledger_entry is not None


class PaymentCaptureService(BaseService):
    """PayPal 결제 캡처 및 원장 반영"""

    def __init__(
        self,
        db_helper: IDatabaseHelper,
        config_service: PaymentConfigService,
        ledger_writer: LedgerWriter,
        auth_service: IAuthService,
        settings: Settings = None,
        client_factory: Optional[PayPalClientFactory] = None,
    ):
        super().__init__(db_helper)
        self.config_service = config_service
        self.ledger_writer = ledger_writer
        self.auth_service = auth_service
        self.settings = settings or default_settings
        self.client_factory = client_factory or default_client_factory

    def _build_client(self, config: FacilityPaymentConfig) -> PayPalClient:
        return self.client_factory(config, float(self.settings.PAYPAL_TIMEOUT_SECONDS))

    def _provider_error(self, error: PayPalAPIError) -> ProviderFailure:
        if error.is_timeout:
            return ProviderTimeout(PROVIDER_NAME, float(self.settings.PAYPAL_TIMEOUT_SECONDS))
        return ProviderFailure(
            PROVIDER_NAME,
            str(error) or None,
            provider_status=error.status_code or None,
            provider_code=error.code,
            retryable=error.status_code in PayPalClient.RETRYABLE_STATUS,
        )

    async def confirm_capture(
        self,
        order_id: str,
        facility_id: str,
        auth_token: Optional[str] = None,
    ) -> CaptureResult:
        """
        승인된 PayPal 주문을 캡처하고 입주자 신탁 계좌에 credit 1건을 기록.

        캡처 상태가 COMPLETED 가 아니면(PENDING, DECLINED 등) 원장에 기록하지 않고
        capture_not_completed 시스템 로그만 남긴 뒤 원본 응답을 반환한다.

        Raises:
            ValidationException: 주문/시설 ID 누락, 캡처 결과에 입주자/금액 없음
            ConfigurationFailure: 시설 결제 설정 없음 (프로바이더 호출 전)
            ProviderFailure: 프로바이더 거절 (시간 초과는 ProviderTimeout)
        """
        if not order_id:
            raise ValidationException("orderId가 필요합니다")
        if not facility_id:
            raise ValidationException("facilityId가 필요합니다")

        created_by = await self.auth_service.resolve_user_from_auth_token(auth_token)
        config = await self.config_service.load(facility_id)
        client = self._build_client(config)

        log_extra = {"order_id": order_id, "facility_id": facility_id}
        try:
            capture = await client.capture_order(order_id, request_id=capture_request_id(order_id))
        except PayPalAPIError as e:
            logger.error(
                "[PAYPAL] capture failed: %s (status=%s code=%s)",
                e,
                e.status_code,
                e.code,
                extra=log_extra,
            )
            raise self._provider_error(e) from e

        payment = extract_captured_payment(capture)
        if not payment.completed:
            logger.warning(
                "[PAYPAL] capture %s not completed (status=%s); ledger not credited",
                payment.capture_id,
                payment.status,
                extra={**log_extra, "capture_id": payment.capture_id, "capture_status": payment.status},
            )
            await self.log_event(
                "capture_not_completed",
                {
                    "provider": PROVIDER_NAME.lower(),
                    "order_id": order_id,
                    "capture_id": payment.capture_id,
                    "facility_id": facility_id,
                    "resident_id": payment.custom.resident_id,
                    "status": payment.status,
                },
                user_id=created_by,
            )
            return CaptureResult(capture=capture)

        resident_id = payment.custom.resident_id
        captured_amount = payment.gross_amount if payment.gross_amount is not None else payment.requested_amount

        if not resident_id or captured_amount is None or captured_amount <= ZERO:
            logger.error(
                "[PAYPAL] capture %s has no resident or amount; custom_id missing?",
                payment.capture_id,
                extra={**log_extra, "capture_id": payment.capture_id},
            )
            raise ValidationException("Missing residentId or amount from order")

        if payment.custom.facility_id and payment.custom.facility_id != facility_id:
            logger.warning(
                "[PAYPAL] order facility %s differs from request facility",
                payment.custom.facility_id,
                extra={**log_extra, "capture_id": payment.capture_id},
            )

        amounts = reconcile(payment)
        description = build_capture_description(amounts, payment.capture_id, PROVIDER_NAME)

        try:
            entry = await self.ledger_writer.record_credit(
                resident_id,
                facility_id,
                amounts.credited_amount,
                description,
                created_by,
                provider_capture_id=payment.capture_id,
            )
        except LedgerWriteError as e:
            gap = ReconciliationGap(order_id, payment.capture_id, e, e.record)
            logger.critical(
                "[LEDGER] reconciliation gap: capture succeeded but ledger write failed: %s",
                e,
                extra={
                    **log_extra,
                    "capture_id": payment.capture_id,
                    "resident_id": resident_id,
                    "amount": str(amounts.credited_amount),
                },
            )
            await self.log_event(
                "reconciliation_gap",
                {
                    "provider": PROVIDER_NAME.lower(),
                    "order_id": order_id,
                    "capture_id": payment.capture_id,
                    "resident_id": resident_id,
                    "facility_id": facility_id,
                    "amounts": amounts.as_dict(),
                    "description": description,
                    "error": str(e),
                },
                user_id=created_by,
            )
            return CaptureResult(capture=capture, amounts=amounts, reconciliation_gap=gap)

        logger.info(
            "[PAYPAL] capture reconciled: credited %s %s",
            amounts.credited_amount,
            amounts.currency,
            extra={**log_extra, "capture_id": payment.capture_id, "duplicate": entry.duplicate},
        )
        return CaptureResult(capture=capture, ledger_entry=entry, amounts=amounts)

    async def create_order(
        self,
        facility_id: str,
        resident_id: str,
        amount: Any = None,
        currency: str = "USD",
        description: Optional[str] = None,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        trust_top_up: Any = None,
    ) -> Dict[str, Any]:
        """
        intent=CAPTURE 주문 생성.

        trust_top_up 만 주어지면 카드 수수료를 더한 금액(1.03 * topUp + 0.30)을 청구한다.
        custom_id 에는 캡처 시 다시 읽을 입주자/시설/충전액을 JSON으로 싣는다.
        """
        if not facility_id or not resident_id:
            raise ValidationException("amount, facilityId and residentId are required")

        top_up: Optional[Decimal] = None
        card_charge: Optional[Decimal] = None
        if trust_top_up is not None:
            try:
                card_charge = compute_card_charge(trust_top_up)
            except ValueError:
                raise ValidationException("trustTopUp must be a positive amount")
            top_up = to_money(trust_top_up)

        charge = to_money(amount) if amount is not None else card_charge
        if charge is None or charge <= ZERO:
            raise ValidationException("amount, facilityId and residentId are required")

        custom: Dict[str, Any] = {"residentId": resident_id, "facilityId": facility_id}
        if top_up is not None:
            custom["trustTopUp"] = f"{top_up:.2f}"
            custom["cardCharge"] = f"{charge:.2f}"

        config = await self.config_service.load(facility_id)
        client = self._build_client(config)

        body = {
            "intent": "CAPTURE",
            "application_context": {
                "return_url": return_url or config.return_url,
                "cancel_url": cancel_url or config.cancel_url,
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
            },
            "purchase_units": [
                {
                    "amount": {"currency_code": (currency or "USD").upper(), "value": f"{charge:.2f}"},
                    "description": description or DEFAULT_ORDER_DESCRIPTION,
                    "custom_id": json.dumps(custom, separators=(",", ":")),
                    "reference_id": resident_id,
                }
            ],
        }

        try:
            order = await client.create_order(body)
        except PayPalAPIError as e:
            logger.error(
                "[PAYPAL] create order failed: %s (status=%s code=%s)",
                e,
                e.status_code,
                e.code,
                extra={"facility_id": facility_id, "resident_id": resident_id},
            )
            raise self._provider_error(e) from e

        logger.info(
            "[PAYPAL] order created: %s amount=%s %s",
            order.get("id"),
            charge,
            body["purchase_units"][0]["amount"]["currency_code"],
            extra={"facility_id": facility_id, "order_id": order.get("id")},
        )
        return order
