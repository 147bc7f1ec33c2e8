"""
결제 API 라우터 (PayPal 주문 생성/캡처, 시설 결제 설정)
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, Request

from core.container import DIContainer, get_container
from core.interfaces import IAuthService
from core.responses import NotFoundException
from schemas import CaptureOrderRequest, CreateOrderRequest, PayPalConfigUpdateRequest
from services.payment_capture_service import PaymentCaptureService
from services.payment_config_service import PaymentConfigService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

SUPPORTED_PAYMENT_PROVIDERS = {"paypal"}


def _ensure_provider(provider: str) -> str:
    normalized = (provider or "").strip().lower()
    if normalized not in SUPPORTED_PAYMENT_PROVIDERS:
        raise NotFoundException(f"지원하지 않는 결제 프로바이더입니다: {provider}")
    return normalized


def get_bearer_token(request: Request) -> Optional[str]:
    """Authorization 헤더의 베어러 토큰 (없으면 None)"""
    header = request.headers.get("authorization") or ""
    if header[:7].lower() == "bearer ":
        token = header[7:].strip()
        return token or None
    return None


@router.post("/{provider}/orders/{order_id}/capture")
async def capture_order(
    provider: str,
    order_id: str,
    body: CaptureOrderRequest,
    container: DIContainer = Depends(get_container),
    auth_token: Optional[str] = Depends(get_bearer_token),
):
    """승인된 주문 캡처 후 원장 반영 - 원장 실패 시에도 캡처 결과는 반환"""
    _ensure_provider(provider)
    service: PaymentCaptureService = container.get(PaymentCaptureService)
    result = await service.confirm_capture(order_id, body.facility_id, auth_token)
    return {"success": True, "capture": result.capture}


@router.post("/{provider}/orders")
async def create_order(
    provider: str,
    body: CreateOrderRequest,
    container: DIContainer = Depends(get_container),
):
    _ensure_provider(provider)
    service: PaymentCaptureService = container.get(PaymentCaptureService)
    return await service.create_order(
        facility_id=body.facility_id,
        resident_id=body.resident_id,
        amount=body.amount,
        currency=body.currency,
        description=body.description,
        return_url=body.return_url,
        cancel_url=body.cancel_url,
        trust_top_up=body.trust_top_up,
    )


@router.get("/{provider}/config")
async def get_payment_config(
    provider: str,
    facility_id: Optional[str] = Query(None, alias="facilityId"),
    container: DIContainer = Depends(get_container),
):
    """SDK 로딩용 공개 설정"""
    _ensure_provider(provider)
    service: PaymentConfigService = container.get(PaymentConfigService)
    return await service.public_config(facility_id)


@router.post("/{provider}/config")
async def save_payment_config(
    provider: str,
    body: PayPalConfigUpdateRequest,
    container: DIContainer = Depends(get_container),
    auth_token: Optional[str] = Depends(get_bearer_token),
):
    _ensure_provider(provider)
    service: PaymentConfigService = container.get(PaymentConfigService)
    updated_by = None
    if auth_token:
        updated_by = await container.get(IAuthService).resolve_user_from_auth_token(auth_token)
    await service.save(
        body.facility_id,
        body.client_id,
        body.client_secret,
        environment=body.environment,
        return_url=body.return_url,
        cancel_url=body.cancel_url,
        updated_by=updated_by,
    )
    return {"success": True}
