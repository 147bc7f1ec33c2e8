"""
시설별 PayPal 결제 설정 서비스

시설 행에 저장된 자격 증명이 환경 변수 기본값보다 우선한다.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from core.base_service import BaseService
from core.config import Settings, settings as default_settings
from core.interfaces import IDatabaseHelper
from core.responses import BusinessException, ConfigurationFailure

logger = logging.getLogger(__name__)

PAYPAL_SDK_URL = "https://www.paypal.com/sdk/js"


def normalize_environment(value: Optional[str]) -> str:
    """live 가 아니면 모두 sandbox 로 취급"""
    return "live" if (value or "").strip().lower() == "live" else "sandbox"


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class FacilityPaymentConfig:
    facility_id: Optional[str]
    client_id: str
    client_secret: str
    environment: str
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    # facility | environment
    source: str = "facility"

    def script_url(self, currency: str = "USD") -> str:
        return f"{PAYPAL_SDK_URL}?client-id={self.client_id}&currency={currency}&intent=capture"


class PaymentConfigService(BaseService):
    """시설 결제 설정 조회/저장"""

    def __init__(self, db_helper: IDatabaseHelper, settings: Settings = None):
        super().__init__(db_helper)
        self.settings = settings or default_settings

    async def load(self, facility_id: Optional[str]) -> FacilityPaymentConfig:
        """
        시설 결제 설정 로드.

        자격 증명 필드별로 시설 값 -> 환경 변수 순서로 채운다. 다른 시설의 설정은
        절대 사용하지 않는다. facility_id 가 없으면 환경 변수 설정만 사용한다.

        Raises:
            ConfigurationFailure: 시설이 없으면 404, 자격 증명이 없으면 400
        """
        row: Dict[str, Any] = {}
        if facility_id:
            row = await self.db_helper.get_facility_payment_config(facility_id)
        if row is None:
            raise ConfigurationFailure(f"시설을 찾을 수 없습니다: {facility_id}", status_code=404)

        facility_client_id = _clean(row.get("paypal_client_id"))
        facility_secret = _clean(row.get("paypal_secret_key"))

        client_id = facility_client_id or _clean(self.settings.PAYPAL_CLIENT_ID)
        client_secret = facility_secret or _clean(self.settings.PAYPAL_CLIENT_SECRET)
        if not client_id or not client_secret:
            self.logger.warning(f"[PAYPAL] 시설 결제 설정 없음: facility={facility_id}")
            raise ConfigurationFailure("이 시설에는 PayPal 결제가 설정되어 있지 않습니다")

        config = FacilityPaymentConfig(
            facility_id=facility_id,
            client_id=client_id,
            client_secret=client_secret,
            environment=normalize_environment(
                _clean(row.get("paypal_environment")) or self.settings.PAYPAL_ENVIRONMENT
            ),
            return_url=(
                _clean(row.get("paypal_return_url"))
                or _clean(self.settings.PAYPAL_RETURN_URL)
                or _clean(self.settings.PUBLIC_SITE_URL)
            ),
            cancel_url=(
                _clean(row.get("paypal_cancel_url"))
                or _clean(self.settings.PAYPAL_CANCEL_URL)
                or _clean(self.settings.PUBLIC_SITE_URL)
            ),
            source="facility" if facility_client_id and facility_secret else "environment",
        )
        self.logger.debug(
            "[PAYPAL] payment config loaded",
            extra={"facility_id": facility_id, "environment": config.environment, "source": config.source},
        )
        return config

    async def public_config(self, facility_id: Optional[str], currency: str = "USD") -> Dict[str, Any]:
        """프런트엔드 SDK 로딩용 공개 설정 (시크릿 제외)"""
        config = await self.load(facility_id)
        return {
            "clientId": config.client_id,
            "environment": config.environment,
            "scriptUrl": config.script_url(currency),
        }

    async def save(
        self,
        facility_id: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        environment: Optional[str] = None,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        updated_by: Optional[str] = None,
    ) -> bool:
        """시설 PayPal 설정 저장"""
        client_id = _clean(client_id)
        client_secret = _clean(client_secret)
        self.validate_required_fields(
            {"facilityId": facility_id, "clientId": client_id, "clientSecret": client_secret},
            ["facilityId", "clientId", "clientSecret"],
        )

        facility = await self.db_helper.get_facility(facility_id)
        if facility is None:
            raise ConfigurationFailure(f"시설을 찾을 수 없습니다: {facility_id}", status_code=404)

        fields = {
            "paypal_client_id": client_id,
            "paypal_secret_key": client_secret,
            "paypal_environment": normalize_environment(environment),
            "paypal_return_url": _clean(return_url),
            "paypal_cancel_url": _clean(cancel_url),
        }
        saved = await self.db_helper.update_facility_payment_config(facility_id, fields)
        if not saved:
            raise BusinessException("PayPal 설정 저장에 실패했습니다", "PAYMENT_CONFIG_SAVE_FAILED", 400)

        await self.log_event(
            "paypal_config_updated",
            {"facility_id": facility_id, "environment": fields["paypal_environment"]},
            user_id=updated_by,
        )
        return True
