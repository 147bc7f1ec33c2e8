"""
서비스 인터페이스 정의
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional


class IAuthService(ABC):
    """인증(신원) 서비스 인터페이스"""

    @abstractmethod
    async def resolve_user_from_auth_token(self, token: Optional[str]) -> Optional[str]:
        """베어러 토큰으로 내부 users.id 조회 (실패 시 None)"""
        pass


class ITransactionLedger(ABC):
    """거래 원장 인터페이스"""

    @abstractmethod
    async def insert_transaction(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        거래 1건 추가.

        provider_capture_id가 이미 기록되어 있으면 새 행을 만들지 않고
        기존 행과 함께 duplicate=True를 반환한다. 실패 시 LedgerWriteError.
        """
        pass


class IFacilityConfigRepository(ABC):
    """시설 결제 설정 저장소 인터페이스"""

    @abstractmethod
    async def get_facility(self, facility_id: str) -> Optional[Dict[str, Any]]:
        """시설 행 조회"""
        pass

    @abstractmethod
    async def get_facility_payment_config(self, facility_id: str) -> Optional[Dict[str, Any]]:
        """시설별 PayPal 설정 조회 (시설이 없으면 None)"""
        pass

    @abstractmethod
    async def update_facility_payment_config(self, facility_id: str, fields: Dict[str, Any]) -> bool:
        """시설별 PayPal 설정 저장"""
        pass


class IDatabaseHelper(ITransactionLedger, IFacilityConfigRepository):
    """데이터베이스 헬퍼 인터페이스"""

    @abstractmethod
    async def log_system_event(self, user_id: str = None, event_type: str = 'info', event_data: Dict[str, Any] = None) -> bool:
        """시스템 이벤트 로깅"""
        pass

    @abstractmethod
    async def has_processed_webhook_event(self, provider: str, event_id: str) -> bool:
        """웹훅 이벤트 처리 이력 확인"""
        pass

    @abstractmethod
    async def record_webhook_event(self, provider: str, event_id: str, status: str, payload: Dict[str, Any] = None) -> bool:
        """웹훅 이벤트 처리 이력 기록"""
        pass
