"""
서비스 기본 클래스
"""
import logging
from typing import Dict, Any, Optional
from core.responses import ValidationException
from core.interfaces import IDatabaseHelper

logger = logging.getLogger(__name__)

class BaseService:
    """모든 서비스의 기본 클래스"""

    def __init__(self, db_helper: IDatabaseHelper):
        self.db_helper = db_helper
        self.logger = logging.getLogger(self.__class__.__name__)

    async def log_event(self, event_type: str, data: Dict[str, Any] = None, user_id: Optional[str] = None) -> bool:
        """system_logs 기록 (실패해도 호출자 흐름은 유지)"""
        try:
            return await self.db_helper.log_system_event(
                user_id=user_id,
                event_type=event_type,
                event_data=data or {},
            )
        except Exception as e:
            self.logger.warning(f"이벤트 로깅 실패: {event_type} - {e}")
            return False

    def validate_required_fields(self, data: Dict[str, Any], required_fields: list):
        """필수 필드 검증"""
        missing_fields = [field for field in required_fields if not data.get(field)]
        if missing_fields:
            raise ValidationException(
                f"필수 필드가 누락되었습니다: {', '.join(missing_fields)}",
                errors=missing_fields,
            )
