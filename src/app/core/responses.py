"""
공통 응답 모델 및 예외 클래스
"""
from typing import Generic, TypeVar, Optional, Any, Dict
from pydantic import BaseModel, ConfigDict
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')

class APIResponse(BaseModel, Generic[T]):
    """표준 API 응답 모델"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "success",
                "data": {"key": "value"},
                "message": "작업이 성공적으로 완료되었습니다."
            }
        }
    )

    status: str  # "success" or "error"
    data: Optional[T] = None
    message: Optional[str] = None
    error_code: Optional[str] = None

# 커스텀 예외 클래스들
class BusinessException(Exception):
    """비즈니스 로직 예외"""
    def __init__(self, message: str, error_code: str = None, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

class NotFoundException(BusinessException):
    """리소스 찾을 수 없음 예외"""
    def __init__(self, message: str = "요청한 리소스를 찾을 수 없습니다"):
        super().__init__(message, "NOT_FOUND", 404)

class ValidationException(BusinessException):
    """입력 검증 예외"""
    def __init__(self, message: str = "입력 데이터가 유효하지 않습니다", errors: list = None):
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.errors = errors or []

class IntegrityFailure(BusinessException):
    """웹훅 서명 누락/불일치 - 디스패치 전에 거부"""
    def __init__(self, message: str = "invalid signature"):
        super().__init__(message, "INVALID_SIGNATURE", 400)

class ConfigurationFailure(BusinessException):
    """시설 결제 설정 누락"""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, "PAYMENT_CONFIG_MISSING", status_code)

class ProviderFailure(BusinessException):
    """결제 프로바이더 호출 실패 (거절/오류)"""
    def __init__(
        self,
        provider: str,
        message: str = None,
        *,
        provider_status: int = None,
        provider_code: str = None,
        retryable: bool = False,
        status_code: int = 502,
    ):
        msg = message or f"{provider} 서비스 호출에 실패했습니다"
        super().__init__(msg, "PROVIDER_ERROR", status_code)
        self.provider = provider
        self.provider_status = provider_status
        self.provider_code = provider_code
        self.retryable = retryable

class ProviderTimeout(ProviderFailure):
    """프로바이더 응답 시간 초과 - 재시도 가능한 실패"""
    def __init__(self, provider: str, timeout: float):
        super().__init__(
            provider,
            f"{provider} 응답이 {timeout:g}초 내에 도착하지 않았습니다",
            provider_code="timeout",
            retryable=True,
            status_code=504,
        )
        self.error_code = "PROVIDER_TIMEOUT"
        self.timeout = timeout

class LedgerWriteError(Exception):
    """거래 원장 기록 실패"""
    def __init__(self, message: str, record: Dict[str, Any] = None):
        super().__init__(message)
        self.record = record or {}

class ReconciliationGap(Exception):
    """프로바이더 캡처는 성공했으나 원장 기록이 실패한 상태"""
    def __init__(
        self,
        order_id: str,
        capture_id: Optional[str],
        cause: BaseException,
        record: Dict[str, Any] = None,
    ):
        super().__init__(f"capture {capture_id or order_id} has no ledger entry: {cause}")
        self.order_id = order_id
        self.capture_id = capture_id
        self.cause = cause
        self.record = record or {}

# 응답 헬퍼 함수들
def success_response(data: Any = None, message: str = "성공") -> APIResponse:
    """성공 응답 생성"""
    return APIResponse(status="success", data=data, message=message)

def error_response(
    message: str = "오류가 발생했습니다",
    error_code: str = None,
    data: Any = None
) -> APIResponse:
    """오류 응답 생성"""
    return APIResponse(
        status="error",
        message=message,
        error_code=error_code,
        data=data
    )
