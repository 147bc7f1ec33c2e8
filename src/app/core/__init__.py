"""Core 패키지 초기화 (경량화)

모듈 간 순환 의존을 피하기 위해 최소한의 심볼만 노출합니다.
"""
from .config import settings
from .container import DIContainer
from .responses import (
    APIResponse, success_response, error_response,
    BusinessException,
    NotFoundException, ValidationException,
    IntegrityFailure, ConfigurationFailure,
    ProviderFailure, ProviderTimeout,
    LedgerWriteError, ReconciliationGap,
)

__all__ = [
    'settings',
    'DIContainer',
    'APIResponse',
    'success_response',
    'error_response',
    'BusinessException',
    'NotFoundException',
    'ValidationException',
    'IntegrityFailure',
    'ConfigurationFailure',
    'ProviderFailure',
    'ProviderTimeout',
    'LedgerWriteError',
    'ReconciliationGap',
]
