"""
결제 API 요청 스키마
"""
from .payments import CaptureOrderRequest, CreateOrderRequest, PayPalConfigUpdateRequest

__all__ = [
    "CaptureOrderRequest",
    "CreateOrderRequest",
    "PayPalConfigUpdateRequest",
]
