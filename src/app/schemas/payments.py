from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CaptureOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    facility_id: Optional[str] = Field(None, alias="facilityId", description="주문을 생성한 시설 ID")


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    facility_id: Optional[str] = Field(None, alias="facilityId", description="결제를 받을 시설 ID")
    resident_id: Optional[str] = Field(None, alias="residentId", description="충전 대상 입주자 ID")
    amount: Optional[Decimal] = Field(None, description="청구 금액 (없으면 trustTopUp 기준으로 계산)")
    currency: str = Field("USD", min_length=3, max_length=3, description="ISO 4217 통화 코드")
    description: Optional[str] = Field(None, description="주문 설명")
    trust_top_up: Optional[Decimal] = Field(None, alias="trustTopUp", description="신탁 계좌에 적립할 금액")
    return_url: Optional[str] = Field(None, alias="returnUrl")
    cancel_url: Optional[str] = Field(None, alias="cancelUrl")


class PayPalConfigUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    facility_id: Optional[str] = Field(None, alias="facilityId")
    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")
    environment: Optional[str] = Field("sandbox", description="sandbox | live")
    return_url: Optional[str] = Field(None, alias="returnUrl")
    cancel_url: Optional[str] = Field(None, alias="cancelUrl")
