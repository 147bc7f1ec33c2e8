"""PayPal REST(v2 Orders) 비동기 클라이언트"""
from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS: Dict[str, str] = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class PayPalAPIError(RuntimeError):
    """PayPal REST API 오류"""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Optional[Dict[str, Any]] = None,
        *,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}
        self.code = code or self._extract_error_code()

    def _extract_error_code(self) -> Optional[str]:
        """응답 페이로드에서 오류 코드를 추출 (details[0].issue > name > error)"""

        if not isinstance(self.payload, dict):
            return None
        details = self.payload.get("details")
        if isinstance(details, list) and details and isinstance(details[0], dict):
            issue = details[0].get("issue")
            if issue:
                return issue
        return self.payload.get("name") or self.payload.get("error")

    @property
    def is_timeout(self) -> bool:
        return self.code == "timeout"

    @property
    def debug_id(self) -> Optional[str]:
        return self.payload.get("debug_id") if isinstance(self.payload, dict) else None


class PayPalClient:
    """시설 단위 자격 증명으로 생성하는 PayPal REST 클라이언트"""

    ERROR_CODE_MESSAGES: Dict[str, str] = {
        "ORDER_ALREADY_CAPTURED": "이미 캡처된 PayPal 주문입니다.",
        "ORDER_NOT_APPROVED": "구매자가 아직 승인하지 않은 PayPal 주문입니다.",
        "INSTRUMENT_DECLINED": "결제 수단이 거절되었습니다.",
        "RESOURCE_NOT_FOUND": "요청한 PayPal 주문을 찾을 수 없습니다.",
        "invalid_client": "PayPal 클라이언트 자격 증명이 올바르지 않습니다.",
        "PERMISSION_DENIED": "PayPal API 권한이 거부되었습니다.",
        "RATE_LIMIT_REACHED": "PayPal API 호출이 너무 많습니다. 잠시 후 다시 시도하세요.",
    }

    STATUS_MESSAGES: Dict[int, str] = {
        400: "PayPal API 요청 파라미터가 올바르지 않습니다.",
        401: "PayPal API 인증에 실패했습니다.",
        403: "PayPal API 접근 권한이 없습니다.",
        404: "요청한 PayPal 리소스를 찾지 못했습니다.",
        422: "PayPal이 요청을 처리할 수 없습니다.",
        429: "PayPal API 호출이 제한되었습니다. 잠시 후 다시 시도하세요.",
        500: "PayPal API 서버 오류가 발생했습니다.",
        503: "PayPal API 서비스가 일시적으로 불가합니다.",
    }

    RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}

    # 토큰 만료 직전 갱신 여유 (초)
    TOKEN_EXPIRY_MARGIN = 60

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        environment: str = "sandbox",
        timeout: float = 10.0,
        *,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ) -> None:
        if not client_id or not client_id.strip() or not client_secret or not client_secret.strip():
            raise ValueError("PayPal 클라이언트 ID/시크릿이 설정되지 않았습니다.")

        env = (environment or "sandbox").strip().lower()
        if env not in PAYPAL_BASE_URLS:
            raise ValueError(f"지원하지 않는 PayPal 환경입니다: {environment}")

        self.client_id = client_id
        self.client_secret = client_secret
        self.environment = env
        self.base_url = PAYPAL_BASE_URLS[env]
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.backoff_factor = max(0.0, float(backoff_factor))
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    async def _get_access_token(self) -> str:
        """client_credentials 토큰 발급 (만료 전까지 캐시)"""

        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        basic = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        data = await self._send(
            "POST",
            "/v1/oauth2/token",
            headers={
                "Authorization": f"Basic {basic}",
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            data={"grant_type": "client_credentials"},
            retryable=True,
        )

        token = data.get("access_token")
        if not token:
            raise PayPalAPIError("PayPal 액세스 토큰을 발급받지 못했습니다.", 401, data, code="invalid_token")

        expires_in = int(data.get("expires_in") or 0)
        self._access_token = token
        self._token_expires_at = time.monotonic() + max(0, expires_in - self.TOKEN_EXPIRY_MARGIN)
        return token

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        *,
        extra_headers: Optional[Dict[str, str]] = None,
        retryable: bool = True,
    ) -> Dict[str, Any]:
        token = await self._get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra_headers:
            headers.update(extra_headers)
        return await self._send(method, path, headers=headers, json=json, retryable=retryable)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        retryable: bool = True,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        attempts = (self.max_retries if retryable else 0) + 1

        for attempt in range(attempts):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, json=json, data=data)
            except httpx.TimeoutException as exc:
                logger.warning(
                    "[PAYPAL] API request timeout: %s %s attempt=%s timeout=%s",
                    method,
                    path,
                    attempt + 1,
                    self.timeout,
                )
                if attempt == attempts - 1:
                    raise PayPalAPIError(
                        "PayPal API 응답 시간이 초과되었습니다.",
                        status_code=0,
                        payload={"message": str(exc)},
                        code="timeout",
                    ) from exc
                await self._sleep_backoff(attempt)
                continue
            except httpx.RequestError as exc:
                logger.warning(
                    "[PAYPAL] API request network error: %s %s attempt=%s error=%s",
                    method,
                    path,
                    attempt + 1,
                    exc,
                )
                if attempt == attempts - 1:
                    raise PayPalAPIError(
                        "PayPal API 네트워크 오류가 발생했습니다.",
                        status_code=0,
                        payload={"message": str(exc)},
                        code="network_error",
                    ) from exc
                await self._sleep_backoff(attempt)
                continue

            if response.status_code >= 400:
                payload = self._safe_json(response)
                error = PayPalAPIError("", response.status_code, payload)
                message = self._resolve_error_message(payload, error.code, response.status_code)
                error.args = (message,)

                if self._is_retryable_status(response.status_code) and attempt < attempts - 1:
                    logger.warning(
                        "[PAYPAL] API request retry: %s %s status=%s code=%s attempt=%s",
                        method,
                        path,
                        response.status_code,
                        error.code,
                        attempt + 1,
                    )
                    await self._sleep_backoff(attempt)
                    continue

                logger.error(
                    "[PAYPAL] API request failed: %s %s status=%s code=%s debug_id=%s",
                    method,
                    path,
                    response.status_code,
                    error.code,
                    error.debug_id,
                )
                raise error

            if response.status_code == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                logger.error("[PAYPAL] API 응답 파싱 실패: %s", exc)
                raise PayPalAPIError(
                    "PayPal API 응답을 파싱하지 못했습니다",
                    response.status_code,
                    payload={"message": str(exc)},
                    code="parse_error",
                ) from exc

        raise PayPalAPIError("PayPal API 요청이 반복적으로 실패했습니다.", status_code=0)

    async def create_order(self, body: Dict[str, Any], request_id: Optional[str] = None) -> Dict[str, Any]:
        """주문 생성 (intent=CAPTURE)"""

        headers = {"Prefer": "return=representation"}
        if request_id:
            headers["PayPal-Request-Id"] = request_id
        return await self._request(
            "POST",
            "/v2/checkout/orders",
            json=body,
            extra_headers=headers,
            retryable=bool(request_id),
        )

    async def capture_order(self, order_id: str, request_id: Optional[str] = None) -> Dict[str, Any]:
        """승인된 주문 캡처 - 재시도하지 않는다"""

        headers = {"Prefer": "return=representation"}
        if request_id:
            headers["PayPal-Request-Id"] = request_id
        return await self._request(
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            json={},
            extra_headers=headers,
            retryable=False,
        )

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """주문 상세 조회"""

        return await self._request("GET", f"/v2/checkout/orders/{order_id}")

    async def _sleep_backoff(self, attempt: int) -> None:
        """재시도 전 지수 백오프 딜레이"""

        delay = self.backoff_factor * (2**attempt)
        if delay > 0:
            await asyncio.sleep(delay)

    def _is_retryable_status(self, status_code: int) -> bool:
        """HTTP 상태 코드 기준 재시도 가능 여부"""

        return status_code in self.RETRYABLE_STATUS

    def _resolve_error_message(self, payload: Dict[str, Any], code: Optional[str], status_code: int) -> str:
        """PayPal 오류 응답을 기반으로 메시지 결정"""

        if code and code in self.ERROR_CODE_MESSAGES:
            return self.ERROR_CODE_MESSAGES[code]

        message = payload.get("message") or payload.get("error_description") if isinstance(payload, dict) else None
        if isinstance(message, str) and message.strip():
            return message

        status_message = self.STATUS_MESSAGES.get(status_code)
        if status_message:
            return status_message

        return "PayPal API 요청에 실패했습니다"

    @staticmethod
    def _safe_json(response: httpx.Response) -> Dict[str, Any]:
        """JSON 파싱 실패 시 안전하게 fallback"""

        try:
            payload = response.json()
            return payload if isinstance(payload, dict) else {"data": payload}
        except ValueError:
            return {"message": response.text}
