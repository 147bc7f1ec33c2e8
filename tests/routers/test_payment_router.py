"""결제 라우터 테스트"""
import json

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from core.container import DIContainer
from core.factory import ServiceFactory
from core.interfaces import IAuthService
from core.responses import LedgerWriteError
from main import create_app
from mocks import FakePayPalClient, MockAuthService, MockDatabaseHelper, make_capture_result
from services.ledger_writer import LedgerWriter
from services.payment_capture_service import PaymentCaptureService
from services.payment_config_service import PaymentConfigService
from services.paypal_client import PayPalAPIError


FACILITY = {
    "id": "fac-1",
    "paypal_client_id": "fac-client",
    "paypal_secret_key": "fac-secret",
    "paypal_environment": "sandbox",
}


def _build(paypal_client: FakePayPalClient, facilities=None):
    helper = MockDatabaseHelper(facilities=facilities if facilities is not None else {"fac-1": dict(FACILITY)})
    settings = Settings(PAYPAL_CLIENT_ID=None, PAYPAL_CLIENT_SECRET=None)
    container = ServiceFactory.register_services(
        DIContainer(), helper, MockAuthService({"good-token": "user-1"}), settings
    )
    container.register_singleton(
        PaymentCaptureService,
        PaymentCaptureService(
            db_helper=helper,
            config_service=container.get(PaymentConfigService),
            ledger_writer=container.get(LedgerWriter),
            auth_service=container.get(IAuthService),
            settings=settings,
            client_factory=lambda config, timeout: paypal_client,
        ),
    )
    return TestClient(create_app(container, settings)), helper


def _capture_result():
    custom = json.dumps({"residentId": "res-1", "facilityId": "fac-1", "trustTopUp": "4.50"})
    return make_capture_result(capture_id="CAP-1", custom=custom)


def test_capture_returns_raw_provider_result_and_records_ledger():
    result = _capture_result()
    client, helper = _build(FakePayPalClient(capture_result=result))

    response = client.post(
        "/api/payments/paypal/orders/ORDER-1/capture",
        json={"facilityId": "fac-1"},
        headers={"Authorization": "Bearer good-token"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "capture": result}
    assert len(helper.transactions) == 1
    assert helper.transactions[0]["amount"] == "4.50"
    assert helper.transactions[0]["created_by"] == "user-1"


def test_capture_succeeds_even_when_ledger_write_fails():
    client, helper = _build(FakePayPalClient(capture_result=_capture_result()))
    helper.insert_error = LedgerWriteError("db down")

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert len(helper.logs_of("reconciliation_gap")) == 1


def test_declined_capture_is_returned_without_ledger_entry():
    custom = json.dumps({"residentId": "res-1", "facilityId": "fac-1", "trustTopUp": "4.50"})
    result = make_capture_result(capture_id="CAP-1", custom=custom, status="DECLINED")
    client, helper = _build(FakePayPalClient(capture_result=result))

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 200
    assert response.json()["capture"] == result
    assert helper.transactions == []


def test_capture_requires_facility_id():
    paypal = FakePayPalClient(capture_result=_capture_result())
    client, _ = _build(paypal)

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={})

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"
    assert paypal.capture_calls == []


def test_capture_without_credentials_is_configuration_failure():
    paypal = FakePayPalClient(capture_result=_capture_result())
    client, _ = _build(paypal, facilities={"fac-1": {"id": "fac-1"}})

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "PAYMENT_CONFIG_MISSING"
    assert paypal.capture_calls == []


def test_capture_unknown_facility_is_404():
    client, _ = _build(FakePayPalClient(), facilities={})

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "nope"})

    assert response.status_code == 404


def test_provider_rejection_is_502_with_provider_details():
    error = PayPalAPIError("구매자가 아직 승인하지 않은 PayPal 주문입니다.", 422, {"details": [{"issue": "ORDER_NOT_APPROVED"}]})
    client, helper = _build(FakePayPalClient(error=error))

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 502
    body = response.json()
    assert body["error_code"] == "PROVIDER_ERROR"
    assert body["data"]["provider_code"] == "ORDER_NOT_APPROVED"
    assert body["data"]["provider_status"] == 422
    assert helper.transactions == []


def test_provider_timeout_is_504():
    client, _ = _build(FakePayPalClient(error=PayPalAPIError("timeout", 0, code="timeout")))

    response = client.post("/api/payments/paypal/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 504
    assert response.json()["data"]["retryable"] is True


@pytest.mark.parametrize("provider", ["stripe", "venmo"])
def test_unsupported_payment_provider_is_404(provider):
    client, _ = _build(FakePayPalClient())

    response = client.post(f"/api/payments/{provider}/orders/ORDER-1/capture", json={"facilityId": "fac-1"})

    assert response.status_code == 404


def test_create_order_returns_provider_order():
    paypal = FakePayPalClient()
    client, _ = _build(paypal)

    response = client.post(
        "/api/payments/paypal/orders",
        json={"facilityId": "fac-1", "residentId": "res-1", "trustTopUp": 10},
    )

    assert response.status_code == 200
    assert response.json()["id"] == "ORDER-1"
    unit = paypal.created_orders[0]["purchase_units"][0]
    assert unit["amount"]["value"] == "10.60"


def test_get_public_config():
    client, _ = _build(FakePayPalClient())

    response = client.get("/api/payments/paypal/config", params={"facilityId": "fac-1"})

    assert response.status_code == 200
    body = response.json()
    assert body["clientId"] == "fac-client"
    assert body["environment"] == "sandbox"
    assert "fac-secret" not in response.text


def test_save_config():
    client, helper = _build(FakePayPalClient())

    response = client.post(
        "/api/payments/paypal/config",
        json={"facilityId": "fac-1", "clientId": "new-id", "clientSecret": "new-secret", "environment": "live"},
        headers={"Authorization": "Bearer good-token"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert helper.facilities["fac-1"]["paypal_environment"] == "live"
    assert helper.logs_of("paypal_config_updated")[0]["user_id"] == "user-1"


def test_health():
    client, _ = _build(FakePayPalClient())

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "success"
