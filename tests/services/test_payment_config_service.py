"""PaymentConfigService 테스트"""
import pytest

from core.config import Settings
from core.responses import ConfigurationFailure, ValidationException
from mocks import MockDatabaseHelper
from services.payment_config_service import PaymentConfigService


def _settings(**overrides) -> Settings:
    values = {
        "PAYPAL_CLIENT_ID": None,
        "PAYPAL_CLIENT_SECRET": None,
        "PAYPAL_ENVIRONMENT": "sandbox",
        "PAYPAL_RETURN_URL": None,
        "PAYPAL_CANCEL_URL": None,
        "PUBLIC_SITE_URL": "https://trust.example.com",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.mark.asyncio
async def test_facility_credentials_override_environment():
    helper = MockDatabaseHelper(
        facilities={
            "fac-1": {
                "id": "fac-1",
                "paypal_client_id": "fac-client",
                "paypal_secret_key": "fac-secret",
                "paypal_environment": "LIVE",
                "paypal_return_url": "https://fac.example.com/ok",
            }
        }
    )
    service = PaymentConfigService(helper, _settings(PAYPAL_CLIENT_ID="env-client", PAYPAL_CLIENT_SECRET="env-secret"))

    config = await service.load("fac-1")

    assert config.client_id == "fac-client"
    assert config.client_secret == "fac-secret"
    assert config.environment == "live"
    assert config.return_url == "https://fac.example.com/ok"
    assert config.cancel_url == "https://trust.example.com"
    assert config.source == "facility"


@pytest.mark.asyncio
async def test_environment_fallback_when_facility_has_no_credentials():
    helper = MockDatabaseHelper(facilities={"fac-1": {"id": "fac-1", "paypal_client_id": "  "}})
    service = PaymentConfigService(helper, _settings(PAYPAL_CLIENT_ID="env-client", PAYPAL_CLIENT_SECRET="env-secret"))

    config = await service.load("fac-1")

    assert config.client_id == "env-client"
    assert config.environment == "sandbox"
    assert config.source == "environment"


@pytest.mark.asyncio
async def test_unknown_facility_is_404():
    service = PaymentConfigService(MockDatabaseHelper(), _settings(PAYPAL_CLIENT_ID="id", PAYPAL_CLIENT_SECRET="s"))

    with pytest.raises(ConfigurationFailure) as excinfo:
        await service.load("missing")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_missing_credentials_is_400():
    helper = MockDatabaseHelper(facilities={"fac-1": {"id": "fac-1"}})
    service = PaymentConfigService(helper, _settings())

    with pytest.raises(ConfigurationFailure) as excinfo:
        await service.load("fac-1")

    assert excinfo.value.status_code == 400
    assert excinfo.value.error_code == "PAYMENT_CONFIG_MISSING"


@pytest.mark.asyncio
async def test_public_config_never_exposes_secret():
    helper = MockDatabaseHelper(
        facilities={"fac-1": {"id": "fac-1", "paypal_client_id": "fac-client", "paypal_secret_key": "fac-secret"}}
    )
    service = PaymentConfigService(helper, _settings())

    public = await service.public_config("fac-1")

    assert public["clientId"] == "fac-client"
    assert public["environment"] == "sandbox"
    assert public["scriptUrl"].startswith("https://www.paypal.com/sdk/js?client-id=fac-client")
    assert "fac-secret" not in str(public)


@pytest.mark.asyncio
async def test_save_normalizes_environment_and_logs():
    helper = MockDatabaseHelper(facilities={"fac-1": {"id": "fac-1"}})
    service = PaymentConfigService(helper, _settings())

    saved = await service.save("fac-1", "new-client", "new-secret", environment="Production", updated_by="user-1")

    assert saved is True
    facility = helper.facilities["fac-1"]
    assert facility["paypal_client_id"] == "new-client"
    assert facility["paypal_secret_key"] == "new-secret"
    assert facility["paypal_environment"] == "sandbox"
    assert helper.logs_of("paypal_config_updated")[0]["user_id"] == "user-1"


@pytest.mark.asyncio
async def test_save_requires_both_credentials():
    helper = MockDatabaseHelper(facilities={"fac-1": {"id": "fac-1"}})
    service = PaymentConfigService(helper, _settings())

    with pytest.raises(ValidationException) as excinfo:
        await service.save("fac-1", "client-only", None)

    assert excinfo.value.errors == ["clientSecret"]

    assert "paypal_client_id" not in helper.facilities["fac-1"]


@pytest.mark.asyncio
async def test_save_unknown_facility_is_404():
    service = PaymentConfigService(MockDatabaseHelper(), _settings())

    with pytest.raises(ConfigurationFailure) as excinfo:
        await service.save("missing", "id", "secret")

    assert excinfo.value.status_code == 404
