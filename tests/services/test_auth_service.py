"""AuthService 토큰 -> users.id 확인 테스트"""
from types import SimpleNamespace

import pytest

from mocks import MockDatabaseHelper
from services.auth_service import AuthService


class _StubAuth:
    def __init__(self, user=None, error: Exception = None):
        self.user = user
        self.error = error
        self.tokens = []

    def get_user(self, token):
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(user=self.user)


def _service(auth: _StubAuth) -> AuthService:
    return AuthService(SimpleNamespace(auth=auth), MockDatabaseHelper())


@pytest.mark.asyncio
async def test_resolves_internal_user_id():
    auth = _StubAuth(user=SimpleNamespace(id="auth-1", email="om@example.com"))

    assert await _service(auth).resolve_user_from_auth_token("jwt") == "user-of-auth-1"
    assert auth.tokens == ["jwt"]


@pytest.mark.asyncio
async def test_missing_token_skips_lookup():
    auth = _StubAuth()

    assert await _service(auth).resolve_user_from_auth_token(None) is None
    assert auth.tokens == []


@pytest.mark.asyncio
async def test_invalid_token_returns_none():
    assert await _service(_StubAuth(user=None)).resolve_user_from_auth_token("expired") is None


@pytest.mark.asyncio
async def test_auth_error_returns_none():
    auth = _StubAuth(error=RuntimeError("network down"))

    assert await _service(auth).resolve_user_from_auth_token("jwt") is None
