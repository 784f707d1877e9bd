from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tenant_billing.application.services.account_auth_service import AccountAuthService

SECRET = "unit-test-secret"


@pytest.fixture
def auth_service():
    return AccountAuthService(secret_key=SECRET)


def test_subject_becomes_account_id(auth_service):
    token = jwt.encode({"sub": "42"}, SECRET, algorithm="HS256")
    assert auth_service.verify_token(token) == 42


def test_expired_token_is_rejected(auth_service):
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = jwt.encode({"sub": "42", "exp": expired}, SECRET, algorithm="HS256")
    assert auth_service.verify_token(token) is None


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        jwt.encode({"sub": "42"}, "other-secret", algorithm="HS256"),
        jwt.encode({"sub": "abc"}, SECRET, algorithm="HS256"),
        jwt.encode({"scope": "billing"}, SECRET, algorithm="HS256"),
    ],
)
def test_invalid_tokens_are_rejected(auth_service, token):
    assert auth_service.verify_token(token) is None


def test_missing_secret_fails_fast():
    with pytest.raises(RuntimeError):
        AccountAuthService(secret_key="")
