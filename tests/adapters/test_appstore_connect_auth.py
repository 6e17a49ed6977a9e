from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from storesync.adapters.appstore_connect import AppStoreConnectCredentials, TokenCredentials
from storesync.adapters.appstore_connect.auth import AUDIENCE
from storesync.adapters.appstore_connect.credentials import credentials_from_env
from storesync.config import ConfigurationError, MissingConfigurationError

NOW = datetime(2024, 5, 1, 12, tzinfo=UTC)


def test_token_claims(ec_private_key: str) -> None:
    credentials = TokenCredentials("KEY123", "issuer-uuid", ec_private_key)

    token = credentials.token(now=NOW)

    header = jwt.get_unverified_header(token)
    claims = jwt.decode(token, options={"verify_signature": False})
    assert header["alg"] == "ES256"
    assert header["kid"] == "KEY123"
    assert claims == {
        "iss": "issuer-uuid",
        "iat": int(NOW.timestamp()),
        "exp": int((NOW + timedelta(minutes=20)).timestamp()),
        "aud": AUDIENCE,
    }


def test_token_is_cached_until_close_to_expiry(ec_private_key: str) -> None:
    credentials = TokenCredentials("KEY123", "issuer-uuid", ec_private_key)

    first = credentials.token(now=NOW)

    assert credentials.token(now=NOW + timedelta(minutes=10)) == first
    assert credentials.token(now=NOW + timedelta(minutes=19, seconds=30)) != first


def test_unusable_private_key_is_a_configuration_error() -> None:
    credentials = TokenCredentials("KEY123", "issuer-uuid", "not a key")

    with pytest.raises(ConfigurationError):
        credentials.token(now=NOW)


def test_credentials_from_env(monkeypatch: pytest.MonkeyPatch, ec_private_key: str) -> None:
    monkeypatch.setenv("ASC_KEY_ID", "KEY123")
    monkeypatch.setenv("ASC_ISSUER_ID", "issuer-uuid")
    monkeypatch.setenv("ASC_PRIVATE_KEY", ec_private_key)

    credentials = credentials_from_env()

    assert isinstance(credentials, AppStoreConnectCredentials)
    assert credentials.config.key_id == "KEY123"
    assert credentials.config.resilience.retry.total == 0


def test_credentials_from_env_requires_key_material(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASC_KEY_ID", "KEY123")
    monkeypatch.setenv("ASC_ISSUER_ID", "issuer-uuid")

    with pytest.raises(MissingConfigurationError, match="ASC_PRIVATE_KEY"):
        credentials_from_env()
