"""Bearer token authentication for the App Store Connect API."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import httpx
import jwt

from storesync.config import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator

AUDIENCE = "appstoreconnect-v1"
ALGORITHM = "ES256"
TOKEN_LIFETIME = timedelta(minutes=20)
REFRESH_MARGIN = timedelta(minutes=1)


class TokenCredentials(httpx.Auth):
    """Mints and caches ES256 JWTs signed with an App Store Connect API key."""

    def __init__(
        self,
        key_id: str,
        issuer_id: str,
        private_key: str,
        *,
        lifetime: timedelta = TOKEN_LIFETIME,
    ) -> None:
        self.key_id = key_id
        self.issuer_id = issuer_id
        self._private_key = private_key
        self.lifetime = lifetime
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._lock = threading.Lock()

    def token(self, *, now: datetime | None = None) -> str:
        current = now or datetime.now(UTC)
        with self._lock:
            if (
                self._token is not None
                and self._expires_at is not None
                and current < self._expires_at - REFRESH_MARGIN
            ):
                return self._token
            expires_at = current + self.lifetime
            payload = {
                "iss": self.issuer_id,
                "iat": int(current.timestamp()),
                "exp": int(expires_at.timestamp()),
                "aud": AUDIENCE,
            }
            try:
                token = jwt.encode(
                    payload,
                    self._private_key,
                    algorithm=ALGORITHM,
                    headers={"kid": self.key_id, "typ": "JWT"},
                )
            except (ValueError, TypeError, jwt.PyJWTError) as exc:
                raise ConfigurationError(f"Unable to sign API token: {exc}") from exc
            self._token = token
            self._expires_at = expires_at
            return token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response]:
        request.headers["Authorization"] = f"Bearer {self.token()}"
        yield request
