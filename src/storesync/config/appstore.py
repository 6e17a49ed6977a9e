"""App Store Connect configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, read_env_file_var, require_env_vars
from .errors import MissingConfigurationError
from .http_resilience import ResilienceConfig

APPSTORE_CONNECT_BASE_URL = "https://api.appstoreconnect.apple.com/v1/"
APPSTORE_CONNECT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class AppStoreConnectConfig:
    """Holds App Store Connect API key material and transport settings."""

    key_id: str
    issuer_id: str
    private_key: str
    resilience: ResilienceConfig


def default_resilience_config() -> ResilienceConfig:
    return ResilienceConfig(
        name="appstoreconnect",
        base_url=APPSTORE_CONNECT_BASE_URL,
        timeout_seconds=APPSTORE_CONNECT_TIMEOUT_SECONDS,
        default_headers={"Accept": "application/json"},
    )


def get_appstore_config(*, resilience: ResilienceConfig | None = None) -> AppStoreConnectConfig:
    """Load API key material from ``ASC_*`` environment variables.

    The private key is taken from ``ASC_PRIVATE_KEY`` when set, otherwise it is
    read from the file named by ``ASC_PRIVATE_KEY_PATH``.
    """

    values = require_env_vars(("ASC_KEY_ID", "ASC_ISSUER_ID"))
    private_key = optional_env_var("ASC_PRIVATE_KEY")
    if private_key is None:
        if optional_env_var("ASC_PRIVATE_KEY_PATH") is None:
            raise MissingConfigurationError(
                "Missing configuration for: ASC_PRIVATE_KEY or ASC_PRIVATE_KEY_PATH"
            )
        private_key = read_env_file_var("ASC_PRIVATE_KEY_PATH")
    return AppStoreConnectConfig(
        key_id=values["ASC_KEY_ID"],
        issuer_id=values["ASC_ISSUER_ID"],
        private_key=private_key,
        resilience=resilience or default_resilience_config(),
    )
