"""Public interface for the App Store Connect adapter."""

from __future__ import annotations

from .auth import TokenCredentials
from .client import AppStoreConnectAPIError, AppStoreConnectClient
from .credentials import AppStoreConnectCredentials, credentials_from_env

__all__ = [
    "AppStoreConnectAPIError",
    "AppStoreConnectClient",
    "AppStoreConnectCredentials",
    "TokenCredentials",
    "credentials_from_env",
]
