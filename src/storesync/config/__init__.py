"""Application configuration helpers."""

from __future__ import annotations

from .appstore import (
    APPSTORE_CONNECT_BASE_URL,
    AppStoreConnectConfig,
    default_resilience_config,
    get_appstore_config,
)
from .env import optional_env_var, read_env_file_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, ProjectFileError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .project import find_project_file, load_project
from .release import ReleaseConfig, get_release_config

__all__ = [
    "APPSTORE_CONNECT_BASE_URL",
    "AppStoreConnectConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "ProjectFileError",
    "RateLimit",
    "ReleaseConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "default_resilience_config",
    "find_project_file",
    "get_appstore_config",
    "get_release_config",
    "load_project",
    "optional_env_var",
    "read_env_file_var",
    "require_env_var",
    "require_env_vars",
]
