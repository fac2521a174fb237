"""Application configuration helpers."""

from __future__ import annotations

from .azure_devops import (
    AzureDevOpsConfig,
    build_azure_devops_config,
    get_azure_devops_config,
    organization_from_url,
)
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .sync import SyncSettings, default_log_file
from .tiers import load_license_table

__all__ = [
    "AzureDevOpsConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncSettings",
    "build_azure_devops_config",
    "configure_logging",
    "default_log_file",
    "get_azure_devops_config",
    "load_license_table",
    "organization_from_url",
    "require_env_var",
    "require_env_vars",
]
