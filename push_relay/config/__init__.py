"""Configuration package exports."""

from .credentials import (
    COLLECTOR_URL_ENV,
    PUSHOVER_APP_TOKEN_ENV,
    PUSHOVER_USER_KEY_ENV,
    ConfigurationError,
    CredentialResolver,
    SecretResolutionError,
)
from .loader import CONFIG_ENV_VAR, load_config, locate_config, masked_dump
from .models import (
    CaptureBackend,
    CaptureConfig,
    CollectorConfig,
    PushoverConfig,
    RelayConfig,
    SecretsConfig,
)

__all__ = [
    "CONFIG_ENV_VAR",
    "COLLECTOR_URL_ENV",
    "CaptureBackend",
    "CaptureConfig",
    "CollectorConfig",
    "ConfigurationError",
    "CredentialResolver",
    "PUSHOVER_APP_TOKEN_ENV",
    "PUSHOVER_USER_KEY_ENV",
    "PushoverConfig",
    "RelayConfig",
    "SecretResolutionError",
    "SecretsConfig",
    "load_config",
    "locate_config",
    "masked_dump",
]
