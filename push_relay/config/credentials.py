"""Credential resolution: explicit value, then environment, then secret store."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Mapping

import structlog

from ..logging_conf import get_logger

if TYPE_CHECKING:
    from ..infra.secrets import SecretStore

PUSHOVER_USER_KEY_ENV = "PUSHOVER_USER_KEY"
PUSHOVER_APP_TOKEN_ENV = "PUSHOVER_APP_TOKEN"
COLLECTOR_URL_ENV = "SUMO_COLLECTOR_URL"


class ConfigurationError(ValueError):
    """Raised when the relay cannot start with the given configuration."""


class SecretResolutionError(ConfigurationError):
    """Raised when the remote secret store lookup fails."""

    def __init__(self, name: str, message: str, code: str | None = None) -> None:
        self.name = name
        self.code = code
        detail = f"{code}: {message}" if code else message
        super().__init__(f"Failed to fetch secret '{name}': {detail}")


class CredentialResolver:
    """Resolve sink credentials once, before the worker pool starts."""

    def __init__(
        self,
        secret_store: "SecretStore | None" = None,
        pull_remote: bool = False,
        environ: Mapping[str, str] | None = None,
        logger: structlog.BoundLogger | None = None,
        offline: bool = False,
    ) -> None:
        self.secret_store = secret_store
        self.pull_remote = pull_remote
        # Offline resolution never contacts the secret store; see resolve()
        self.offline = offline
        self.environ = os.environ if environ is None else environ
        self.logger = logger or get_logger("push_relay.credentials")

    def resolve(
        self,
        label: str,
        explicit: str | None,
        env_var: str | None,
        secret_name: str | None = None,
    ) -> str | None:
        if explicit:
            self.logger.debug("credential_resolved", credential=label, origin="explicit")
            return explicit
        if env_var:
            value = self.environ.get(env_var, "")
            if value:
                self.logger.debug("credential_resolved", credential=label, origin="env", env_var=env_var)
                return value
        if self.pull_remote and secret_name:
            if self.offline:
                self.logger.info("secret_lookup_skipped", credential=label, secret=secret_name)
                return f"<secret:{secret_name}>"
            if self.secret_store is None:
                raise ConfigurationError(
                    f"Remote secret lookup requested for {label} but no secret store is configured"
                )
            value = self.secret_store.fetch(secret_name)
            if value:
                self.logger.debug("credential_resolved", credential=label, origin="secret_store")
                return value
        return None

    def require(
        self,
        label: str,
        explicit: str | None,
        env_var: str | None,
        secret_name: str | None = None,
    ) -> str:
        value = self.resolve(label, explicit, env_var, secret_name)
        if value:
            return value
        tried = ["input"]
        if env_var:
            tried.append(f"env var {env_var}")
        if self.pull_remote and secret_name:
            tried.append(f"secret '{secret_name}'")
        raise ConfigurationError(f"{label} must be specified ({', '.join(tried)} all empty)")


__all__ = [
    "COLLECTOR_URL_ENV",
    "ConfigurationError",
    "CredentialResolver",
    "PUSHOVER_APP_TOKEN_ENV",
    "PUSHOVER_USER_KEY_ENV",
    "SecretResolutionError",
]
