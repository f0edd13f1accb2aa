"""Remote secret lookup backed by AWS Secrets Manager."""

from __future__ import annotations

from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config.credentials import SecretResolutionError
from ..logging_conf import get_logger

VERSION_STAGE = "AWSCURRENT"


class SecretStore(Protocol):
    """Anything able to turn a secret name into its string value."""

    def fetch(self, name: str) -> str:
        """Return the decrypted secret or raise ``SecretResolutionError``."""


class AWSSecretStore:
    """Fetch decrypted secrets from AWS Secrets Manager in a given region/profile."""

    def __init__(self, region: str, profile: str | None = None, client=None) -> None:
        self.region = region
        self.profile = profile or None
        self.logger = get_logger("push_relay.secrets", region=region)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            session = boto3.session.Session(profile_name=self.profile, region_name=self.region)
            self._client = session.client("secretsmanager")
        return self._client

    def fetch(self, name: str) -> str:
        try:
            result = self.client.get_secret_value(SecretId=name, VersionStage=VERSION_STAGE)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code")
            self.logger.error("secret_fetch_failed", secret=name, code=code, error=error.get("Message"))
            raise SecretResolutionError(name, error.get("Message") or str(exc), code=code) from exc
        except BotoCoreError as exc:
            self.logger.error("secret_fetch_failed", secret=name, error=str(exc))
            raise SecretResolutionError(name, str(exc)) from exc

        # A secret holds either a string or a binary payload
        if result.get("SecretString") is not None:
            return result["SecretString"]
        binary = result.get("SecretBinary")
        if binary is None:
            raise SecretResolutionError(name, "secret has no value")
        try:
            return bytes(binary).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SecretResolutionError(name, "binary secret is not valid UTF-8") from exc


def fetch_secret(name: str, region: str, profile: str | None = None) -> str:
    """Single blocking lookup of ``name`` in ``region`` using ``profile``."""

    return AWSSecretStore(region, profile).fetch(name)


__all__ = ["AWSSecretStore", "SecretStore", "fetch_secret"]
