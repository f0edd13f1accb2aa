"""Infra layer utilities (secret store, output stream)."""

from .output import EchoWriter
from .secrets import AWSSecretStore, SecretStore, fetch_secret

__all__ = ["AWSSecretStore", "EchoWriter", "SecretStore", "fetch_secret"]
