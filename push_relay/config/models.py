"""Pydantic models describing relay configuration."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"
DEFAULT_USER_AGENT = "push-relay/0.3"


class CaptureBackend(str, Enum):
    """Screenshot capture implementations."""

    GOWITNESS = "gowitness"
    PLAYWRIGHT = "playwright"


class CaptureConfig(BaseModel):
    """Screenshot enrichment settings."""

    backend: CaptureBackend = CaptureBackend.GOWITNESS
    tool_path: str = "gowitness"
    resolution: str = "640,480"
    timeout: int = 8
    # Extra seconds granted before the capture process is killed
    kill_grace: float = 30.0
    scratch_dir: Path | None = None

    @field_validator("resolution", mode="before")
    @classmethod
    def _validate_resolution(cls, value: Any) -> str:
        if isinstance(value, (list, tuple)) and len(value) == 2:
            value = f"{value[0]},{value[1]}"
        text = str(value).replace(" ", "")
        parts = text.split(",")
        if len(parts) != 2 or not all(part.isdigit() and int(part) > 0 for part in parts):
            raise ValueError("resolution expects 'WIDTH,HEIGHT' with positive integers")
        return text

    @field_validator("scratch_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @model_validator(mode="after")
    def _validate_limits(self) -> "CaptureConfig":
        if self.timeout <= 0:
            raise ValueError("capture timeout must be > 0")
        if self.kill_grace < 0:
            raise ValueError("kill_grace must be >= 0")
        return self

    @property
    def viewport(self) -> tuple[int, int]:
        width, height = self.resolution.split(",")
        return int(width), int(height)


class PushoverConfig(BaseModel):
    """Push notification sink settings."""

    enabled: bool = False
    user_key: str | None = None
    app_token: str | None = None
    user_key_secret: str | None = None
    app_token_secret: str | None = None
    attachment: Path | None = None
    api_url: str = PUSHOVER_API_URL
    timeout: float = 15.0

    @field_validator("attachment", mode="before")
    @classmethod
    def _coerce_attachment(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value).expanduser()


class CollectorConfig(BaseModel):
    """HTTP log collector sink settings."""

    enabled: bool = False
    url: str | None = None
    url_secret: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 15.0


class SecretsConfig(BaseModel):
    """Remote secret store lookup settings."""

    pull_remote: bool = False
    region: str = "us-east-1"
    profile: str | None = None


class RelayConfig(BaseModel):
    """Top level options for a relay run."""

    dry_run: bool = False
    parse_signature: bool = False
    dedup: bool = False
    workers: int = 3
    queue_size: int = 1
    verbose: bool = False
    log_file: Path | None = None
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    pushover: PushoverConfig = Field(default_factory=PushoverConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    @field_validator("log_file", mode="before")
    @classmethod
    def _coerce_log_file(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @model_validator(mode="after")
    def _validate_pool(self) -> "RelayConfig":
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        return self


__all__ = [
    "CaptureBackend",
    "CaptureConfig",
    "CollectorConfig",
    "DEFAULT_USER_AGENT",
    "PUSHOVER_API_URL",
    "PushoverConfig",
    "RelayConfig",
    "SecretsConfig",
]
