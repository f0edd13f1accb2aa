"""Pushover push notification sink."""

from __future__ import annotations

import mimetypes
from contextlib import ExitStack
from pathlib import Path
from typing import Sequence

import httpx
import structlog

from ...config.models import PUSHOVER_API_URL
from ...logging_conf import get_logger
from .base import BaseSink, DeliveryOutcome, Event

MAX_MESSAGE_LENGTH = 1024


class PushoverSink(BaseSink):
    """Send each event as a Pushover message, attaching images when present."""

    name = "pushover"

    def __init__(
        self,
        user_key: str,
        app_token: str,
        attachment: Path | None = None,
        api_url: str = PUSHOVER_API_URL,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if not user_key:
            raise ValueError("Pushover user key is empty")
        if not app_token:
            raise ValueError("Pushover app token is empty")
        self.user_key = user_key
        self.app_token = app_token
        self.attachment = attachment
        self.api_url = api_url
        self.logger = logger or get_logger("push_relay.sinks", sink=self.name)
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def deliver(self, event: Event, attachments: Sequence[Path] = ()) -> DeliveryOutcome:
        if len(event.text) > MAX_MESSAGE_LENGTH:
            return DeliveryOutcome.failure(
                self.name, f"message exceeds {MAX_MESSAGE_LENGTH} characters"
            )
        data = {"token": self.app_token, "user": self.user_key, "message": event.text}
        with ExitStack() as stack:
            files = [
                ("attachment", (path.name, stack.enter_context(path.open("rb")), _mime_type(path)))
                for path in self._attachment_paths(attachments)
            ]
            try:
                response = self._client.post(self.api_url, data=data, files=files or None)
            except httpx.HTTPError as exc:
                return DeliveryOutcome.failure(self.name, f"transport error: {exc}")
        return self._outcome(response)

    def _attachment_paths(self, attachments: Sequence[Path]) -> list[Path]:
        paths: list[Path] = []
        candidates = ([self.attachment] if self.attachment else []) + list(attachments)
        for path in candidates:
            if path.is_file():
                paths.append(path)
            else:
                self.logger.warning("attachment_missing", path=str(path))
        return paths

    def _outcome(self, response: httpx.Response) -> DeliveryOutcome:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.status_code == 200 and payload.get("status") == 1:
            return DeliveryOutcome.success(
                self.name, status_code=response.status_code, detail=payload.get("request")
            )
        errors = payload.get("errors") or [response.reason_phrase or "unexpected response"]
        return DeliveryOutcome.failure(
            self.name, "; ".join(str(error) for error in errors), status_code=response.status_code
        )

    def close(self) -> None:
        self._client.close()


def _mime_type(path: Path) -> str:
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"


__all__ = ["MAX_MESSAGE_LENGTH", "PushoverSink"]
