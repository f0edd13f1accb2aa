"""HTTP log collector sink (Sumo Logic style hosted collector)."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import httpx

from ...config.models import DEFAULT_USER_AGENT
from .base import BaseSink, DeliveryOutcome, Event


class HTTPCollectorSink(BaseSink):
    """POST the raw event text to a collector endpoint."""

    name = "collector"

    def __init__(
        self,
        url: str,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Collector URL is empty")
        self.url = url
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "User-Agent": user_agent},
        )

    def deliver(self, event: Event, attachments: Sequence[Path] = ()) -> DeliveryOutcome:
        try:
            response = self._client.post(self.url, content=event.text.encode("utf-8"))
        except httpx.HTTPError as exc:
            return DeliveryOutcome.failure(self.name, f"transport error: {exc}")
        if response.is_success:
            return DeliveryOutcome.success(self.name, status_code=response.status_code)
        return DeliveryOutcome.failure(
            self.name,
            f"unexpected status {response.status_code}",
            status_code=response.status_code,
        )

    def close(self) -> None:
        self._client.close()


__all__ = ["HTTPCollectorSink"]
