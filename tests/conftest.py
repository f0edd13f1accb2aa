"""Pytest configuration providing shared relay fixtures."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Callable, Sequence

import pytest

from push_relay.config import CaptureConfig, RelayConfig
from push_relay.engine import BaseSink, CaptureRequest, DeliveryOutcome, Event


class RecordingSink(BaseSink):
    """Sink that records every delivery attempt and optionally fails."""

    def __init__(self, name: str, fail: bool = False, raise_error: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.raise_error = raise_error
        self.calls: list[tuple[str, list[Path], list[bool]]] = []
        self.closed = False
        self._lock = Lock()

    def deliver(self, event: Event, attachments: Sequence[Path] = ()) -> DeliveryOutcome:
        with self._lock:
            self.calls.append(
                (event.text, list(attachments), [path.exists() for path in attachments])
            )
        if self.raise_error:
            raise RuntimeError(f"{self.name} exploded")
        if self.fail:
            return DeliveryOutcome.failure(self.name, "rejected", status_code=400)
        return DeliveryOutcome.success(self.name, status_code=200)

    def close(self) -> None:
        self.closed = True

    @property
    def texts(self) -> list[str]:
        return [text for text, _, _ in self.calls]


class FakeCapture:
    """Capture tool writing a small PNG into the requested location."""

    def __init__(self, produce: bool = True) -> None:
        self.produce = produce
        self.requests: list[CaptureRequest] = []
        self.released = 0
        self.closed = False
        self._lock = Lock()

    def capture(self, request: CaptureRequest) -> Path | None:
        with self._lock:
            self.requests.append(request)
        if not self.produce:
            return None
        request.output_dir.mkdir(parents=True, exist_ok=True)
        request.output_path.write_bytes(b"\x89PNG\r\n\x1a\n")
        return request.output_path

    def release(self) -> None:
        with self._lock:
            self.released += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_sink() -> Callable[..., RecordingSink]:
    def _builder(name: str = "recorder", **kwargs: Any) -> RecordingSink:
        return RecordingSink(name, **kwargs)

    return _builder


@pytest.fixture
def fake_capture() -> Callable[..., FakeCapture]:
    def _builder(**kwargs: Any) -> FakeCapture:
        return FakeCapture(**kwargs)

    return _builder


@pytest.fixture
def capture_config(tmp_path: Path) -> CaptureConfig:
    return CaptureConfig(scratch_dir=tmp_path / "scratch", timeout=2, kill_grace=1)


@pytest.fixture
def sample_relay_config(tmp_path: Path) -> Callable[..., RelayConfig]:
    def _builder(**overrides: Any) -> RelayConfig:
        base: dict[str, Any] = {
            "workers": 1,
            "capture": {"scratch_dir": str(tmp_path / "scratch")},
        }
        base.update(overrides)
        return RelayConfig.model_validate(base)

    return _builder


@pytest.fixture(autouse=True)
def _clear_credential_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PUSHOVER_USER_KEY", "PUSHOVER_APP_TOKEN", "SUMO_COLLECTOR_URL", "PUSH_RELAY_CONFIG"):
        monkeypatch.delenv(name, raising=False)
