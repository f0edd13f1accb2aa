"""Delivery sink Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import structlog

from ...logging_conf import get_logger


@dataclass(frozen=True, slots=True)
class Event:
    """One non-empty input line."""

    text: str
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    sink: str
    ok: bool
    status_code: int | None = None
    detail: str | None = None
    dry_run: bool = False

    @classmethod
    def success(cls, sink: str, status_code: int | None = None, detail: str | None = None) -> "DeliveryOutcome":
        return cls(sink=sink, ok=True, status_code=status_code, detail=detail)

    @classmethod
    def failure(cls, sink: str, detail: str, status_code: int | None = None) -> "DeliveryOutcome":
        return cls(sink=sink, ok=False, status_code=status_code, detail=detail)


class BaseSink(ABC):
    """Uniform sink contract enabling plug-and-play delivery targets."""

    name: str = "sink"
    enabled: bool = True

    @abstractmethod
    def deliver(self, event: Event, attachments: Sequence[Path] = ()) -> DeliveryOutcome:
        """Deliver one event; transport problems become a failed outcome."""

    def close(self) -> None:
        """Release underlying resources."""


class DryRunSink(BaseSink):
    """Log what would be delivered without touching the wrapped sink's transport."""

    def __init__(self, inner: BaseSink, logger: structlog.BoundLogger | None = None) -> None:
        self.inner = inner
        self.name = inner.name
        self.enabled = inner.enabled
        self.logger = logger or get_logger("push_relay.sinks", sink=inner.name)

    def deliver(self, event: Event, attachments: Sequence[Path] = ()) -> DeliveryOutcome:
        self.logger.info(
            "dry_run_delivery",
            message=event.text,
            attachments=[str(path) for path in attachments],
        )
        return DeliveryOutcome(sink=self.name, ok=True, detail="dry run", dry_run=True)

    def close(self) -> None:
        self.inner.close()


def dispatch(
    sinks: Iterable[BaseSink],
    event: Event,
    attachments: Sequence[Path] = (),
    logger: structlog.BoundLogger | None = None,
) -> list[DeliveryOutcome]:
    """Attempt every enabled sink; one sink failing never stops the others."""

    logger = logger or get_logger("push_relay.sinks")
    outcomes: list[DeliveryOutcome] = []
    for sink in sinks:
        if not sink.enabled:
            continue
        try:
            outcome = sink.deliver(event, attachments)
        except Exception as exc:  # noqa: BLE001
            outcome = DeliveryOutcome.failure(sink.name, f"{type(exc).__name__}: {exc}")
        if outcome.ok:
            logger.info(
                "delivery_succeeded",
                sink=outcome.sink,
                status_code=outcome.status_code,
                dry_run=outcome.dry_run,
            )
        else:
            logger.warning(
                "delivery_failed",
                sink=outcome.sink,
                status_code=outcome.status_code,
                error=outcome.detail,
            )
        outcomes.append(outcome)
    return outcomes


__all__ = ["BaseSink", "DeliveryOutcome", "DryRunSink", "Event", "dispatch"]
