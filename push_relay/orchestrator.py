"""Relay pipeline wiring intake, capture, dedup, dispatch and echo together."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Iterable, Mapping, Sequence, TextIO

import structlog

from .config import CaptureConfig, CredentialResolver, RelayConfig
from .engine import (
    BaseSink,
    CaptureArtifact,
    CaptureRequest,
    CaptureTool,
    DeduplicationStore,
    DeliveryOutcome,
    Event,
    IntakeQueue,
    ScratchSpace,
    WorkerPool,
    build_capture_tool,
    build_sinks,
    dispatch,
    parse_signature,
)
from .infra import AWSSecretStore, EchoWriter, SecretStore
from .logging_conf import get_logger

SUMMARY_KEYS = ("received", "dispatched", "duplicates", "captured", "delivered", "failed", "errors")


@dataclass(slots=True)
class ProcessingResult:
    status: str
    event: Event
    outcomes: list[DeliveryOutcome] = field(default_factory=list)
    captured: bool = False


class Relay:
    """Read events, process them on a worker pool and echo them once handled."""

    def __init__(
        self,
        sinks: Sequence[BaseSink],
        capture_tool: CaptureTool,
        dedup_store: DeduplicationStore | None = None,
        *,
        parse_signature: bool = False,
        workers: int = 3,
        queue_size: int = 1,
        capture_config: CaptureConfig | None = None,
        output: TextIO | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.sinks = list(sinks)
        self.capture_tool = capture_tool
        self.dedup_store = dedup_store
        self.parse_signature = parse_signature
        self.workers = workers
        self.queue_size = queue_size
        self.capture_config = capture_config or CaptureConfig()
        self.echo = EchoWriter(output if output is not None else sys.stdout)
        self.logger = logger or get_logger("push_relay").bind(component="relay")
        self._summary: dict[str, int] = {key: 0 for key in SUMMARY_KEYS}
        self._summary_lock = Lock()

    # ------------------------------------------------------------------
    def run(self, stream: Iterable[str]) -> dict[str, int]:
        """Process every non-empty line of ``stream``; returns run counters."""

        pool: WorkerPool[Event] = WorkerPool(self.workers, self.queue_size)
        self.logger.info(
            "relay_started",
            workers=self.workers,
            sinks=[sink.name for sink in self.sinks],
            dedup=self.dedup_store is not None,
            parse_signature=self.parse_signature,
        )
        try:
            pool.start(self._worker)
            try:
                self.read_intake(stream, pool)
            finally:
                pool.close()
                pool.join()
        finally:
            for sink in self.sinks:
                sink.close()
            self.capture_tool.close()
        summary = self.summary
        self.logger.info("relay_finished", **summary)
        return summary

    @property
    def summary(self) -> dict[str, int]:
        with self._summary_lock:
            return dict(self._summary)

    def read_intake(self, stream: Iterable[str], pool: WorkerPool[Event]) -> int:
        """Push non-empty lines onto the pool's queue; blocks while workers are busy."""

        count = 0
        for raw in stream:
            text = raw.rstrip("\r\n")
            if not text.strip():
                continue
            count += 1
            self.logger.debug("event_received", sequence=count, line=text)
            self._bump("received")
            pool.submit(Event(text=text, sequence=count))
        return count

    # ------------------------------------------------------------------
    def _worker(self, index: int, queue: IntakeQueue[Event]) -> None:
        structlog.contextvars.bind_contextvars(worker=index)
        self.logger.debug("worker_started")
        try:
            for event in queue:
                try:
                    result = self.process_event(event)
                except Exception as exc:  # noqa: BLE001
                    self.logger.error(
                        "event_error", sequence=event.sequence, error=str(exc), exc_info=True
                    )
                    self._bump("errors")
                else:
                    self._record(result)
                # Duplicates are echoed as well; every input line appears once
                try:
                    self.echo.write(event.text)
                except OSError as exc:
                    self.logger.warning("echo_failed", sequence=event.sequence, error=str(exc))
        finally:
            self.capture_tool.release()
            self.logger.debug("worker_stopped")
            structlog.contextvars.clear_contextvars()

    def process_event(self, event: Event) -> ProcessingResult:
        scratch = ScratchSpace.allocate(self.capture_config.scratch_dir)
        artifact: CaptureArtifact | None = None
        try:
            if self.parse_signature:
                artifact = self._enrich(event, scratch)
            if self.dedup_store is not None and self.dedup_store.check_and_mark(event.text):
                self.logger.info("duplicate_skipped", sequence=event.sequence)
                return ProcessingResult("duplicate", event, captured=artifact is not None)
            outcomes = dispatch(self.sinks, event, self._attachments(artifact), logger=self.logger)
            return ProcessingResult("dispatched", event, outcomes, captured=artifact is not None)
        finally:
            scratch.cleanup(self.logger)

    def _enrich(self, event: Event, scratch: ScratchSpace) -> CaptureArtifact | None:
        signature = parse_signature(event.text)
        if signature is None or not signature.is_http:
            return None
        self.logger.info("capture_requested", signature=signature.id, url=signature.target)
        path = self.capture_tool.capture(
            CaptureRequest(
                url=signature.target,
                output_dir=scratch.directory,
                output_name=scratch.filename,
                resolution=self.capture_config.resolution,
                timeout=self.capture_config.timeout,
            )
        )
        if path is None:
            return None
        return CaptureArtifact(path=path, scratch_dir=scratch.directory)

    def _attachments(self, artifact: CaptureArtifact | None) -> list[Path]:
        if artifact is None:
            return []
        if not artifact.exists():
            self.logger.warning("artifact_missing", path=str(artifact.path))
            return []
        return [artifact.path]

    def _record(self, result: ProcessingResult) -> None:
        with self._summary_lock:
            if result.captured:
                self._summary["captured"] += 1
            if result.status == "duplicate":
                self._summary["duplicates"] += 1
                return
            self._summary["dispatched"] += 1
            for outcome in result.outcomes:
                self._summary["delivered" if outcome.ok else "failed"] += 1

    def _bump(self, key: str) -> None:
        with self._summary_lock:
            self._summary[key] += 1


def build_relay(
    config: RelayConfig,
    secret_store: SecretStore | None = None,
    output: TextIO | None = None,
    environ: Mapping[str, str] | None = None,
) -> Relay:
    """Resolve credentials, build sinks and capture tool, and return a ready relay.

    Raises ``ConfigurationError`` before anything is read when an enabled
    sink cannot be configured. In dry-run mode remote secrets are not
    fetched; a placeholder stands in since no delivery is attempted.
    """

    if secret_store is None and config.secrets.pull_remote and not config.dry_run:
        secret_store = AWSSecretStore(config.secrets.region, config.secrets.profile)
    resolver = CredentialResolver(
        secret_store=secret_store,
        pull_remote=config.secrets.pull_remote,
        environ=environ,
        offline=config.dry_run,
    )
    sinks = build_sinks(config, resolver)
    return Relay(
        sinks,
        build_capture_tool(config.capture, dry_run=config.dry_run),
        DeduplicationStore() if config.dedup else None,
        parse_signature=config.parse_signature,
        workers=config.workers,
        queue_size=config.queue_size,
        capture_config=config.capture,
        output=output,
    )


__all__ = ["ProcessingResult", "Relay", "SUMMARY_KEYS", "build_relay"]
