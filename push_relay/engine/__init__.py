"""Engine components: parse → capture → dedup → dispatch."""

from .capture import (
    CaptureArtifact,
    CaptureRequest,
    CaptureTool,
    GowitnessCapture,
    NullCapture,
    PlaywrightCapture,
    ScratchSpace,
    build_capture_tool,
    capture_screenshot,
)
from .dedup import DeduplicationStore
from .signature import ParsedSignature, is_http_url, parse_signature
from .sinks import BaseSink, DeliveryOutcome, DryRunSink, Event, build_sinks, dispatch
from .thread_pool import IntakeQueue, QueueClosedError, WorkerPool

__all__ = [
    "BaseSink",
    "CaptureArtifact",
    "CaptureRequest",
    "CaptureTool",
    "DeduplicationStore",
    "DeliveryOutcome",
    "DryRunSink",
    "Event",
    "GowitnessCapture",
    "IntakeQueue",
    "NullCapture",
    "ParsedSignature",
    "PlaywrightCapture",
    "QueueClosedError",
    "ScratchSpace",
    "WorkerPool",
    "build_capture_tool",
    "build_sinks",
    "capture_screenshot",
    "dispatch",
    "is_http_url",
    "parse_signature",
]
