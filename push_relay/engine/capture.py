"""Screenshot enrichment through an external capture tool or a headless browser."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from threading import Lock, get_ident
from typing import Protocol

import structlog

from ..config.models import CaptureBackend, CaptureConfig
from ..logging_conf import get_logger
from .signature import is_http_url

SCREENSHOT_DIR_PREFIX = "out-screenshots"
SCREENSHOT_FILE_PREFIX = "out-screenshot"
DEFAULT_SCREENSHOT_NAME = "screenshot.png"


@dataclass(frozen=True, slots=True)
class CaptureRequest:
    url: str
    output_dir: Path
    output_name: str = DEFAULT_SCREENSHOT_NAME
    resolution: str = "640,480"
    timeout: int = 8

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_name

    @property
    def viewport(self) -> tuple[int, int]:
        width, height = self.resolution.split(",")
        return int(width), int(height)


@dataclass(frozen=True, slots=True)
class CaptureArtifact:
    """Image produced for one event plus the scratch directory holding it."""

    path: Path
    scratch_dir: Path

    def exists(self) -> bool:
        return self.path.is_file()


@dataclass(frozen=True, slots=True)
class ScratchSpace:
    """Per-event scratch location; the random suffix keeps workers apart."""

    directory: Path
    filename: str

    @classmethod
    def allocate(cls, root: Path | None = None) -> "ScratchSpace":
        base = root or Path(tempfile.gettempdir())
        token = uuid.uuid4().hex[:12]
        return cls(
            directory=base / f"{SCREENSHOT_DIR_PREFIX}-{token}",
            filename=f"{SCREENSHOT_FILE_PREFIX}-{token}.png",
        )

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def cleanup(self, logger: structlog.BoundLogger | None = None) -> bool:
        """Remove the screenshot and its directory; errors are logged, not raised."""

        logger = logger or get_logger("push_relay.capture")
        clean = True
        if self.path.exists():
            try:
                self.path.unlink()
                logger.debug("screenshot_removed", path=str(self.path))
            except OSError as exc:
                clean = False
                logger.warning("screenshot_remove_failed", path=str(self.path), error=str(exc))
        if self.directory.exists():
            try:
                shutil.rmtree(self.directory)
                logger.debug("scratch_removed", path=str(self.directory))
            except OSError as exc:
                clean = False
                logger.warning("scratch_remove_failed", path=str(self.directory), error=str(exc))
        return clean


class CaptureTool(Protocol):
    """Capability turning a URL into an image file on disk."""

    def capture(self, request: CaptureRequest) -> Path | None:
        """Return the produced image path, or ``None`` when nothing was captured."""

    def release(self) -> None:
        """Free resources held for the calling worker thread."""

    def close(self) -> None:
        """Free all remaining resources."""


class NullCapture:
    """Capture tool that never touches the filesystem or spawns processes."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or get_logger("push_relay.capture", backend="null")

    def capture(self, request: CaptureRequest) -> Path | None:
        self.logger.debug("capture_suppressed", url=request.url)
        return None

    def release(self) -> None:
        return

    def close(self) -> None:
        return


class GowitnessCapture:
    """Run ``gowitness single`` for one URL inside the request's output directory."""

    def __init__(
        self,
        tool_path: str = "gowitness",
        kill_grace: float = 30.0,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.tool_path = tool_path
        self.kill_grace = kill_grace
        self.logger = logger or get_logger("push_relay.capture", backend="gowitness")

    def build_command(self, request: CaptureRequest) -> list[str]:
        return [
            self.tool_path,
            "single",
            "--url",
            request.url,
            "-d",
            str(request.output_dir.resolve()),
            "--chrome-timeout",
            str(request.timeout),
            "-R",
            request.resolution,
        ]

    def capture(self, request: CaptureRequest) -> Path | None:
        if not is_http_url(request.url):
            self.logger.debug("capture_skipped", url=request.url, reason="not_http")
            return None
        try:
            request.output_dir.mkdir(parents=True, exist_ok=True)
            for stale in request.output_dir.glob("*.png"):
                stale.unlink()
        except OSError as exc:
            self.logger.warning("capture_dir_failed", path=str(request.output_dir), error=str(exc))
            return None

        command = self.build_command(request)
        self.logger.debug("capture_started", url=request.url, command=command)
        try:
            completed = subprocess.run(
                command,
                cwd=request.output_dir,
                capture_output=True,
                text=True,
                timeout=request.timeout + self.kill_grace,
                check=False,
            )
        except FileNotFoundError:
            self.logger.warning("capture_tool_missing", tool=self.tool_path)
            return None
        except subprocess.TimeoutExpired:
            self.logger.warning(
                "capture_timeout", url=request.url, limit=request.timeout + self.kill_grace
            )
            return None
        except OSError as exc:
            self.logger.warning("capture_failed", url=request.url, error=str(exc))
            return None

        self.logger.debug(
            "capture_output",
            url=request.url,
            returncode=completed.returncode,
            stdout=completed.stdout.strip(),
            stderr=completed.stderr.strip(),
        )
        # The exit code is not trusted; an image on disk is the only success signal
        produced = sorted(request.output_dir.glob("*.png"))
        if not produced:
            self.logger.warning("capture_failed", url=request.url, error="no image produced")
            return None
        target = request.output_path
        try:
            if produced[0] != target:
                produced[0].replace(target)
        except OSError as exc:
            self.logger.warning("capture_rename_failed", path=str(produced[0]), error=str(exc))
            return None
        return target if target.is_file() else None

    def release(self) -> None:
        return

    def close(self) -> None:
        return


class PlaywrightCapture:
    """Screenshot URLs with a headless Chromium, one browser per worker thread."""

    def __init__(self, headless: bool = True, logger: structlog.BoundLogger | None = None) -> None:
        self.headless = headless
        self.logger = logger or get_logger("push_relay.capture", backend="playwright")
        self._sessions: dict[int, _BrowserSession] = {}
        self._lock = Lock()

    def capture(self, request: CaptureRequest) -> Path | None:
        if not is_http_url(request.url):
            self.logger.debug("capture_skipped", url=request.url, reason="not_http")
            return None
        target = request.output_path
        try:
            request.output_dir.mkdir(parents=True, exist_ok=True)
            self._ensure_session().screenshot(
                request.url, target, request.viewport, request.timeout
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("capture_failed", url=request.url, error=str(exc))
            return None
        return target if target.is_file() else None

    def _ensure_session(self) -> "_BrowserSession":
        thread_id = get_ident()
        with self._lock:
            session = self._sessions.get(thread_id)
            if session is None:
                session = _BrowserSession(self.headless)
                self._sessions[thread_id] = session
            return session

    def release(self) -> None:
        with self._lock:
            session = self._sessions.pop(get_ident(), None)
        if session is not None:
            session.close()

    def close(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            try:
                session.close()
            except Exception as exc:  # noqa: BLE001
                self.logger.debug("browser_close_failed", error=str(exc))


class _BrowserSession:
    def __init__(self, headless: bool) -> None:
        self._headless = headless
        self._playwright = None
        self._browser = None
        self._page = None

    def _ensure_started(self) -> None:
        if self._playwright is not None:
            return
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "Playwright capture requires the 'playwright' package (push-relay[browser])."
            ) from exc
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                headless=self._headless,
                args=["--ignore-certificate-errors"],
            )
            context = self._browser.new_context(ignore_https_errors=True)
            self._page = context.new_page()
        except Exception:
            # Leave the session unstarted so the next capture retries the launch
            self.close()
            raise

    def screenshot(self, url: str, target: Path, viewport: tuple[int, int], timeout: int) -> None:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        self._ensure_started()
        self._page.set_viewport_size({"width": viewport[0], "height": viewport[1]})
        try:
            self._page.goto(url, wait_until="load", timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise RuntimeError(f"Playwright timeout: {exc}") from exc
        self._page.screenshot(path=str(target))

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
            self._page = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None


def build_capture_tool(config: CaptureConfig, dry_run: bool = False) -> CaptureTool:
    if dry_run:
        return NullCapture()
    if config.backend is CaptureBackend.PLAYWRIGHT:
        return PlaywrightCapture()
    return GowitnessCapture(config.tool_path, kill_grace=config.kill_grace)


def capture_screenshot(
    url: str,
    output_dir: Path | str,
    output_name: str,
    tool_path: str = "gowitness",
    resolution: str = "640,480",
    timeout: int = 8,
    dry_run: bool = False,
) -> str:
    """Capture ``url`` with the command line tool; returns the image path or ``""``."""

    tool: CaptureTool = NullCapture() if dry_run else GowitnessCapture(tool_path)
    result = tool.capture(
        CaptureRequest(
            url=url,
            output_dir=Path(output_dir),
            output_name=output_name or DEFAULT_SCREENSHOT_NAME,
            resolution=resolution,
            timeout=timeout,
        )
    )
    return str(result) if result is not None else ""


__all__ = [
    "CaptureArtifact",
    "CaptureRequest",
    "CaptureTool",
    "GowitnessCapture",
    "NullCapture",
    "PlaywrightCapture",
    "ScratchSpace",
    "build_capture_tool",
    "capture_screenshot",
]
