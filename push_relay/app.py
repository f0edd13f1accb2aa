"""Typer CLI entrypoint for Push-Relay."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import CaptureBackend, ConfigurationError, RelayConfig, load_config, masked_dump
from .logging_conf import configure_logging
from .orchestrator import build_relay

app = typer.Typer(
    help="Relay stdin lines to Pushover and HTTP log collectors.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode=None,
)

# stdout carries relayed events; everything human-facing goes to stderr
console = Console(stderr=True)


def _build_overrides(**options: Any) -> dict[str, Any]:
    """Map CLI options onto the nested configuration layout, skipping unset ones."""

    return {
        "dry_run": options.get("dry_run"),
        "parse_signature": options.get("parse_signature"),
        "dedup": options.get("dedup"),
        "workers": options.get("workers"),
        "queue_size": options.get("queue_size"),
        "verbose": options.get("verbose"),
        "log_file": options.get("log_file"),
        "capture": {
            "backend": options.get("capture_backend"),
            "tool_path": options.get("gowitness"),
            "resolution": options.get("resolution"),
            "timeout": options.get("timeout"),
        },
        "pushover": {
            "enabled": options.get("pushover"),
            "user_key": options.get("user_key"),
            "app_token": options.get("app_token"),
            "user_key_secret": options.get("user_key_secret"),
            "app_token_secret": options.get("app_token_secret"),
            "attachment": options.get("attachment"),
        },
        "collector": {
            "enabled": options.get("collector"),
            "url": options.get("collector_url"),
            "url_secret": options.get("collector_url_secret"),
        },
        "secrets": {
            "pull_remote": options.get("pull_secrets"),
            "region": options.get("aws_region"),
            "profile": options.get("aws_profile"),
        },
    }


def _load(config_path: Optional[Path], overrides: dict[str, Any]) -> RelayConfig:
    try:
        return load_config(config_path, overrides)
    except (FileNotFoundError, ValidationError, ValueError) as exc:
        console.print(f"[-] Invalid configuration: {exc}", style="red", markup=False)
        raise typer.Exit(code=2) from exc


def _render_summary(summary: dict[str, int]) -> Table:
    table = Table(title="Relay summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for key, value in summary.items():
        table.add_row(key, str(value))
    return table


@app.command("run", help="Read events from stdin and relay them to the enabled sinks.")
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON configuration file."),
    dry_run: Optional[bool] = typer.Option(
        None, "--dry-run/--no-dry-run", "-d", help="Only echo messages; no capture or delivery."
    ),
    user_key: Optional[str] = typer.Option(None, "--user-key", "-u", help="Pushover user key."),
    app_token: Optional[str] = typer.Option(None, "--app-token", "-t", help="Pushover app token."),
    attachment: Optional[Path] = typer.Option(None, "--attachment", "-a", help="Static attachment path."),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-i", help="Screenshot timeout in seconds."),
    parse_signature: Optional[bool] = typer.Option(
        None,
        "--parse-signature/--no-parse-signature",
        "-p",
        help="Parse '[id] url' lines and attach a screenshot of http(s) URLs.",
    ),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--quiet", "-v", help="Log to stderr."),
    gowitness: Optional[str] = typer.Option(None, "--gowitness", "-g", help="Path to the gowitness binary."),
    workers: Optional[int] = typer.Option(None, "--workers", "-n", help="Number of worker threads."),
    resolution: Optional[str] = typer.Option(None, "--resolution", "-r", help="Screenshot resolution 'W,H'."),
    pushover: Optional[bool] = typer.Option(None, "--pushover/--no-pushover", help="Send to Pushover."),
    collector: Optional[bool] = typer.Option(
        None, "--collector/--no-collector", help="Send to the HTTP log collector."
    ),
    collector_url: Optional[str] = typer.Option(None, "--collector-url", help="HTTP collector URL."),
    dedup: Optional[bool] = typer.Option(None, "--dedup/--no-dedup", help="Skip repeated lines."),
    pull_secrets: Optional[bool] = typer.Option(
        None, "--pull-secrets/--no-pull-secrets", help="Fetch missing credentials from AWS Secrets Manager."
    ),
    aws_region: Optional[str] = typer.Option(None, "--aws-region", help="AWS region for secrets."),
    aws_profile: Optional[str] = typer.Option(None, "--aws-profile", help="AWS credentials profile."),
    user_key_secret: Optional[str] = typer.Option(None, "--user-key-secret", help="Secret name of the user key."),
    app_token_secret: Optional[str] = typer.Option(
        None, "--app-token-secret", help="Secret name of the app token."
    ),
    collector_url_secret: Optional[str] = typer.Option(
        None, "--collector-url-secret", help="Secret name of the collector URL."
    ),
    capture_backend: Optional[CaptureBackend] = typer.Option(
        None, "--capture-backend", help="Screenshot implementation.", case_sensitive=False
    ),
    queue_size: Optional[int] = typer.Option(None, "--queue-size", help="Intake buffer size."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write JSON logs to this file."),
    summary: bool = typer.Option(False, "--summary", help="Print run counters to stderr when done."),
) -> None:
    overrides = _build_overrides(**{key: value for key, value in locals().items() if key != "config_path"})
    config = _load(config_path, overrides)
    logger = configure_logging(verbose=config.verbose, log_file=config.log_file)
    try:
        relay = build_relay(config, output=typer.get_text_stream("stdout"))
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        console.print(f"[-] {exc}", style="red", markup=False)
        raise typer.Exit(code=1) from exc
    counters = relay.run(typer.get_text_stream("stdin"))
    if summary:
        console.print(_render_summary(counters))


@app.command("show-config", help="Print the effective configuration with credentials masked.")
def show_config(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML/JSON configuration file."),
) -> None:
    config = _load(config_path, {})
    table = Table(title="Push-Relay configuration", box=box.SIMPLE_HEAD)
    table.add_column("Option", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", overflow="fold")
    for key, value in masked_dump(config).items():
        table.add_row(key, "-" if value is None else str(value))
    Console().print(table)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
