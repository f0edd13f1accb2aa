"""Delivery sink SPI, implementations and factory."""

from __future__ import annotations

from ...config.credentials import (
    COLLECTOR_URL_ENV,
    PUSHOVER_APP_TOKEN_ENV,
    PUSHOVER_USER_KEY_ENV,
    CredentialResolver,
)
from ...config.models import RelayConfig
from .base import BaseSink, DeliveryOutcome, DryRunSink, Event, dispatch
from .collector import HTTPCollectorSink
from .pushover import PushoverSink


def build_sinks(config: RelayConfig, resolver: CredentialResolver) -> list[BaseSink]:
    """Resolve credentials for every enabled sink and construct it.

    Raises ``ConfigurationError`` when an enabled sink lacks a credential.
    In dry-run mode each sink is wrapped so no delivery call is made.
    """

    sinks: list[BaseSink] = []
    if config.pushover.enabled:
        pushover = config.pushover
        user_key = resolver.require(
            "Pushover user key", pushover.user_key, PUSHOVER_USER_KEY_ENV, pushover.user_key_secret
        )
        app_token = resolver.require(
            "Pushover app token", pushover.app_token, PUSHOVER_APP_TOKEN_ENV, pushover.app_token_secret
        )
        sinks.append(
            PushoverSink(
                user_key,
                app_token,
                attachment=pushover.attachment,
                api_url=pushover.api_url,
                timeout=pushover.timeout,
            )
        )
    if config.collector.enabled:
        collector = config.collector
        url = resolver.require("Collector URL", collector.url, COLLECTOR_URL_ENV, collector.url_secret)
        sinks.append(HTTPCollectorSink(url, user_agent=collector.user_agent, timeout=collector.timeout))
    if config.dry_run:
        return [DryRunSink(sink) for sink in sinks]
    return sinks


__all__ = [
    "BaseSink",
    "DeliveryOutcome",
    "DryRunSink",
    "Event",
    "HTTPCollectorSink",
    "PushoverSink",
    "build_sinks",
    "dispatch",
]
