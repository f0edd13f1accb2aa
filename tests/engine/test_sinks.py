from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from push_relay.config import ConfigurationError, CredentialResolver, RelayConfig
from push_relay.engine.sinks import (
    DryRunSink,
    Event,
    HTTPCollectorSink,
    PushoverSink,
    build_sinks,
    dispatch,
)
from push_relay.engine.sinks.pushover import MAX_MESSAGE_LENGTH


def _pushover_transport(captured: list[httpx.Request], status: int = 200, payload: dict | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        captured.append(request)
        return httpx.Response(status, json=payload if payload is not None else {"status": 1, "request": "abc"})

    return httpx.MockTransport(handler)


def test_pushover_sends_form_without_attachments() -> None:
    captured: list[httpx.Request] = []
    sink = PushoverSink("user-1", "token-1", transport=_pushover_transport(captured))

    outcome = sink.deliver(Event("hello world"))
    sink.close()

    assert outcome.ok
    assert outcome.status_code == 200
    assert outcome.detail == "abc"
    request = captured[0]
    assert str(request.url) == "https://api.pushover.net/1/messages.json"
    body = request.content.decode()
    assert "token=token-1" in body
    assert "user=user-1" in body
    assert "message=hello+world" in body


def test_pushover_attaches_static_file_and_screenshot(tmp_path: Path) -> None:
    static = tmp_path / "logo.png"
    static.write_bytes(b"static-bytes")
    shot = tmp_path / "shot.png"
    shot.write_bytes(b"shot-bytes")
    captured: list[httpx.Request] = []
    sink = PushoverSink("u", "t", attachment=static, transport=_pushover_transport(captured))

    outcome = sink.deliver(Event("[a] https://example.com"), [shot])
    sink.close()

    assert outcome.ok
    request = captured[0]
    assert request.headers["content-type"].startswith("multipart/form-data")
    body = request.content
    assert b"static-bytes" in body
    assert b"shot-bytes" in body
    assert body.count(b'name="attachment"') == 2


def test_pushover_skips_missing_attachments(tmp_path: Path) -> None:
    captured: list[httpx.Request] = []
    sink = PushoverSink(
        "u", "t", attachment=tmp_path / "missing.png", transport=_pushover_transport(captured)
    )
    outcome = sink.deliver(Event("msg"), [tmp_path / "gone.png"])
    sink.close()
    assert outcome.ok
    assert not captured[0].headers["content-type"].startswith("multipart/form-data")


def test_pushover_api_rejection_is_failed_outcome() -> None:
    captured: list[httpx.Request] = []
    transport = _pushover_transport(
        captured, status=400, payload={"status": 0, "errors": ["application token is invalid"]}
    )
    sink = PushoverSink("u", "bad", transport=transport)
    outcome = sink.deliver(Event("msg"))
    sink.close()
    assert not outcome.ok
    assert outcome.status_code == 400
    assert "application token is invalid" in outcome.detail


def test_pushover_transport_error_is_failed_outcome() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    sink = PushoverSink("u", "t", transport=httpx.MockTransport(handler))
    outcome = sink.deliver(Event("msg"))
    sink.close()
    assert not outcome.ok
    assert "transport error" in outcome.detail


def test_pushover_rejects_long_message_locally() -> None:
    captured: list[httpx.Request] = []
    sink = PushoverSink("u", "t", transport=_pushover_transport(captured))
    outcome = sink.deliver(Event("x" * (MAX_MESSAGE_LENGTH + 1)))
    sink.close()
    assert not outcome.ok
    assert captured == []


def test_pushover_requires_credentials() -> None:
    with pytest.raises(ValueError):
        PushoverSink("", "token")
    with pytest.raises(ValueError):
        PushoverSink("user", "")


def test_collector_posts_raw_text_with_fixed_headers() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        captured.append(request)
        return httpx.Response(200)

    sink = HTTPCollectorSink(
        "https://collectors.example.com/receiver/v1/http/abc",
        user_agent="relay-test/1.0",
        transport=httpx.MockTransport(handler),
    )
    outcome = sink.deliver(Event("[alpha] https://example.com"), [Path("ignored.png")])
    sink.close()

    assert outcome.ok and outcome.status_code == 200
    request = captured[0]
    assert request.method == "POST"
    assert request.content == b"[alpha] https://example.com"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["user-agent"] == "relay-test/1.0"


def test_collector_error_status_and_transport_error() -> None:
    sink = HTTPCollectorSink("https://c.example", transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    outcome = sink.deliver(Event("msg"))
    sink.close()
    assert not outcome.ok and outcome.status_code == 503

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    sink = HTTPCollectorSink("https://c.example", transport=httpx.MockTransport(handler))
    outcome = sink.deliver(Event("msg"))
    sink.close()
    assert not outcome.ok and outcome.status_code is None


def test_dispatch_attempts_every_sink(recording_sink) -> None:
    failing = recording_sink("push", fail=True)
    exploding = recording_sink("boom", raise_error=True)
    healthy = recording_sink("collector")

    outcomes = dispatch([failing, exploding, healthy], Event("msg"))

    assert [outcome.sink for outcome in outcomes] == ["push", "boom", "collector"]
    assert [outcome.ok for outcome in outcomes] == [False, False, True]
    assert "RuntimeError" in outcomes[1].detail
    assert failing.texts == exploding.texts == healthy.texts == ["msg"]


def test_dispatch_skips_disabled_sinks(recording_sink) -> None:
    disabled = recording_sink("off")
    disabled.enabled = False
    assert dispatch([disabled], Event("msg")) == []
    assert disabled.calls == []


def test_dry_run_sink_never_calls_inner(recording_sink) -> None:
    inner = recording_sink("push")
    sink = DryRunSink(inner)
    outcome = sink.deliver(Event("msg"), [Path("a.png")])
    assert outcome.ok and outcome.dry_run
    assert inner.calls == []
    sink.close()
    assert inner.closed


def test_build_sinks_resolves_credentials() -> None:
    config = RelayConfig.model_validate(
        {
            "pushover": {"enabled": True, "user_key": "cli-user"},
            "collector": {"enabled": True},
        }
    )
    resolver = CredentialResolver(
        environ={"PUSHOVER_APP_TOKEN": "env-token", "SUMO_COLLECTOR_URL": "https://c.example"}
    )
    sinks = build_sinks(config, resolver)
    assert [sink.name for sink in sinks] == ["pushover", "collector"]
    assert sinks[0].user_key == "cli-user"
    assert sinks[0].app_token == "env-token"
    assert sinks[1].url == "https://c.example"
    for sink in sinks:
        sink.close()


def test_build_sinks_missing_credential_is_fatal() -> None:
    config = RelayConfig.model_validate({"pushover": {"enabled": True, "user_key": "u"}})
    with pytest.raises(ConfigurationError, match="Pushover app token"):
        build_sinks(config, CredentialResolver(environ={}))


def test_build_sinks_disabled_needs_nothing() -> None:
    assert build_sinks(RelayConfig(), CredentialResolver(environ={})) == []


def test_build_sinks_wraps_in_dry_run() -> None:
    config = RelayConfig.model_validate(
        {"dry_run": True, "collector": {"enabled": True, "url": "https://c.example"}}
    )
    sinks = build_sinks(config, CredentialResolver(environ={}))
    assert len(sinks) == 1 and isinstance(sinks[0], DryRunSink)
    assert sinks[0].name == "collector"
    sinks[0].close()
