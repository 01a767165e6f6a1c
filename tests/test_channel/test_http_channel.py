"""Tests for the NDJSON-over-HTTP channel, driven by httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from acclink.channel import DISCONNECT, LINK_ACCOUNT, HttpChannel, create_channel
from acclink.exceptions import ConfigError
from acclink.models import GlobalConfig, ServerConfig

EVENTS_PATH = "/plugins/custom-plugins/homebridge-nest-cam/events"


@pytest.fixture(autouse=True)
def _quiet(quiet_output):
    """Keep channel debug chatter out of captured output."""


def _ndjson(*events: tuple[str, Any]) -> bytes:
    return "".join(
        json.dumps({"event": name, "data": data}) + "\n" for name, data in events
    ).encode()


def _make_channel(handler, token: str | None = None) -> HttpChannel:
    return HttpChannel(
        ServerConfig(url="http://hb.local:8581"),
        "homebridge-nest-cam",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestSend:
    def test_posts_event_envelope(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        channel = _make_channel(handler, token="secret")
        channel.send("username", {"username": "a@b.com"})

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == EVENTS_PATH
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {
            "event": "username",
            "data": {"username": "a@b.com"},
        }

    def test_no_authorization_header_without_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        _make_channel(handler).send(LINK_ACCOUNT)
        assert "Authorization" not in seen[0].headers

    def test_send_failure_reports_disconnect(self) -> None:
        log: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        channel = _make_channel(handler)
        channel.on(DISCONNECT, lambda _: log.append(DISCONNECT))
        channel.send(LINK_ACCOUNT)
        channel.send(LINK_ACCOUNT)
        assert log == [DISCONNECT]
        assert channel.disconnected is True

    def test_error_status_reports_disconnect(self) -> None:
        log: list[str] = []
        channel = _make_channel(lambda request: httpx.Response(503))
        channel.on(DISCONNECT, lambda _: log.append(DISCONNECT))
        channel.send(LINK_ACCOUNT)
        assert log == [DISCONNECT]


class TestListen:
    def test_dispatches_streamed_events_then_disconnects(self) -> None:
        log: list[tuple[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == EVENTS_PATH
            assert request.headers["Accept"] == "application/x-ndjson"
            body = _ndjson(("username", None), ("credentials", {"issueToken": "T", "cookies": "C"}))
            return httpx.Response(200, content=body)

        channel = _make_channel(handler)
        for name in ("username", "credentials", DISCONNECT):
            channel.on(name, lambda payload, name=name: log.append((name, payload)))
        channel.listen()

        assert log == [
            ("username", None),
            ("credentials", {"issueToken": "T", "cookies": "C"}),
            (DISCONNECT, None),
        ]

    def test_skips_blank_and_malformed_lines(self) -> None:
        log: list[str] = []
        body = b'\nnot json\n["event"]\n{"data": 1}\n' + _ndjson(("password", None))
        channel = _make_channel(lambda request: httpx.Response(200, content=body))
        channel.on("password", lambda _: log.append("password"))
        channel.listen()
        assert log == ["password"]

    def test_stops_when_handler_closes_channel(self) -> None:
        log: list[str] = []
        body = _ndjson(("username", None), ("password", None))
        channel = _make_channel(lambda request: httpx.Response(200, content=body))

        def on_username(_: Any) -> None:
            log.append("username")
            channel.close()

        channel.on("username", on_username)
        channel.on("password", lambda _: log.append("password"))
        channel.on(DISCONNECT, lambda _: log.append(DISCONNECT))
        channel.listen()

        assert log == ["username"]
        assert channel.closed is True
        assert channel.disconnected is False

    def test_error_status_reports_disconnect(self) -> None:
        log: list[str] = []
        channel = _make_channel(lambda request: httpx.Response(401))
        channel.on(DISCONNECT, lambda _: log.append(DISCONNECT))
        channel.listen()
        assert log == [DISCONNECT]

    def test_listen_after_close_is_noop(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, content=b"")

        channel = _make_channel(handler)
        channel.close()
        channel.listen()
        assert calls == []


class TestCreateChannel:
    def test_builds_http_channel_for_plugin(self) -> None:
        config = GlobalConfig(server=ServerConfig(namespace_prefix="plugins/custom-plugins"))
        channel = create_channel(config, "homebridge-nest-cam")
        try:
            assert isinstance(channel, HttpChannel)
            assert channel.events_path == EVENTS_PATH
        finally:
            channel.close()

    def test_resolves_token_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("HB_TOKEN", raising=False)
        config = GlobalConfig(server=ServerConfig(token_source="env:HB_TOKEN"))
        with pytest.raises(ConfigError, match="HB_TOKEN"):
            create_channel(config, "homebridge-nest-cam")
