"""Tests for the RTM start handshake and SessionInfo mention handling."""

from urllib.parse import parse_qs

import httpx
import pytest

from rtmbot.config.schema import Config
from rtmbot.errors import ConfigError, HandshakeError
from rtmbot.session.handshake import SessionInfo, parse_rtm_start, rtm_start


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ok_body(**overrides) -> dict:
    body = {
        "ok": True,
        "url": "wss://rtm.example.test/websocket/abc",
        "team": {"name": "Example"},
        "self": {"name": "gobot", "id": "U123"},
    }
    body.update(overrides)
    return body


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _config(token: str = "xoxb-test") -> Config:
    return Config(_env_file=None, api_token=token)


# ---------------------------------------------------------------------------
# parse_rtm_start
# ---------------------------------------------------------------------------

def test_parse_rtm_start_success():
    session = parse_rtm_start(_ok_body())
    assert session.url == "wss://rtm.example.test/websocket/abc"
    assert session.team_name == "Example"
    assert session.self_name == "gobot"
    assert session.self_id == "U123"


def test_parse_rtm_start_not_ok():
    with pytest.raises(HandshakeError):
        parse_rtm_start({"ok": False, "error": "invalid_auth"})


def test_parse_rtm_start_missing_field():
    body = _ok_body()
    del body["self"]["id"]
    with pytest.raises(HandshakeError):
        parse_rtm_start(body)


@pytest.mark.parametrize("url", ["not a url", "https://example.test/ws", "wss://"])
def test_parse_rtm_start_bad_url(url):
    with pytest.raises(HandshakeError):
        parse_rtm_start(_ok_body(url=url))


def test_parse_rtm_start_non_object():
    with pytest.raises(HandshakeError):
        parse_rtm_start(["ok"])


# ---------------------------------------------------------------------------
# Mention prefix
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "text,expected",
    [
        ("<@U123> ping", "ping"),
        ("<@U123>: ping", "ping"),
        ("<@U123>ping", "ping"),
        ("<@U123>: help add", "help add"),
        ("ping", None),
        ("hey <@U123> ping", None),
        ("<@U999> ping", None),
    ],
)
def test_strip_mention(text, expected):
    session = SessionInfo(url="wss://x.test/ws", team_name="T", self_name="bot", self_id="U123")
    assert session.strip_mention(text) == expected


# ---------------------------------------------------------------------------
# rtm_start
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_rtm_start_posts_form_and_parses_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json=_ok_body())

    async with _client(handler) as client:
        session = await rtm_start(_config(), client=client)

    assert session.self_id == "U123"
    assert seen["url"] == "https://slack.com/api/rtm.start"
    assert seen["form"] == {
        "token": ["xoxb-test"],
        "simple_latest": ["true"],
        "no_unreads": ["true"],
    }


@pytest.mark.asyncio
async def test_rtm_start_requires_token():
    with pytest.raises(ConfigError):
        await rtm_start(_config(token=""))


@pytest.mark.asyncio
async def test_rtm_start_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(HandshakeError):
            await rtm_start(_config(), client=client)


@pytest.mark.asyncio
async def test_rtm_start_http_error_status():
    async with _client(lambda r: httpx.Response(500, text="boom")) as client:
        with pytest.raises(HandshakeError):
            await rtm_start(_config(), client=client)


@pytest.mark.asyncio
async def test_rtm_start_invalid_json():
    async with _client(lambda r: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(HandshakeError):
            await rtm_start(_config(), client=client)


@pytest.mark.asyncio
async def test_rtm_start_not_ok():
    body = {"ok": False, "error": "invalid_auth"}
    async with _client(lambda r: httpx.Response(200, json=body)) as client:
        with pytest.raises(HandshakeError):
            await rtm_start(_config(), client=client)
