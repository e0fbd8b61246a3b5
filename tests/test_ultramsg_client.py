"""Tests for outbound delivery through the UltraMsg gateway."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx

from chat_digest.integrations.ultramsg.client import UltraMsgClient


def _client(handler) -> UltraMsgClient:
    return UltraMsgClient(
        instance_id="instance42",
        token="secret-token",
        base_url="https://api.ultramsg.com/",
        transport=httpx.MockTransport(handler),
    )


def test_send_posts_form_fields() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"sent": "true", "message": "ok", "id": 7})

    ok = asyncio.run(_client(handler).send("336001@c.us", "*Résumé*\n\nTout va bien"))

    assert ok is True
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.ultramsg.com/instance42/messages/chat"
    assert request.headers["content-type"].startswith("application/x-www-form-urlencoded")
    form = parse_qs(request.content.decode())
    assert form == {
        "to": ["336001@c.us"],
        "token": ["secret-token"],
        "body": ["*Résumé*\n\nTout va bien"],
    }


def test_send_reports_http_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    assert asyncio.run(_client(handler).send("336001@c.us", "hi")) is False


def test_send_reports_gateway_error_field() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "wrong token. please provide right token"})

    assert asyncio.run(_client(handler).send("336001@c.us", "hi")) is False


def test_send_reports_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(_client(handler).send("336001@c.us", "hi")) is False


def test_send_accepts_non_json_success() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="queued")

    assert asyncio.run(_client(handler).send("336001@c.us", "hi")) is True
