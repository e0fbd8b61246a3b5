"""Tests for webhook classification and the HTTP service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_digest.clients.base import LLMClient
from chat_digest.core.summarizer import Summarizer
from chat_digest.integrations.ultramsg.client import UltraMsgClient
from chat_digest.integrations.ultramsg.webhook import (
    EventKind,
    InboundMessage,
    classify_event,
    is_json_request,
)
from chat_digest.service.api import create_app
from chat_digest.service.logging import get_service_logger, setup_service_logging
from chat_digest.service.runtime import ServiceRuntime
from chat_digest.utils.config import (
    DEFAULT_SUMMARY_HEADER,
    DEFAULT_TRIGGER_SENTINEL,
    Config,
)

ALICE = "33600000001@c.us"
BOB = "33600000002@c.us"


class TestClassifyEvent:
    def test_sentinel_is_trigger(self):
        assert classify_event(DEFAULT_TRIGGER_SENTINEL) is EventKind.TRIGGER

    def test_sentinel_must_match_exactly(self):
        assert classify_event(DEFAULT_TRIGGER_SENTINEL + " ") is EventKind.ORDINARY
        assert classify_event("stp " + DEFAULT_TRIGGER_SENTINEL) is EventKind.ORDINARY

    def test_echoed_summary_is_ignorable(self):
        body = DEFAULT_SUMMARY_HEADER + "\n*De*: 01/01/1970 00:00:00"
        assert classify_event(body) is EventKind.IGNORABLE

    def test_newsletter_channel_is_ignorable(self):
        assert classify_event("Breaking news", "120363000000@newsletter") is EventKind.IGNORABLE

    def test_trigger_checked_before_header(self):
        kind = classify_event("#résumé", trigger_sentinel="#résumé", summary_header="#")
        assert kind is EventKind.TRIGGER

    def test_trigger_wins_on_broadcast_channel(self):
        assert classify_event(DEFAULT_TRIGGER_SENTINEL, "1@newsletter") is EventKind.TRIGGER

    @pytest.mark.parametrize("body", ["", "salut", "*gras*", "{{# summarize", "Résumé des messages"])
    def test_everything_else_is_ordinary(self, body):
        assert classify_event(body, ALICE) is EventKind.ORDINARY


class TestInboundMessage:
    def test_from_payload(self):
        payload = {
            "event_type": "message_received",
            "from": ALICE,
            "data": {"body": "salut", "from": ALICE, "to": BOB, "pushname": "Alice", "fromMe": False},
        }
        msg = InboundMessage.from_payload(payload)
        assert msg == InboundMessage(
            body="salut", sender_id=ALICE, recipient_id=BOB, author="Alice", from_me=False, channel=ALICE,
        )

    @pytest.mark.parametrize(
        ("from_me", "expected"),
        [(True, True), (1, True), ("true", True), ("1", True), (False, False), (0, False), ("false", False), (None, False)],
    )
    def test_from_me_flag_variants(self, from_me, expected):
        msg = InboundMessage.from_payload({"data": {"from": ALICE, "to": BOB, "fromMe": from_me}})
        assert msg.from_me is expected

    def test_missing_body_and_pushname_default_to_empty(self):
        msg = InboundMessage.from_payload({"data": {"from": ALICE, "to": BOB, "fromMe": True}})
        assert msg.body == ""
        assert msg.author == ""
        assert msg.from_me is True
        assert msg.channel == ""

    @pytest.mark.parametrize(
        "payload",
        [None, [], "text", {}, {"data": "x"}, {"data": {"from": ALICE}}, {"data": {"to": BOB}}],
    )
    def test_malformed_payloads(self, payload):
        assert InboundMessage.from_payload(payload) is None


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [
        ("application/json", True),
        ("application/json; charset=utf-8", True),
        ("Application/JSON", True),
        ("text/plain", False),
        ("application/x-www-form-urlencoded", False),
        (None, False),
    ],
)
def test_is_json_request(content_type, expected):
    assert is_json_request(content_type) is expected


# -------------------------------------------------------------------------
# HTTP service
# -------------------------------------------------------------------------

@dataclass
class _ConfigStub:
    SUMMARY_TEMPERATURE: float = 0.0
    SUMMARY_TOP_P: float = 0.0
    SUMMARY_TOP_K: int = 1


class _CannedClient(LLMClient):
    provider = "stub"

    def __init__(self):
        super().__init__("stub-model", _ConfigStub())
        self.prompts: list[str] = []

    def query(self, system_instruction: str, prompt: str) -> str:
        self.prompts.append(prompt)
        return "**Alice** et **Bob** se donnent rendez-vous."


@pytest.fixture
def service(store_factory):
    store = store_factory([100, 200, 300, 400])
    sent: list[dict] = []

    def gateway(request: httpx.Request) -> httpx.Response:
        sent.append({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        return httpx.Response(200, json={"sent": "true"})

    config = Config(
        DATABASE_URL="sqlite://",
        TIMEZONE="UTC",
        ULTRAMSG_INSTANCE_ID="instance42",
        ULTRAMSG_TOKEN="secret-token",
    )
    client = _CannedClient()
    runtime = ServiceRuntime.build(
        config,
        store=store,
        client=client,
        delivery=UltraMsgClient("instance42", "secret-token", transport=httpx.MockTransport(gateway)),
        summarizer=Summarizer(client, tz=config.resolve_timezone()),
    )
    with TestClient(create_app(runtime)) as http:
        yield http, store, sent, client


def _event(body: str, sender: str = ALICE, recipient: str = BOB, from_me: bool = False, channel: str | None = None):
    return {
        "event_type": "message_received",
        "instanceId": "instance42",
        "from": channel if channel is not None else sender,
        "data": {
            "id": "false_x@c.us_ABC",
            "from": sender,
            "to": recipient,
            "body": body,
            "pushname": "Alice" if sender == ALICE else "Bob",
            "fromMe": from_me,
            "type": "chat",
        },
    }


class TestWebhookRoute:
    def test_ordinary_message_is_buffered(self, service):
        http, store, sent, _ = service
        response = http.post("/whatsapp-webhook", json=_event("salut"))
        assert response.status_code == 200
        assert response.content == b""
        [msg] = store.query(BOB, ALICE)
        assert (msg.content, msg.author, msg.sender_id, msg.recipient_id) == ("salut", "Alice", ALICE, BOB)
        assert sent == []

    def test_non_json_is_dropped(self, service):
        http, store, _, _ = service
        response = http.post(
            "/whatsapp-webhook",
            content=b'{"data": {"body": "salut", "from": "a", "to": "b"}}',
            headers={"content-type": "text/plain"},
        )
        assert response.status_code == 200
        assert response.content == b""
        assert store.stats()["messages"] == 0

    def test_invalid_json_is_dropped(self, service):
        http, store, _, _ = service
        response = http.post(
            "/whatsapp-webhook",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 200
        assert store.stats()["messages"] == 0

    def test_ignorable_events_are_not_stored(self, service):
        http, store, _, _ = service
        http.post("/whatsapp-webhook", json=_event(DEFAULT_SUMMARY_HEADER + "\nancien résumé"))
        http.post("/whatsapp-webhook", json=_event("news", channel="120363000000@newsletter"))
        assert store.stats()["messages"] == 0

    def test_trigger_summarizes_and_replies(self, service):
        http, store, sent, client = service
        http.post("/whatsapp-webhook", json=_event("Bonjour Bob"))
        http.post("/whatsapp-webhook", json=_event("Salut Alice", sender=BOB, recipient=ALICE))
        http.post("/whatsapp-webhook", json=_event("Demain 10h ?"))

        response = http.post("/whatsapp-webhook", json=_event(DEFAULT_TRIGGER_SENTINEL, sender=BOB, recipient=ALICE))

        assert response.status_code == 200
        assert response.content == b""
        assert len(client.prompts) == 1
        assert "Contenu: Salut Alice" in client.prompts[0]
        assert len(sent) == 1
        assert sent[0]["to"] == BOB
        assert sent[0]["token"] == "secret-token"
        assert sent[0]["body"] == (
            f"{DEFAULT_SUMMARY_HEADER}\n"
            "*De*: 01/01/1970 00:00:00\n"
            "*À*: 01/01/1970 00:00:00\n"
            "*Nombre de messages*: 3\n"
            "\n"
            "*Alice* et *Bob* se donnent rendez-vous."
        )
        # The sentinel itself is never buffered
        assert store.query(ALICE, BOB) == []

    def test_trigger_with_empty_buffer_sends_nothing(self, service):
        http, _, sent, client = service
        response = http.post("/whatsapp-webhook", json=_event(DEFAULT_TRIGGER_SENTINEL, from_me=True))
        assert response.status_code == 200
        assert client.prompts == []
        assert sent == []


def test_health(service):
    http, store, _, _ = service
    store.append("salut", "Alice", ALICE, BOB)
    data = http.get("/health").json()
    assert data["status"] == "ok"
    assert data["provider"] == "stub"
    assert data["model"] == "stub-model"
    assert data["storage"] == {"available": True, "messages": 1, "senders": 1}


# -------------------------------------------------------------------------
# Verbose logging with markup-like message text
# -------------------------------------------------------------------------

@pytest.fixture
def verbose_logging(tmp_path, monkeypatch):
    monkeypatch.setenv("CHAT_DIGEST_LOG_DIR", str(tmp_path))
    setup_service_logging(verbose=True)
    yield
    setup_service_logging()


def test_structured_lines_accept_bracketed_text(verbose_logging):
    log = get_service_logger("chat_digest.tests")
    log.webhook_event("ordinary", "[/b]@c.us", BOB, "voir [/b] ici")
    log.summary_started("[/x]", BOB, True)
    log.summary_finished("delivery_failed", 2, "[bold", 12.0)


def test_plain_logger_lines_with_bad_markup_are_emitted(verbose_logging):
    logging.getLogger("chat_digest.tests").info("preview: 'fin [/note]'")


def test_verbose_mode_still_buffers_bracketed_messages(service, verbose_logging):
    http, store, _, _ = service
    response = http.post("/whatsapp-webhook", json=_event("liste [/note] demain"))
    assert response.status_code == 200
    assert [m.content for m in store.query(ALICE, BOB)] == ["liste [/note] demain"]
