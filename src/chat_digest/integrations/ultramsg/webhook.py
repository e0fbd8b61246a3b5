"""UltraMsg webhook handler.

Every inbound event is classified exactly once, in this order:

1. TRIGGER: the body is the trigger sentinel, so summarize the pair
2. IGNORABLE: an echoed summary, or a broadcast/newsletter channel
3. ORDINARY: everything else is buffered in the message store
"""

import asyncio
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from fastapi import Request

from ...service.logging import get_service_logger
from ...utils.config import (
    DEFAULT_BROADCAST_SUFFIX,
    DEFAULT_SUMMARY_HEADER,
    DEFAULT_TRIGGER_SENTINEL,
)

if TYPE_CHECKING:
    from ...service.runtime import ServiceRuntime

log = get_service_logger(__name__)


class EventKind(str, Enum):
    """Disposition of an inbound webhook event."""
    TRIGGER = "trigger"
    IGNORABLE = "ignorable"
    ORDINARY = "ordinary"


def classify_event(
    body: str,
    channel: str = "",
    trigger_sentinel: str = DEFAULT_TRIGGER_SENTINEL,
    summary_header: str = DEFAULT_SUMMARY_HEADER,
    broadcast_suffix: str = DEFAULT_BROADCAST_SUFFIX,
) -> EventKind:
    """Classify a message body. Total: every input maps to one EventKind."""
    if body == trigger_sentinel:
        return EventKind.TRIGGER
    if body.startswith(summary_header):
        return EventKind.IGNORABLE
    if broadcast_suffix and channel.endswith(broadcast_suffix):
        return EventKind.IGNORABLE
    return EventKind.ORDINARY


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


@dataclass(frozen=True)
class InboundMessage:
    """Fields of an UltraMsg ``message_received`` / ``message_create`` event."""
    body: str
    sender_id: str
    recipient_id: str
    author: str
    from_me: bool
    channel: str

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["InboundMessage"]:
        """Extract the message, or None when the payload isn't a message event."""
        if not isinstance(payload, dict):
            return None
        data = payload.get("data")
        if not isinstance(data, dict):
            return None

        sender_id = data.get("from")
        recipient_id = data.get("to")
        if not sender_id or not recipient_id:
            return None

        body = data.get("body")
        return cls(
            body="" if body is None else str(body),
            sender_id=str(sender_id),
            recipient_id=str(recipient_id),
            author=str(data.get("pushname") or ""),
            from_me=_as_bool(data.get("fromMe")),
            channel=str(payload.get("from") or ""),
        )


def is_json_request(content_type: str | None) -> bool:
    """True for ``application/json`` (parameters such as charset allowed)."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == "application/json"


async def dispatch_event(payload: Any, runtime: "ServiceRuntime") -> EventKind | None:
    """Classify one decoded webhook payload and act on it.

    Returns the disposition, or None for payloads that carry no message.
    """
    message = InboundMessage.from_payload(payload)
    if message is None:
        return None

    config = runtime.config
    kind = classify_event(
        message.body,
        message.channel,
        trigger_sentinel=config.TRIGGER_SENTINEL,
        summary_header=config.SUMMARY_HEADER,
        broadcast_suffix=config.BROADCAST_SUFFIX,
    )
    log.webhook_event(kind.value, message.sender_id, message.recipient_id, message.body)

    if kind is EventKind.TRIGGER:
        log.summary_started(message.sender_id, message.recipient_id, message.from_me)
        start = time.perf_counter()
        run = await runtime.pipeline.run(message.sender_id, message.recipient_id, message.from_me)
        log.summary_finished(
            run.outcome.value if run.outcome else "unknown",
            run.count,
            run.target,
            (time.perf_counter() - start) * 1000,
        )
    elif kind is EventKind.ORDINARY:
        await asyncio.to_thread(
            runtime.store.append,
            message.body,
            message.author,
            message.sender_id,
            message.recipient_id,
        )

    return kind


async def handle_ultramsg_webhook(request: Request, runtime: "ServiceRuntime") -> EventKind | None:
    """
    Handle an incoming UltraMsg webhook request.

    Non-JSON and undecodable requests are dropped silently; the route always
    acknowledges with an empty 200 whatever happens here.
    """
    if not is_json_request(request.headers.get("content-type")):
        return None

    raw = await request.body()
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None

    log.payload("Webhook payload", payload if isinstance(payload, dict) else {"payload": payload})
    return await dispatch_event(payload, runtime)
