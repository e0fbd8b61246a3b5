"""Outbound messages through the UltraMsg WhatsApp gateway."""

import logging

import httpx

from ...utils.config import Config

log = logging.getLogger(__name__)


class UltraMsgClient:
    """Posts chat messages to ``{base_url}/{instance_id}/messages/chat``."""

    def __init__(
        self,
        instance_id: str,
        token: str,
        base_url: str = "https://api.ultramsg.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.instance_id = instance_id
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: Config) -> "UltraMsgClient":
        return cls(
            instance_id=config.ULTRAMSG_INSTANCE_ID,
            token=config.ULTRAMSG_TOKEN,
            base_url=config.ULTRAMSG_BASE_URL,
            timeout=config.ULTRAMSG_TIMEOUT_SECONDS,
        )

    @property
    def send_url(self) -> str:
        return f"{self.base_url}/{self.instance_id}/messages/chat"

    async def send(self, to: str, body: str) -> bool:
        """
        Send a chat message. No retry.

        Args:
            to: Target chat id
            body: Message text (WhatsApp markup)

        Returns:
            True if the gateway accepted the message, False otherwise
        """
        data = {"to": to, "token": self.token, "body": body}

        preview = body[:100] + "..." if len(body) > 100 else body
        log.info(f"📤 Sending to {to} ({len(body)} chars): {preview!r}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                # data= is sent as application/x-www-form-urlencoded
                response = await client.post(self.send_url, data=data)
        except httpx.HTTPError as e:
            log.error(f"Error sending message to {to}: {e}")
            return False

        if not response.is_success:
            log.error(f"Failed to send message: {response.status_code} {response.text}")
            return False

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("error"):
            log.error(f"Gateway rejected message to {to}: {payload['error']}")
            return False

        log.info(f"✓ Message sent to {to} ({len(body)} chars)")
        return True
