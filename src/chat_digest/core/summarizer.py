"""Conversation summarization.

Renders a conversation window into a plain-text transcript, asks the
configured backend for a summary, and converts the answer to WhatsApp markup.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo
from typing import Sequence

from ..clients.base import LLMClient
from ..models.message import Message
from ..shared.markup import convert_markdown_to_whatsapp
from ..utils.temporal import DEFAULT_DATETIME_FORMAT, format_timestamp

logger = logging.getLogger(__name__)

MESSAGE_DELIMITER = "----------"

# One block per message, in this order
MESSAGE_TEMPLATE = """Numéro: {sender_id}
Nom: {author}
Date et Heure: {date}
Contenu: {content}
""" + MESSAGE_DELIMITER

SYSTEM_INSTRUCTION = """Tous les messages proviennent d'une discussion WhatsApp. Fais un résumé clair et concis en langue française. Voici le format des messages:
Numéro: {numéro_whatsapp_de_l'expéditeur}
Nom: {nom_whatsapp_de_l'expéditeur}
Date et Heure: {date_et_heure_du_message}
Contenu: {message_whatsapp_envoyé_par_l'expéditeur}
""" + MESSAGE_DELIMITER


def render_transcript(
    messages: Sequence[Message],
    tz: tzinfo | None = None,
    datetime_format: str = DEFAULT_DATETIME_FORMAT,
) -> str:
    """Render messages as delimiter-separated blocks, in window order."""
    blocks = [
        MESSAGE_TEMPLATE.format(
            sender_id=m.sender_id,
            author=m.author,
            date=format_timestamp(m.timestamp, tz, datetime_format),
            content=m.content,
        )
        for m in messages
    ]
    return "\n\n".join(blocks)


class Summarizer:
    """Stateless adapter between a conversation window and an LLM backend."""

    def __init__(
        self,
        client: LLMClient,
        tz: tzinfo | None = None,
        datetime_format: str = DEFAULT_DATETIME_FORMAT,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ):
        self.client = client
        self.tz = tz
        self.datetime_format = datetime_format
        self.system_instruction = system_instruction

    async def summarize(self, messages: Sequence[Message]) -> str:
        """Summarize the window; returns "" when the backend produced no text.

        Backend errors propagate to the caller.
        """
        if not messages:
            return ""

        transcript = render_transcript(messages, self.tz, self.datetime_format)
        logger.debug(
            f"Summarizing {len(messages)} messages ({len(transcript)} chars) with {self.client.describe()}"
        )
        # SDK calls are blocking
        raw = await asyncio.to_thread(self.client.query, self.system_instruction, transcript)
        return convert_markdown_to_whatsapp(raw)
