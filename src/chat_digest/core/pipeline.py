"""Conversation summary pipeline.

ConversationPipeline runs one summary request end to end for a conversation
pair, strictly in this order:

1. FETCH: read the pair's buffered window from the message store
2. SUMMARIZE: ask the backend for a summary of the whole window
3. DELIVER: send header + summary to the counterparty chat
4. PRUNE: delete exactly the messages that were summarized

Each stage can stop the run; the reason is recorded as a PipelineOutcome on
the returned SummaryRun. ``run`` never raises.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import tzinfo
from enum import Enum, auto
from typing import TYPE_CHECKING

from ..utils.config import DEFAULT_SUMMARY_HEADER
from ..utils.temporal import DEFAULT_DATETIME_FORMAT, format_timestamp

if TYPE_CHECKING:
    from ..integrations.ultramsg.client import UltraMsgClient
    from ..memory.postgresql import MessageStore
    from ..models.message import Message
    from .summarizer import Summarizer

logger = logging.getLogger(__name__)


class SummaryStage(Enum):
    """Processing stages of a summary run."""
    FETCH = auto()
    SUMMARIZE = auto()
    DELIVER = auto()
    PRUNE = auto()


class PipelineOutcome(str, Enum):
    """How a summary run ended."""
    SUMMARIZED = "summarized"
    EMPTY_WINDOW = "empty_window"
    SUMMARY_FAILED = "summary_failed"
    SUMMARY_EMPTY = "summary_empty"
    DELIVERY_FAILED = "delivery_failed"
    PRUNE_FAILED = "prune_failed"
    FAILED = "failed"


@dataclass
class SummaryRun:
    """State and result of one pipeline run."""
    sender_id: str
    recipient_id: str
    from_me: bool

    window: list["Message"] = field(default_factory=list)
    target: str | None = None
    summary: str = ""
    payload: str = ""
    pruned: int | None = None
    outcome: PipelineOutcome | None = None
    error: str | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.window)

    @property
    def first_timestamp(self) -> int | None:
        return self.window[0].timestamp if self.window else None

    @property
    def last_timestamp(self) -> int | None:
        return self.window[-1].timestamp if self.window else None

    def record_timing(self, stage: SummaryStage, elapsed_ms: float) -> None:
        self.stage_timings[stage.name] = elapsed_ms


def select_target(sender_id: str, recipient_id: str, from_me: bool) -> str:
    """Chat that receives the summary.

    A trigger typed by the operator (from_me) goes to the chat it was sent to;
    a trigger received from a contact is answered in that contact's chat.
    Either way the summary lands in the counterparty's chat.
    """
    return recipient_id if from_me else sender_id


def render_header(
    first_timestamp: int,
    last_timestamp: int,
    count: int,
    title: str = DEFAULT_SUMMARY_HEADER,
    tz: tzinfo | None = None,
    datetime_format: str = DEFAULT_DATETIME_FORMAT,
) -> str:
    """Header block: title, window start/end and message count."""
    return "\n".join([
        title,
        f"*De*: {format_timestamp(first_timestamp, tz, datetime_format)}",
        f"*À*: {format_timestamp(last_timestamp, tz, datetime_format)}",
        f"*Nombre de messages*: {count}",
    ])


def compose_payload(header: str, summary: str) -> str:
    return f"{header}\n\n{summary}"


class ConversationPipeline:
    """Fetch, summarize, deliver and prune one conversation window."""

    def __init__(
        self,
        store: "MessageStore",
        summarizer: "Summarizer",
        delivery: "UltraMsgClient",
        summary_header: str = DEFAULT_SUMMARY_HEADER,
        tz: tzinfo | None = None,
        datetime_format: str = DEFAULT_DATETIME_FORMAT,
    ):
        self.store = store
        self.summarizer = summarizer
        self.delivery = delivery
        self.summary_header = summary_header
        self.tz = tz
        self.datetime_format = datetime_format

    async def run(self, sender_id: str, recipient_id: str, from_me: bool) -> SummaryRun:
        """Run the pipeline for the pair {sender_id, recipient_id}."""
        run = SummaryRun(sender_id=sender_id, recipient_id=recipient_id, from_me=bool(from_me))
        try:
            await self._execute(run)
        except Exception as e:
            run.outcome = PipelineOutcome.FAILED
            run.error = str(e)
            logger.error(f"Summary for {sender_id} <-> {recipient_id} failed: {e}", exc_info=True)

        logger.info(
            f"Summary run {sender_id} <-> {recipient_id}: {run.outcome.value} "
            f"({run.count} msgs, {sum(run.stage_timings.values()):.0f}ms)"
        )
        return run

    async def _execute(self, run: SummaryRun) -> None:
        # FETCH
        start = time.perf_counter()
        run.window = await asyncio.to_thread(self.store.query, run.sender_id, run.recipient_id)
        run.record_timing(SummaryStage.FETCH, (time.perf_counter() - start) * 1000)
        if not run.window:
            logger.warning(f"Nothing to summarize for {run.sender_id} <-> {run.recipient_id}")
            run.outcome = PipelineOutcome.EMPTY_WINDOW
            return

        header = render_header(
            run.first_timestamp,
            run.last_timestamp,
            run.count,
            title=self.summary_header,
            tz=self.tz,
            datetime_format=self.datetime_format,
        )

        # SUMMARIZE
        start = time.perf_counter()
        try:
            run.summary = await self.summarizer.summarize(run.window)
        except Exception as e:
            run.record_timing(SummaryStage.SUMMARIZE, (time.perf_counter() - start) * 1000)
            run.outcome = PipelineOutcome.SUMMARY_FAILED
            run.error = str(e)
            logger.error(f"Summarizer failed for {run.sender_id} <-> {run.recipient_id}: {e}", exc_info=True)
            return
        run.record_timing(SummaryStage.SUMMARIZE, (time.perf_counter() - start) * 1000)
        if not run.summary.strip():
            logger.warning(f"Backend returned an empty summary for {run.count} messages; keeping window")
            run.outcome = PipelineOutcome.SUMMARY_EMPTY
            return

        # DELIVER
        run.payload = compose_payload(header, run.summary)
        run.target = select_target(run.sender_id, run.recipient_id, run.from_me)
        start = time.perf_counter()
        delivered = await self.delivery.send(run.target, run.payload)
        run.record_timing(SummaryStage.DELIVER, (time.perf_counter() - start) * 1000)
        if not delivered:
            run.outcome = PipelineOutcome.DELIVERY_FAILED
            return

        # PRUNE: only the fetched rows; anything appended since stays buffered
        start = time.perf_counter()
        run.pruned = await asyncio.to_thread(
            self.store.prune,
            run.sender_id,
            run.recipient_id,
            run.first_timestamp,
            run.last_timestamp,
            inclusive=True,
            timestamps=[m.timestamp for m in run.window],
        )
        run.record_timing(SummaryStage.PRUNE, (time.perf_counter() - start) * 1000)
        if run.pruned is None:
            run.outcome = PipelineOutcome.PRUNE_FAILED
            return

        run.outcome = PipelineOutcome.SUMMARIZED
