"""PostgreSQL message store for chat-digest.

All buffered chat messages live in one ``messages`` table. A conversation is
identified by an unordered pair of chat ids: a row belongs to the pair
{A, B} when (expedition_number, destination_number) is (A, B) or (B, A).
Every read and delete goes through ``_pair_clause`` so both orientations are
always matched.

Timestamps are epoch milliseconds stored as text and compared numerically;
the autoincrement ``id`` orders rows that share a timestamp (several
worker processes writing to one database) by insertion.
Each operation checks out one pooled connection, runs one statement and
returns the connection; there are no multi-statement transactions.
"""

import logging
from typing import Any, Callable, Iterable

from sqlalchemy import (
    BigInteger, Column, Index, Integer, MetaData, String, Table, Text,
    and_, cast, create_engine, delete, func, insert, or_, select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool

from ..models.message import Message
from ..utils.config import Config, build_database_url
from ..utils.temporal import MonotonicClock

logger = logging.getLogger(__name__)

metadata = MetaData()

messages_table = Table(
    "messages",
    metadata,
    Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
    Column("message", Text, nullable=False),
    Column("author", Text, nullable=True),
    Column("expedition_number", String(128), nullable=False),
    Column("destination_number", String(128), nullable=False),
    Column("timestamp", String(20), nullable=False),  # epoch ms as text
    Index("ix_messages_pair_timestamp", "expedition_number", "destination_number", "timestamp"),
)


def create_store_engine(config: Config) -> Engine:
    """Create the process-wide engine (connection pool) for the store."""
    url = build_database_url(config)
    if not url.startswith("postgresql"):
        # SQLite and friends: let SQLAlchemy pick the pool.
        return create_engine(url, echo=False)

    # connect_args override the URL query, so only fill in what the URL leaves out
    url_query = make_url(url).query
    connect_args = {}
    if "sslmode" not in url_query:
        connect_args["sslmode"] = config.POSTGRES_SSLMODE
    if "options" not in url_query:
        connect_args["options"] = f"-c statement_timeout={int(config.POSTGRES_STATEMENT_TIMEOUT_MS)}"

    return create_engine(
        url,
        echo=False,
        poolclass=QueuePool,
        pool_size=config.POSTGRES_POOL_SIZE,
        max_overflow=config.POSTGRES_MAX_OVERFLOW,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


class MessageStore:
    """Append, query and prune chat messages keyed by conversation pair.

    Failures never propagate: they are logged and surface as ``None`` (append,
    prune) or an empty list (query), so the webhook path keeps running.
    """

    def __init__(self, engine: Engine, clock: Callable[[], int] | None = None):
        self.engine = engine
        self.table = messages_table
        self._clock = clock or MonotonicClock()
        self._ts = cast(self.table.c.timestamp, BigInteger)

    @classmethod
    def from_config(cls, config: Config) -> "MessageStore":
        return cls(create_store_engine(config))

    # --------- schema / lifecycle ----------
    def ensure_schema(self) -> bool:
        """Create the messages table (and its index) if it doesn't exist."""
        try:
            metadata.create_all(self.engine, tables=[self.table], checkfirst=True)
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to create messages table: {e}")
            return False

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    # --------- helpers ----------
    def _pair_clause(self, pair_a: str, pair_b: str):
        c = self.table.c
        return or_(
            and_(c.expedition_number == pair_a, c.destination_number == pair_b),
            and_(c.expedition_number == pair_b, c.destination_number == pair_a),
        )

    # --------- core API ----------
    def append(self, content: str, author: str, sender_id: str, recipient_id: str) -> Message | None:
        """Persist one message, stamping it with the store clock."""
        message = Message(
            content=content if content is not None else "",
            author=author if author is not None else "",
            sender_id=sender_id,
            recipient_id=recipient_id,
            timestamp=self._clock(),
        )
        stmt = insert(self.table).values(
            message=message.content,
            author=message.author,
            expedition_number=message.sender_id,
            destination_number=message.recipient_id,
            timestamp=str(message.timestamp),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(stmt)
                conn.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store message {sender_id} -> {recipient_id}: {e}")
            return None

        logger.debug(f"Stored message {sender_id} -> {recipient_id} at {message.timestamp}")
        return message

    def query(self, pair_a: str, pair_b: str) -> list[Message]:
        """Return the pair's messages in either orientation, oldest first."""
        stmt = (
            select(self.table)
            .where(self._pair_clause(pair_a, pair_b))
            .order_by(self._ts.asc(), self.table.c.id.asc())
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch messages for {pair_a} <-> {pair_b}: {e}")
            return []

        return [Message.from_row(row) for row in rows]

    def prune(
        self,
        pair_a: str,
        pair_b: str,
        from_timestamp: int,
        to_timestamp: int,
        *,
        inclusive: bool = False,
        timestamps: Iterable[int] | None = None,
    ) -> int | None:
        """Delete the pair's messages between two timestamps.

        Bounds are exclusive on both ends unless ``inclusive`` is set. When
        ``timestamps`` is given, only rows stamped with one of those values are
        deleted, which limits the prune to a previously fetched window.

        Returns the number of deleted rows, or None if the delete failed.
        """
        if inclusive:
            bounds = and_(self._ts >= int(from_timestamp), self._ts <= int(to_timestamp))
        else:
            bounds = and_(self._ts > int(from_timestamp), self._ts < int(to_timestamp))

        conditions = [self._pair_clause(pair_a, pair_b), bounds]
        if timestamps is not None:
            stamped = sorted({str(int(t)) for t in timestamps})
            if not stamped:
                return 0
            conditions.append(self.table.c.timestamp.in_(stamped))

        stmt = delete(self.table).where(and_(*conditions))
        try:
            with self.engine.connect() as conn:
                result = conn.execute(stmt)
                conn.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to prune messages for {pair_a} <-> {pair_b}: {e}")
            return None

        deleted = result.rowcount or 0
        logger.debug(
            f"Pruned {deleted} messages for {pair_a} <-> {pair_b} "
            f"({from_timestamp}..{to_timestamp}, inclusive={inclusive})"
        )
        return deleted

    # --------- convenience ----------
    def count(self, pair_a: str, pair_b: str) -> int:
        """Number of buffered messages for the pair (0 on failure)."""
        stmt = (
            select(func.count())
            .select_from(self.table)
            .where(self._pair_clause(pair_a, pair_b))
        )
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to count messages for {pair_a} <-> {pair_b}: {e}")
            return 0

    def stats(self) -> dict[str, Any]:
        """Total buffered messages and distinct senders."""
        stmt = select(
            func.count(),
            func.count(func.distinct(self.table.c.expedition_number)),
        ).select_from(self.table)
        try:
            with self.engine.connect() as conn:
                total, senders = conn.execute(stmt).one()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get stats: {e}")
            return {"available": False}
        return {"available": True, "messages": total or 0, "senders": senders or 0}
