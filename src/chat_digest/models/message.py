from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Message:
    """A chat message as stored for one conversation pair."""

    content: str
    author: str
    sender_id: str
    recipient_id: str
    timestamp: int  # epoch milliseconds, assigned by the store

    @classmethod
    def from_row(cls, row: Any) -> 'Message':
        """Create a Message from a ``messages`` table row."""
        return cls(
            content=row.message if row.message is not None else "",
            author=row.author if row.author is not None else "",
            sender_id=row.expedition_number,
            recipient_id=row.destination_number,
            timestamp=int(row.timestamp),
        )
