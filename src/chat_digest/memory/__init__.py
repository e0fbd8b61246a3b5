"""Message storage for chat-digest."""

from .postgresql import MessageStore, create_store_engine, messages_table

__all__ = ["MessageStore", "create_store_engine", "messages_table"]
