"""Shared fixtures: an in-memory SQLite message store with a scripted clock."""

from __future__ import annotations

from typing import Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from chat_digest.memory.postgresql import MessageStore


def make_engine():
    # One shared connection so every thread sees the same in-memory database
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_store(timestamps: Iterable[int] | None = None, create: bool = True) -> MessageStore:
    clock = iter(timestamps).__next__ if timestamps is not None else None
    store = MessageStore(make_engine(), clock=clock)
    if create:
        assert store.ensure_schema()
    return store


@pytest.fixture
def store_factory():
    created: list[MessageStore] = []

    def _factory(timestamps: Iterable[int] | None = None, create: bool = True) -> MessageStore:
        store = make_store(timestamps, create)
        created.append(store)
        return store

    yield _factory
    for store in created:
        store.dispose()


@pytest.fixture
def store(store_factory) -> MessageStore:
    return store_factory()
