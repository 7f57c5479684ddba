"""Shared fixtures for suggestion engine tests.

Supabase is replaced by MagicMock query chains: every builder method
returns the chain itself, and execute() returns canned results in order.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from pageadvisor.services.suggestion_engine.models import (
    AnalyticsSnapshot,
    PageSnapshot,
    Priority,
    SuggestionCandidate,
)
from pageadvisor.services.suggestion_engine.snapshot_reader import SnapshotReadResult

USER_ID = UUID("00000000-0000-0000-0000-000000000001")
PAGE_ID = UUID("00000000-0000-0000-0000-000000000002")
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

_BUILDER_METHODS = (
    "select", "eq", "neq", "gte", "lt", "lte", "order", "limit",
    "is_", "in_", "insert", "update", "upsert", "single",
)


def _make_execute_result(data=None, count=None):
    """Create a mock execute() result."""
    result = MagicMock()
    result.data = data if data is not None else []
    result.count = count
    return result


def _make_query(*results):
    """Query chain whose execute() returns each result in turn.

    A result that is an Exception instance is raised instead.
    """
    query = MagicMock()
    for name in _BUILDER_METHODS:
        getattr(query, name).return_value = query
    query.not_ = query
    query.execute.side_effect = [
        r if isinstance(r, Exception) else _make_execute_result(r) for r in results
    ]
    return query


@pytest.fixture
def make_query():
    return _make_query


@pytest.fixture
def fake_supabase():
    """Factory: fake_supabase(table_name=query, ...) -> mock client."""

    def _build(**tables):
        client = MagicMock()
        client.table.side_effect = lambda name: tables[name]
        return client

    return _build


@pytest.fixture
def candidate():
    """Factory for SuggestionCandidate with sensible defaults."""

    def _build(title="Tighten your headline", section="header", priority="medium",
               confidence=0.5, **kwargs):
        return SuggestionCandidate(
            title=title,
            description=kwargs.pop("description", f"Change: {title}"),
            target_section=section,
            priority=Priority(priority),
            confidence_score=confidence,
            **kwargs,
        )

    return _build


@pytest.fixture
def snapshot():
    return PageSnapshot(
        analytics=AnalyticsSnapshot(
            page_views=250,
            unique_visitors=180,
            cta_clicks=5,
            avg_session_duration=42.0,
            timestamp=NOW,
        ),
        generated_at=NOW,
    )


@pytest.fixture
def snapshot_reader(snapshot):
    """SnapshotReader stand-in that returns the snapshot fixture."""
    reader = MagicMock()
    reader.read = AsyncMock(return_value=SnapshotReadResult(snapshot=snapshot))
    return reader
