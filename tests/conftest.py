"""
Shared pytest fixtures for diarygraph tests.

Provides an index with a collecting warn sink, timestamp helpers, and an
invariant checker run after every mutation in the property-style tests.
"""

from datetime import datetime, timezone

import pytest

from diarygraph.config import IndexConfig
from diarygraph.index import EntryIndex, IndexState
from diarygraph.types import (
    CONTAINS,
    HASHTAGS,
    IS,
    MENTION,
    MENTIONS,
    PRIVATE_HASHTAGS,
    PRIVATE_TAG,
    TAG,
    FacetKey,
)


def ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """UTC wall-clock time as an entry timestamp."""
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


class WarnCollector:
    """Warn sink that records calls instead of logging."""

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, message, context=None):
        self.calls.append((message, context or {}))

    @property
    def messages(self) -> list[str]:
        return [m for m, _ in self.calls]


@pytest.fixture
def ts():
    """Timestamp helper: ts(2023, 4, 12, 9) -> ms since epoch (UTC)."""
    return ms


@pytest.fixture
def warnings_sink():
    return WarnCollector()


@pytest.fixture
def config(tmp_path):
    return IndexConfig(path=tmp_path)


@pytest.fixture
def index(config, warnings_sink):
    """Empty EntryIndex with default policies and a collecting warn sink."""
    return EntryIndex(config, warn=warnings_sink)


def _check_invariants(state: IndexState) -> None:
    graph = state.graph

    # Chronological index mirrors entry existence
    assert set(state.sorted_entries) == state.entry_keys()
    assert list(state.sorted_entries) == sorted(state.entry_keys())

    # Every tag/mention node is contained by at least one entry
    for key in list(graph.nodes()):
        if isinstance(key, FacetKey) and key.kind in (TAG, PRIVATE_TAG, MENTION):
            assert graph.find_edges(src=key, relationship=CONTAINS), f"orphan {key}"

    # Everything a container points at is still live
    for container in (HASHTAGS, PRIVATE_HASHTAGS, MENTIONS):
        for edge in graph.find_edges(src=container, relationship=IS):
            assert graph.find_edges(src=edge.dest, relationship=CONTAINS)


@pytest.fixture
def check_invariants():
    """Assert the orphan and chronological-mirror invariants on a state."""
    return _check_invariants
