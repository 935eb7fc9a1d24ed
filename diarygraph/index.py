"""
Entry indexing: upsert and garbage collection over the entry graph.

An IndexState pairs the graph with its chronological index. Both are
updated together by add_node and remove_node; EntryIndex owns one state
and serializes every mutation under a lock so no reader sees one
updated without the other.

Upsert is remove-then-rebuild: the previous version's derived edges are
deleted (sweeping orphaned tags and mentions) before the merged entry is
re-inserted and every deriver runs again. The graph never holds edges
derived from a stale version of an entry.
"""

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Any, Iterable, Optional

from .chrono import ChronologicalIndex
from .config import DERIVE_MERGED, DERIVE_PARTIAL, IndexConfig
from .derivers import DEFAULT_PRIVATE_TAGS, derive_all, facet_keys_for, log_warning
from .errors import InvalidTimestamp
from .graph import GraphStore
from .protocol import DayRangeEntries, TimestampCheck, VisitWindow, WarnSink
from .query import entries_for_day
from .types import (
    COMMENT,
    CONTAINS,
    ENTRY_OWNED_RELATIONSHIPS,
    MENTION,
    PRIVATE_TAG,
    TAG,
    is_entry_key,
    timestamp_to_datetime,
)
from .visits import possible_timestamp, timestamp_check, visit_timestamps

logger = logging.getLogger(__name__)

# Facet kinds the garbage collector reclaims. Activity, consumption and
# timeline nodes are never swept and accumulate for the index lifetime.
COLLECTIBLE_KINDS = frozenset({TAG, PRIVATE_TAG, MENTION})


@dataclass
class IndexState:
    """The whole index: entry graph plus sorted entry timestamps."""
    graph: GraphStore = field(default_factory=GraphStore)
    sorted_entries: ChronologicalIndex = field(default_factory=ChronologicalIndex)

    def has_entry(self, ts: Any) -> bool:
        return is_entry_key(ts) and self.graph.has_node(ts)

    def entry(self, ts: Any) -> Optional[dict]:
        """Stored attributes of the entry at ts, or None."""
        if not self.has_entry(ts):
            return None
        return self.graph.attrs(ts)

    def entry_keys(self) -> set[int]:
        """Timestamps of every entry node in the graph."""
        return {k for k in self.graph.nodes() if is_entry_key(k)}

    def copy(self) -> "IndexState":
        return IndexState(self.graph.copy(), self.sorted_entries.copy())


@dataclass(frozen=True)
class IndexOptions:
    """Policies and collaborators used while deriving facets."""
    private_tags: frozenset = DEFAULT_PRIVATE_TAGS
    tz: tzinfo = timezone.utc
    derive_from: str = DERIVE_PARTIAL
    warn: WarnSink = log_warning
    day_range_entries: DayRangeEntries = entries_for_day
    visit_window: VisitWindow = visit_timestamps
    is_plausible: TimestampCheck = possible_timestamp

    @classmethod
    def from_config(cls, config: IndexConfig, **overrides) -> "IndexOptions":
        """Options for a config; collaborators can be overridden by keyword."""
        values = {
            "private_tags": frozenset(config.private_tags),
            "tz": config.tzinfo,
            "derive_from": config.derive_from,
            "is_plausible": timestamp_check(config.min_timestamp, config.max_timestamp),
        }
        values.update(overrides)
        return cls(**values)


DEFAULT_OPTIONS = IndexOptions()


def _sweep_orphans(graph: GraphStore, entry: Optional[dict]) -> None:
    """Remove tag/mention nodes of a deleted entry that nothing contains any more."""
    for key in facet_keys_for(entry):
        if key.kind not in COLLECTIBLE_KINDS or not graph.has_node(key):
            continue
        if not graph.out_edges(key, CONTAINS):
            logger.debug("Removing orphaned %s", key)
            graph.remove_nodes(key)


def remove_node(state: IndexState, ts: Any) -> IndexState:
    """
    Remove an entry and reclaim tag/mention nodes it alone referenced.

    Deleting a missing entry is a no-op. Incident edges go with the node;
    COMMENT edges from other entries become pending again, so they are
    restored if the parent is re-indexed.

    Returns:
        The same state, updated in place
    """
    graph = state.graph
    if not state.has_entry(ts):
        return state

    entry = graph.attrs(ts)
    comments = [
        e for e in graph.in_edges(ts, COMMENT)
        if is_entry_key(e.src) and e.src != ts
    ]
    graph.remove_nodes(ts)
    state.sorted_entries.discard(ts)
    if comments:
        graph.add_edges(*comments)
    _sweep_orphans(graph, entry)
    logger.debug("Removed entry %s", ts)
    return state


def add_node(
    state: IndexState,
    ts: Any,
    entry: dict,
    options: IndexOptions = DEFAULT_OPTIONS,
) -> IndexState:
    """
    Insert or merge-update the entry at ts and re-derive its facets.

    The stored attributes are the old attributes merged with entry
    (entry's fields win). Derivers see only the fields in entry unless
    options.derive_from is "merged". Edges that other entries own
    (COMMENT, LINKED) pointing at ts survive the rebuild.

    Raises:
        InvalidTimestamp: if ts cannot be placed on the calendar; the
            state is left untouched
    """
    timestamp_to_datetime(ts, options.tz)

    graph = state.graph
    old = state.entry(ts) or {}
    merged = {**old, **entry, "timestamp": ts}
    inbound = [
        e for e in graph.in_edges(ts)
        if e.relationship in ENTRY_OWNED_RELATIONSHIPS
        and is_entry_key(e.src) and e.src != ts
    ] if old else []

    remove_node(state, ts)
    graph.add_nodes_with_attrs((ts, merged))
    if inbound:
        graph.add_edges(*inbound)

    derived = merged if options.derive_from == DERIVE_MERGED else {**entry, "timestamp": ts}
    derive_all(
        graph,
        derived,
        private_tags=options.private_tags,
        tz=options.tz,
        warn=options.warn,
        day_range_entries=options.day_range_entries,
        visit_window=options.visit_window,
        is_plausible=options.is_plausible,
    )
    state.sorted_entries.add(ts)
    logger.debug("Indexed entry %s (%s)", ts, "update" if old else "new")
    return state


class EntryIndex:
    """
    Owner of one IndexState; the single writer.

    Graph and chronological index are mutated together under an RLock.
    Readers that need to run alongside writes take a snapshot().
    """

    def __init__(
        self,
        config: Optional[IndexConfig] = None,
        *,
        state: Optional[IndexState] = None,
        **overrides,
    ):
        """
        Args:
            config: Index configuration (defaults if not given)
            state: Existing state to own (a new empty one if not given)
            **overrides: IndexOptions fields, e.g. warn= or visit_window=
        """
        self._config = config or IndexConfig()
        self._options = IndexOptions.from_config(self._config, **overrides)
        self._state = state if state is not None else IndexState()
        self._lock = threading.RLock()

    @property
    def config(self) -> IndexConfig:
        return self._config

    @property
    def options(self) -> IndexOptions:
        return self._options

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def graph(self) -> GraphStore:
        return self._state.graph

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def add_node(self, ts: Any, entry: dict) -> dict:
        """Upsert entry at ts. Returns the stored (merged) attributes."""
        with self._lock:
            existed = self._state.has_entry(ts)
            add_node(self._state, ts, entry, self._options)
            logger.info("%s entry %s", "Updated" if existed else "Added", ts)
            return self._state.entry(ts)

    def add(self, entry: dict) -> dict:
        """Upsert an entry keyed by its own "timestamp" field."""
        return self.add_node(entry.get("timestamp"), entry)

    def add_many(self, entries: Iterable[dict]) -> int:
        """
        Upsert a batch of entries in order.

        An entry with an invalid timestamp is reported through the warn
        sink and skipped; the rest of the batch is still indexed.

        Returns:
            Number of entries indexed
        """
        count = skipped = 0
        with self._lock:
            for entry in entries:
                try:
                    add_node(self._state, entry.get("timestamp"), entry, self._options)
                except InvalidTimestamp as e:
                    self._options.warn(
                        "Skipping entry with invalid timestamp",
                        {"timestamp": e.timestamp, "reason": e.reason},
                    )
                    skipped += 1
                    continue
                count += 1
        logger.info("Indexed %d entries (%d skipped)", count, skipped)
        return count

    def remove(self, ts: Any) -> bool:
        """Delete the entry at ts. Returns False if there was none."""
        with self._lock:
            existed = self._state.has_entry(ts)
            remove_node(self._state, ts)
            if existed:
                logger.info("Removed entry %s", ts)
            return existed

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, ts: Any) -> Optional[dict]:
        with self._lock:
            return self._state.entry(ts)

    def snapshot(self) -> IndexState:
        """Deep copy of the current state, safe to read without the lock."""
        with self._lock:
            return copy.deepcopy(self._state)

    def __contains__(self, ts) -> bool:
        with self._lock:
            return self._state.has_entry(ts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.sorted_entries)

    def __repr__(self) -> str:
        return f"EntryIndex(entries={len(self)}, graph={self._state.graph!r})"
