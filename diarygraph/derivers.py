"""
Facet derivers: the secondary index edges implied by one entry.

Each deriver reads a single entry and adds the nodes and edges its
fields imply. All are idempotent: nodes are created lazily on first
reference and re-adding an edge is a no-op. A missing optional field
is a no-op, never an error.

Derivers run in a fixed order (see derive_all). The timeline tree must
precede the implicit visit link, which looks up entries by day.
"""

import logging
from datetime import timezone, tzinfo
from typing import Any, Iterable, Optional

from .graph import GraphStore
from .protocol import DayRangeEntries, TimestampCheck, VisitWindow, WarnSink
from .query import day_key_for, entries_for_day
from .types import (
    ACTIVITIES,
    ACTIVITY,
    COMMENT,
    CONSUMPTION,
    CONSUMPTION_TYPES,
    CONTAINS,
    DATE,
    HASHTAGS,
    IS,
    LINKED,
    MENTION,
    MENTIONS,
    PRIVATE_HASHTAGS,
    PRIVATE_TAG,
    TAG,
    FacetKey,
    is_entry_key,
    mention_value,
    tag_value,
    timeline_keys,
)
from .visits import possible_timestamp, select_visit, visit_timestamps

logger = logging.getLogger(__name__)

# Any of these on an entry makes all of its tags private
DEFAULT_PRIVATE_TAGS = frozenset({"#pvt", "#private", "#nsfw"})


def log_warning(message: str, context: Optional[dict[str, Any]] = None) -> None:
    """Default warn sink: a warning on this module's logger."""
    if context:
        logger.warning("%s %s", message, context)
    else:
        logger.warning("%s", message)


def _strings(values: Any) -> list[str]:
    """Distinct non-empty strings from an optional list field, in order."""
    if not values or isinstance(values, str):
        return []
    return list(dict.fromkeys(v for v in values if isinstance(v, str) and v.strip()))


def _tags(entry: dict) -> list[str]:
    return [t for t in _strings(entry.get("tags")) if tag_value(t)]


def _mentions(entry: dict) -> list[str]:
    return [m for m in _strings(entry.get("mentions")) if mention_value(m)]


def is_private_entry(entry: dict, private_tags: Iterable[str] = DEFAULT_PRIVATE_TAGS) -> bool:
    """An entry is private if any of its tags is in the private vocabulary."""
    private = {tag_value(t) for t in private_tags}
    return any(tag_value(t) in private for t in _tags(entry))


def add_hashtags(
    graph: GraphStore,
    entry: dict,
    private_tags: Iterable[str] = DEFAULT_PRIVATE_TAGS,
) -> GraphStore:
    """
    Add hashtag nodes and edges for an entry.

    Tags are lower-cased for identity; the original text is kept in the
    node's "val" attribute. Privacy is decided per entry: if any tag is
    private, all of the entry's tags go under the private container.
    """
    ts = entry["timestamp"]
    tags = _tags(entry)
    if not tags:
        return graph
    if is_private_entry(entry, private_tags):
        container, kind = PRIVATE_HASHTAGS, PRIVATE_TAG
    else:
        container, kind = HASHTAGS, TAG
    graph.add_nodes(container)
    for tag in tags:
        key = FacetKey(kind, tag_value(tag))
        graph.add_nodes_with_attrs((key, {"val": tag}))
        graph.add_edges((key, ts, CONTAINS), (container, key, IS))
    return graph


def add_mentions(graph: GraphStore, entry: dict) -> GraphStore:
    """Add mention nodes and edges; same shape as hashtags, no private variant."""
    ts = entry["timestamp"]
    mentions = _mentions(entry)
    if not mentions:
        return graph
    graph.add_nodes(MENTIONS)
    for mention in mentions:
        key = FacetKey(MENTION, mention_value(mention))
        graph.add_nodes_with_attrs((key, {"val": mention}))
        graph.add_edges((key, ts, CONTAINS), (MENTIONS, key, IS))
    return graph


def add_timeline_tree(graph: GraphStore, entry: dict, tz: tzinfo = timezone.utc) -> GraphStore:
    """
    Connect the entry to its day node, creating year/month/day as needed.

    Raises:
        InvalidTimestamp: if the timestamp cannot be placed on the calendar
    """
    ts = entry["timestamp"]
    year, month, day = timeline_keys(ts, tz)
    y, m, d = (int(part) for part in day.value.split("-"))
    for key, attrs in (
        (year, {"year": y}),
        (month, {"year": y, "month": m}),
        (day, {"year": y, "month": m, "day": d}),
    ):
        if not graph.has_node(key):
            graph.add_nodes_with_attrs((key, attrs))
    graph.add_edges((year, month), (month, day), (day, ts, DATE))
    return graph


def _add_category(graph: GraphStore, entry: dict, field: str, container: str, kind: str) -> GraphStore:
    value = entry.get(field)
    name = value.get("name") if isinstance(value, dict) else None
    if not isinstance(name, str) or not name.strip():
        return graph
    node = FacetKey(kind, name)
    graph.add_nodes(container)
    if not graph.has_node(node):
        graph.add_nodes_with_attrs((node, {"name": name}))
    graph.add_edges((container, node), (node, entry["timestamp"], CONTAINS))
    return graph


def add_activity(graph: GraphStore, entry: dict) -> GraphStore:
    """Link the entry to its activity type, if it has one."""
    return _add_category(graph, entry, "activity", ACTIVITIES, ACTIVITY)


def add_consumption(graph: GraphStore, entry: dict) -> GraphStore:
    """Link the entry to its consumption type, if it has one."""
    return _add_category(graph, entry, "consumption", CONSUMPTION_TYPES, CONSUMPTION)


def add_parent_ref(
    graph: GraphStore,
    entry: dict,
    warn: WarnSink = log_warning,
) -> GraphStore:
    """COMMENT edge to the parent named by comment_for.

    No existence check: a missing parent leaves the edge pending until
    the parent is indexed.
    """
    parent = entry.get("comment_for")
    if parent is None:
        return graph
    if not is_entry_key(parent):
        warn("Comment parent is not an entry timestamp, skipping",
             {"entry": entry["timestamp"], "comment_for": parent})
        return graph
    graph.add_edges((entry["timestamp"], parent, COMMENT))
    return graph


def add_linked(
    graph: GraphStore,
    entry: dict,
    warn: WarnSink = log_warning,
) -> GraphStore:
    """LINKED edges to each existing entry in linked_entries.

    Targets that don't exist are reported through warn and skipped.
    """
    ts = entry["timestamp"]
    links = entry.get("linked_entries") or ()
    if not isinstance(links, (list, tuple, set, frozenset)):
        warn("linked_entries is not a list, skipping", {"entry": ts, "linked_entries": links})
        return graph
    for linked in links:
        if is_entry_key(linked) and graph.has_node(linked):
            graph.add_edges((ts, linked, LINKED))
        else:
            warn("Linked node does not exist, skipping", {"entry": ts, "linked": linked})
    return graph


def add_linked_visit(
    graph: GraphStore,
    entry: dict,
    day_range_entries: DayRangeEntries = entries_for_day,
    visit_window: VisitWindow = visit_timestamps,
    is_plausible: TimestampCheck = possible_timestamp,
    tz: tzinfo = timezone.utc,
    warn: WarnSink = log_warning,
) -> GraphStore:
    """LINKED edge to the visit the entry was captured during, if any.

    At most one visit is linked: the first candidate in day-range order.
    Candidates with an unreadable window are reported through warn.
    """
    ts = entry["timestamp"]
    day = day_key_for(ts, tz)
    candidates = ((k, graph.attrs(k)) for k in day_range_entries(graph, day))
    visit = select_visit(ts, candidates, visit_window, is_plausible, warn)
    if visit is not None:
        logger.debug("Entry %s captured during visit %s", ts, visit)
        graph.add_edges((ts, visit, LINKED))
    return graph


def derive_all(
    graph: GraphStore,
    entry: dict,
    *,
    private_tags: Iterable[str] = DEFAULT_PRIVATE_TAGS,
    tz: tzinfo = timezone.utc,
    warn: WarnSink = log_warning,
    day_range_entries: DayRangeEntries = entries_for_day,
    visit_window: VisitWindow = visit_timestamps,
    is_plausible: TimestampCheck = possible_timestamp,
) -> GraphStore:
    """Run every deriver in the fixed order."""
    add_hashtags(graph, entry, private_tags)
    add_mentions(graph, entry)
    add_linked(graph, entry, warn)
    add_timeline_tree(graph, entry, tz)
    add_activity(graph, entry)
    add_consumption(graph, entry)
    add_linked_visit(graph, entry, day_range_entries, visit_window, is_plausible, tz, warn)
    add_parent_ref(graph, entry, warn)
    return graph


def facet_keys_for(entry: Optional[dict]) -> list[FacetKey]:
    """Tag, private-tag and mention keys an entry's fields could have created.

    Both tag kinds are listed because privacy depends on the entry's
    tag set at the time it was derived.
    """
    if not entry:
        return []
    keys = []
    for tag in _tags(entry):
        keys.append(FacetKey(TAG, tag_value(tag)))
        keys.append(FacetKey(PRIVATE_TAG, tag_value(tag)))
    for mention in _mentions(entry):
        keys.append(FacetKey(MENTION, mention_value(mention)))
    return list(dict.fromkeys(keys))
