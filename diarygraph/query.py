"""
Read-side queries over the entry graph.

Facet lookups walk container -> facet -> entry edges; chronological
queries use the sorted index. entries_for_day is the default day-range
collaborator for implicit visit linking.
"""

from datetime import timezone, tzinfo
from typing import Any, Optional

from .graph import GraphStore
from .types import (
    ACTIVITIES,
    COMMENT,
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
    TIMELINE_DAY,
    FacetKey,
    is_entry_key,
    mention_value,
    tag_value,
    timeline_keys,
)


def day_key_for(ts: int, tz: tzinfo = timezone.utc) -> str:
    """Calendar day ("YYYY-MM-DD") an entry timestamp falls on."""
    return timeline_keys(ts, tz)[2].value


def entries_for_day(graph: GraphStore, day: str) -> list[int]:
    """Entry ids on a calendar day, ascending by timestamp.

    The ascending order is what makes first-match visit linking
    deterministic.
    """
    day_node = FacetKey(TIMELINE_DAY, day)
    return sorted(
        k for k in graph.successors(day_node, DATE) if is_entry_key(k)
    )


def entries_between(state, start: Optional[int] = None, end: Optional[int] = None) -> list[int]:
    """Entry ids in [start, end), ascending."""
    return state.sorted_entries.range(start, end)


def latest_entries(state, n: int = 20) -> list[int]:
    """The n newest entry ids, newest first."""
    return state.sorted_entries.latest(n)


def _facet_entries(graph: GraphStore, key: FacetKey) -> list[int]:
    return sorted(k for k in graph.successors(key, CONTAINS) if is_entry_key(k))


def entries_with_tag(graph: GraphStore, tag: str, *, private: bool = False) -> list[int]:
    """Entry ids carrying a hashtag (case-insensitive, '#' optional)."""
    kind = PRIVATE_TAG if private else TAG
    return _facet_entries(graph, FacetKey(kind, tag_value(tag)))


def entries_with_mention(graph: GraphStore, mention: str) -> list[int]:
    return _facet_entries(graph, FacetKey(MENTION, mention_value(mention)))


def _facet_counts(graph: GraphStore, container: str, relationship: Any) -> list[tuple[str, int]]:
    counts = []
    for facet in graph.successors(container, relationship):
        attrs = graph.attrs(facet) or {}
        label = attrs.get("val", attrs.get("name", str(facet.value)))
        counts.append((label, len(graph.out_edges(facet, CONTAINS))))
    counts.sort(key=lambda item: (-item[1], item[0].lower()))
    return counts


def hashtags(graph: GraphStore, *, private: bool = False) -> list[tuple[str, int]]:
    """(tag, entry count) pairs, most used first."""
    container = PRIVATE_HASHTAGS if private else HASHTAGS
    return _facet_counts(graph, container, IS)


def mentions(graph: GraphStore) -> list[tuple[str, int]]:
    return _facet_counts(graph, MENTIONS, IS)


def activities(graph: GraphStore) -> list[tuple[str, int]]:
    return _facet_counts(graph, ACTIVITIES, None)


def consumption_types(graph: GraphStore) -> list[tuple[str, int]]:
    return _facet_counts(graph, CONSUMPTION_TYPES, None)


def comments_for(graph: GraphStore, ts: int) -> list[int]:
    """Entries commenting on ts, ascending."""
    return sorted(graph.predecessors(ts, COMMENT))


def linked_from(graph: GraphStore, ts: int) -> list[int]:
    """Entries ts links to (explicit or visit)."""
    return sorted(graph.successors(ts, LINKED))


def linked_to(graph: GraphStore, ts: int) -> list[int]:
    """Entries linking to ts."""
    return sorted(graph.predecessors(ts, LINKED))


def tags_of(graph: GraphStore, ts: int) -> list[str]:
    """Display values of the tag nodes attached to an entry."""
    result = []
    for src in graph.predecessors(ts, CONTAINS):
        if isinstance(src, FacetKey) and src.kind in (TAG, PRIVATE_TAG):
            result.append((graph.attrs(src) or {}).get("val", src.value))
    return sorted(result)
