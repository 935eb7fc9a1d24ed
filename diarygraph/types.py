"""
Node keys and edge types for the entry graph.

Three families of node keys live in one graph:
- Entry keys: the entry timestamp (int, milliseconds since the epoch)
- Facet keys: FacetKey(kind, value), content-derived and stable
- Container keys: singleton strings grouping facet nodes of one kind
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, NamedTuple, Optional
from zoneinfo import ZoneInfo

from .errors import InvalidTimestamp


# Facet kinds
TAG = "tag"
PRIVATE_TAG = "ptag"
MENTION = "mention"
ACTIVITY = "activity"
CONSUMPTION = "consumption"
TIMELINE_YEAR = "timeline/year"
TIMELINE_MONTH = "timeline/month"
TIMELINE_DAY = "timeline/day"

FACET_KINDS = frozenset({
    TAG, PRIVATE_TAG, MENTION, ACTIVITY, CONSUMPTION,
    TIMELINE_YEAR, TIMELINE_MONTH, TIMELINE_DAY,
})

# Container keys
HASHTAGS = "hashtags"
PRIVATE_HASHTAGS = "private-hashtags"
MENTIONS = "mentions"
ACTIVITIES = "activities"
CONSUMPTION_TYPES = "consumption-types"

CONTAINERS = frozenset({
    HASHTAGS, PRIVATE_HASHTAGS, MENTIONS, ACTIVITIES, CONSUMPTION_TYPES,
})

# Edge relationships (None = unlabeled containment)
CONTAINS = "CONTAINS"
IS = "IS"
DATE = "DATE"
COMMENT = "COMMENT"
LINKED = "LINKED"

# Relationships that an entry owns on its outgoing side
ENTRY_OWNED_RELATIONSHIPS = frozenset({COMMENT, LINKED})


@dataclass(frozen=True)
class FacetKey:
    """A derived index node: one value of one categorical dimension."""
    kind: str
    value: Any

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


class Edge(NamedTuple):
    """A directed edge with an optional relationship label."""
    src: Any
    dest: Any
    relationship: Optional[str] = None


def is_entry_key(key: Any) -> bool:
    """Entry nodes are keyed by their integer timestamp."""
    return isinstance(key, int) and not isinstance(key, bool)


def tag_value(tag: str) -> str:
    """Identity form of a hashtag: lower-cased, leading '#' removed."""
    return tag.lower().lstrip("#")


def mention_value(mention: str) -> str:
    """Identity form of a mention: lower-cased, leading '@' removed."""
    return mention.lower().lstrip("@")


def resolve_timezone(name: str) -> tzinfo:
    """Map a configured timezone name to a tzinfo ("UTC" or an IANA name)."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def timestamp_to_datetime(ts: Any, tz: tzinfo = timezone.utc) -> datetime:
    """Convert an entry timestamp (ms since epoch) to an aware datetime.

    Raises:
        InvalidTimestamp: if ts is not an int or is outside the calendar range
    """
    if not is_entry_key(ts):
        raise InvalidTimestamp(ts, "timestamp must be an integer")
    try:
        return datetime.fromtimestamp(ts / 1000, tz=tz)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimestamp(ts, str(e)) from e


def timeline_keys(ts: int, tz: tzinfo = timezone.utc) -> tuple[FacetKey, FacetKey, FacetKey]:
    """Year, month and day node keys for an entry timestamp."""
    dt = timestamp_to_datetime(ts, tz)
    return (
        FacetKey(TIMELINE_YEAR, dt.year),
        FacetKey(TIMELINE_MONTH, f"{dt.year:04d}-{dt.month:02d}"),
        FacetKey(TIMELINE_DAY, f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"),
    )
