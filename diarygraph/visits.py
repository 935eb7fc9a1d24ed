"""
Visit windows and implicit visit matching.

A visit entry records a time-bounded stay (arrival_date, departure_date).
Any entry captured strictly inside that window on the same day is
implicitly linked to the visit. Location sources report an unknown
departure as a far-future date, hence the plausibility check.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from .protocol import WarnSink

logger = logging.getLogger(__name__)

# Plausible timestamp bounds in ms: epoch up to 2100-01-01T00:00:00Z
MIN_PLAUSIBLE_TS = 0
MAX_PLAUSIBLE_TS = 4_102_444_800_000

# Field marking an entry as a visit candidate
DEPARTURE_FIELD = "departure_date"
ARRIVAL_FIELD = "arrival_date"


def _to_millis(value: Any) -> int:
    """Epoch milliseconds from an int/float or an ISO-8601 string.

    Naive ISO strings are taken as UTC.

    Raises:
        ValueError: for strings that are not ISO-8601, and non-finite numbers
        TypeError: for other value types
    """
    if isinstance(value, bool):
        raise TypeError(f"Not a timestamp: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Not a finite timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    raise TypeError(f"Not a timestamp: {value!r}")


def visit_timestamps(entry: dict[str, Any]) -> tuple[int, int]:
    """
    Arrival and departure of a visit entry, in ms since the epoch.

    A missing arrival falls back to the entry timestamp; a missing
    departure falls back to the arrival, which yields an empty window.
    """
    arrival = entry.get(ARRIVAL_FIELD)
    departure = entry.get(DEPARTURE_FIELD)
    arrival_ts = _to_millis(arrival if arrival is not None else entry.get("timestamp", 0))
    departure_ts = _to_millis(departure) if departure is not None else arrival_ts
    return arrival_ts, departure_ts


def possible_timestamp(
    ts: Any,
    min_ts: int = MIN_PLAUSIBLE_TS,
    max_ts: int = MAX_PLAUSIBLE_TS,
) -> bool:
    """True if ts is an int within the plausible range (inclusive)."""
    if not isinstance(ts, int) or isinstance(ts, bool):
        return False
    return min_ts <= ts <= max_ts


def timestamp_check(min_ts: int, max_ts: int) -> Callable[[Any], bool]:
    """possible_timestamp bound to configured limits."""
    def check(ts: Any) -> bool:
        return possible_timestamp(ts, min_ts, max_ts)
    return check


def is_visit(entry: Optional[dict[str, Any]]) -> bool:
    return bool(entry) and bool(entry.get(DEPARTURE_FIELD))


def select_visit(
    ts: int,
    candidates: Iterable[tuple[int, dict[str, Any]]],
    visit_window: Callable[[dict[str, Any]], tuple[int, int]] = visit_timestamps,
    is_plausible: Callable[[Any], bool] = possible_timestamp,
    warn: Optional[WarnSink] = None,
) -> Optional[int]:
    """
    Pick the visit an entry at ts was captured during.

    Scans candidates in the given order and returns the key of the first
    visit whose window strictly contains ts (arrival < ts < departure)
    and whose departure is plausible. Non-visit candidates and the entry
    itself are ignored. A candidate whose window cannot be computed is
    reported to warn (or logged, if no sink is given) and skipped.

    Args:
        ts: Timestamp of the entry being indexed
        candidates: (key, attrs) pairs, in the day-range collaborator's order
        visit_window: Extracts (arrival_ts, departure_ts) from attrs
        is_plausible: Sanity check applied to the departure timestamp
        warn: Sink for skipped candidates

    Returns:
        Key of the matching visit, or None
    """
    for key, attrs in candidates:
        if key == ts or not is_visit(attrs):
            continue
        try:
            arrival_ts, departure_ts = visit_window(attrs)
            inside = arrival_ts < ts < departure_ts
        except (ValueError, TypeError, OverflowError) as e:
            if warn is None:
                logger.warning("Skipping visit %s with unreadable window: %s", key, e)
            else:
                warn("Skipping visit with unreadable window", {"visit": key, "error": str(e)})
            continue
        if inside and is_plausible(departure_ts):
            return key
    return None
