"""
Protocol definitions for the collaborators consumed by the indexer.

The indexer reads the outside world only through these narrow,
synchronous, side-effect-free callables:
- DayRangeEntries: ids of entries on a calendar day (stable order)
- VisitWindow: (arrival, departure) of a candidate visit entry
- TimestampCheck: sanity bound on a timestamp
- WarnSink: non-fatal diagnostics

Defaults live in query.entries_for_day, visits.visit_timestamps,
visits.possible_timestamp and derivers.log_warning.
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .graph import GraphStore


@runtime_checkable
class DayRangeEntries(Protocol):
    """Entry ids on the given day ("YYYY-MM-DD").

    Must return ids in a stable, documented order; the first matching
    visit wins, so the order decides which visit an entry links to.
    """

    def __call__(self, graph: GraphStore, day: str) -> Sequence[int]: ...


@runtime_checkable
class VisitWindow(Protocol):
    """(arrival_ts, departure_ts) in ms for a visit entry's attributes.

    Must return values even when some source fields are missing.
    """

    def __call__(self, entry: dict[str, Any]) -> tuple[int, int]: ...


@runtime_checkable
class TimestampCheck(Protocol):
    def __call__(self, ts: Any) -> bool: ...


@runtime_checkable
class WarnSink(Protocol):
    def __call__(self, message: str, context: Optional[dict[str, Any]] = None) -> None: ...
