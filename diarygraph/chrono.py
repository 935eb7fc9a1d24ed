"""
Chronological index: entry timestamps kept in sorted order.

A sorted mirror of entry existence in the graph. Holds no deriving
logic; the upsert/delete paths keep it equal to the set of entry nodes.
"""

import bisect
from typing import Iterable, Iterator, Optional


class ChronologicalIndex:
    """Sorted set of int timestamps with range and paging queries."""

    def __init__(self, timestamps: Iterable[int] = ()):
        self._timestamps: list[int] = sorted(set(timestamps))

    def add(self, ts: int) -> None:
        pos = bisect.bisect_left(self._timestamps, ts)
        if pos == len(self._timestamps) or self._timestamps[pos] != ts:
            self._timestamps.insert(pos, ts)

    def discard(self, ts: int) -> None:
        pos = bisect.bisect_left(self._timestamps, ts)
        if pos < len(self._timestamps) and self._timestamps[pos] == ts:
            del self._timestamps[pos]

    def __contains__(self, ts) -> bool:
        if not isinstance(ts, int):
            return False
        pos = bisect.bisect_left(self._timestamps, ts)
        return pos < len(self._timestamps) and self._timestamps[pos] == ts

    def __len__(self) -> int:
        return len(self._timestamps)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._timestamps))

    def __reversed__(self) -> Iterator[int]:
        return iter(self._timestamps[::-1])

    def __eq__(self, other) -> bool:
        if isinstance(other, ChronologicalIndex):
            return self._timestamps == other._timestamps
        if isinstance(other, (set, frozenset)):
            return set(self._timestamps) == other
        return NotImplemented

    def range(self, start: Optional[int] = None, end: Optional[int] = None) -> list[int]:
        """Timestamps in [start, end), ascending. None leaves a side open."""
        lo = 0 if start is None else bisect.bisect_left(self._timestamps, start)
        hi = len(self._timestamps) if end is None else bisect.bisect_left(self._timestamps, end)
        return self._timestamps[lo:hi]

    def latest(self, n: int) -> list[int]:
        """The n most recent timestamps, newest first."""
        if n <= 0:
            return []
        return self._timestamps[:-n - 1:-1]

    def before(self, ts: int, n: int) -> list[int]:
        """Up to n timestamps strictly older than ts, newest first (paging)."""
        if n <= 0:
            return []
        hi = bisect.bisect_left(self._timestamps, ts)
        lo = max(0, hi - n)
        return self._timestamps[lo:hi][::-1]

    def first(self) -> Optional[int]:
        return self._timestamps[0] if self._timestamps else None

    def last(self) -> Optional[int]:
        return self._timestamps[-1] if self._timestamps else None

    def index_of(self, ts: int) -> Optional[int]:
        """Position of ts in chronological order, or None if absent."""
        pos = bisect.bisect_left(self._timestamps, ts)
        if pos < len(self._timestamps) and self._timestamps[pos] == ts:
            return pos
        return None

    def copy(self) -> "ChronologicalIndex":
        other = ChronologicalIndex()
        other._timestamps = list(self._timestamps)
        return other

    def __repr__(self) -> str:
        return f"ChronologicalIndex(size={len(self)})"
