"""
Tests for visit windows and implicit visit linking.
"""

import pytest

from diarygraph.query import linked_from
from diarygraph.types import LINKED, Edge
from diarygraph.visits import (
    MAX_PLAUSIBLE_TS,
    possible_timestamp,
    select_visit,
    timestamp_check,
    visit_timestamps,
)


def _visit(ts, arrival, departure):
    return {"timestamp": ts, "arrival_date": arrival, "departure_date": departure}


def _window(entry):
    return entry["arrival"], entry["departure"]


class TestVisitTimestamps:

    def test_iso_strings(self, ts):
        entry = _visit(0, "2023-04-12T09:00:00Z", "2023-04-12T11:30:00+00:00")
        assert visit_timestamps(entry) == (ts(2023, 4, 12, 9), ts(2023, 4, 12, 11, 30))

    def test_naive_iso_is_utc(self, ts):
        entry = _visit(0, "2023-04-12T09:00:00", "2023-04-12T10:00:00")
        assert visit_timestamps(entry) == (ts(2023, 4, 12, 9), ts(2023, 4, 12, 10))

    def test_epoch_millis(self):
        assert visit_timestamps(_visit(0, 1000, 5000)) == (1000, 5000)

    def test_missing_fields_default(self):
        assert visit_timestamps({"timestamp": 700}) == (700, 700)
        assert visit_timestamps({"timestamp": 700, "departure_date": 900}) == (700, 900)

    def test_unparsable_raises(self):
        with pytest.raises(ValueError):
            visit_timestamps(_visit(0, "yesterday", "today"))

    @pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_raises(self, bad):
        with pytest.raises(ValueError, match="finite"):
            visit_timestamps(_visit(0, 1000, bad))


class TestPlausibility:

    def test_bounds(self):
        assert possible_timestamp(0)
        assert possible_timestamp(MAX_PLAUSIBLE_TS)
        assert not possible_timestamp(MAX_PLAUSIBLE_TS + 1)
        assert not possible_timestamp(-1)
        assert not possible_timestamp("100")
        assert not possible_timestamp(True)

    def test_configured_check(self):
        check = timestamp_check(10, 20)
        assert check(15)
        assert not check(25)


class TestSelectVisit:
    """The pure first-match selection."""

    def test_first_containing_window_wins(self):
        candidates = [
            (1, {"departure_date": "x", "arrival": 0, "departure": 100}),
            (2, {"departure_date": "x", "arrival": 10, "departure": 90}),
        ]
        assert select_visit(50, candidates, _window) == 1
        assert select_visit(50, candidates[::-1], _window) == 2

    def test_window_is_strict(self):
        candidates = [(1, {"departure_date": "x", "arrival": 10, "departure": 20})]
        assert select_visit(10, candidates, _window) is None
        assert select_visit(20, candidates, _window) is None
        assert select_visit(11, candidates, _window) == 1

    def test_implausible_departure_rejected(self):
        candidates = [(1, {"departure_date": "x", "arrival": 0, "departure": 100})]
        assert select_visit(50, candidates, _window, lambda t: False) is None

    def test_non_visits_and_self_ignored(self):
        candidates = [
            (1, {"arrival": 0, "departure": 100}),
            (50, {"departure_date": "x", "arrival": 0, "departure": 100}),
            (3, None),
        ]
        assert select_visit(50, candidates, _window) is None

    def test_unreadable_candidate_skipped(self, caplog):
        def window(entry):
            if entry["bad"]:
                raise ValueError("no arrival")
            return 0, 100

        candidates = [
            (1, {"departure_date": "x", "bad": True}),
            (2, {"departure_date": "x", "bad": False}),
        ]
        with caplog.at_level("WARNING", logger="diarygraph.visits"):
            assert select_visit(50, candidates, window) == 2
        assert "unreadable window" in caplog.text

    def test_overflowing_window_skipped(self):
        def window(entry):
            return 0, int(float("inf"))

        candidates = [(1, {"departure_date": "x"})]
        assert select_visit(50, candidates, window) is None

    def test_skipped_candidate_reported_to_sink(self, warnings_sink):
        candidates = [(7, {"arrival_date": 0, "departure_date": float("inf")})]
        assert select_visit(50, candidates, warn=warnings_sink) is None
        assert warnings_sink.messages == ["Skipping visit with unreadable window"]
        assert warnings_sink.calls[0][1]["visit"] == 7

    def test_empty(self):
        assert select_visit(50, [], _window) is None


class TestImplicitVisitLink:
    """Visit linking through the index with the default collaborators."""

    def test_entry_inside_visit_is_linked(self, index, ts):
        visit = ts(2023, 4, 12, 9)
        index.add(_visit(visit, "2023-04-12T09:00:00Z", "2023-04-12T11:00:00Z"))
        inside = ts(2023, 4, 12, 10)
        after = ts(2023, 4, 12, 12)
        index.add({"timestamp": inside, "md": "coffee at the cafe"})
        index.add({"timestamp": after, "md": "walking home"})

        graph = index.graph
        assert graph.find_edges(src=inside, relationship=LINKED) == [Edge(inside, visit, LINKED)]
        assert graph.find_edges(src=after, relationship=LINKED) == []
        assert graph.find_edges(src=visit, relationship=LINKED) == []

    def test_unknown_departure_not_linked(self, index, ts):
        visit = ts(2023, 4, 12, 9)
        index.add(_visit(visit, "2023-04-12T09:00:00Z", "4001-01-01T00:00:00Z"))
        entry = ts(2023, 4, 12, 10)
        index.add({"timestamp": entry})
        assert linked_from(index.graph, entry) == []

    def test_earliest_overlapping_visit_wins(self, index, ts):
        early = ts(2023, 4, 12, 8)
        late = ts(2023, 4, 12, 9)
        index.add(_visit(late, "2023-04-12T09:00:00Z", "2023-04-12T11:00:00Z"))
        index.add(_visit(early, "2023-04-12T08:00:00Z", "2023-04-12T12:00:00Z"))
        entry = ts(2023, 4, 12, 10)
        index.add({"timestamp": entry})
        assert linked_from(index.graph, entry) == [early]

    def test_visit_on_other_day_ignored(self, index, ts):
        visit = ts(2023, 4, 11, 20)
        index.add(_visit(visit, "2023-04-11T20:00:00Z", "2023-04-12T08:00:00Z"))
        entry = ts(2023, 4, 12, 7)
        index.add({"timestamp": entry})
        assert linked_from(index.graph, entry) == []

    def test_custom_collaborators(self, config, ts):
        from diarygraph.index import EntryIndex

        calls = []

        def day_range(graph, day):
            calls.append(day)
            return [1]

        index = EntryIndex(
            config,
            day_range_entries=day_range,
            visit_window=lambda e: (0, ts(2030, 1, 1)),
        )
        index.add_node(1, {"departure_date": "soon"})
        entry = ts(2023, 4, 12, 10)
        index.add_node(entry, {"md": "x"})
        assert calls[-1] == "2023-04-12"
        assert linked_from(index.graph, entry) == [1]


class TestCollaboratorProtocols:

    def test_defaults_satisfy_protocols(self):
        from diarygraph.derivers import log_warning
        from diarygraph.protocol import DayRangeEntries, TimestampCheck, VisitWindow, WarnSink
        from diarygraph.query import entries_for_day

        assert isinstance(entries_for_day, DayRangeEntries)
        assert isinstance(visit_timestamps, VisitWindow)
        assert isinstance(possible_timestamp, TimestampCheck)
        assert isinstance(log_warning, WarnSink)
