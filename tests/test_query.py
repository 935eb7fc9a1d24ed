"""
Tests for read-side queries.
"""

import pytest

from diarygraph import query
from diarygraph.config import IndexConfig
from diarygraph.index import EntryIndex


@pytest.fixture
def populated(index, ts):
    index.add_node(ts(2023, 4, 12, 9), {"md": "coffee", "tags": ["#Coffee", "#morning"],
                                        "mentions": ["@Ana"], "activity": {"name": "walk"}})
    index.add_node(ts(2023, 4, 12, 18), {"md": "more coffee", "tags": ["#coffee"],
                                         "consumption": {"name": "espresso"}})
    index.add_node(ts(2023, 4, 13, 8), {"md": "secret", "tags": ["#Diary", "#pvt"],
                                        "mentions": ["@ana", "@Bo"]})
    index.add_node(ts(2023, 4, 13, 9), {"md": "reply", "comment_for": ts(2023, 4, 12, 9),
                                        "linked_entries": [ts(2023, 4, 12, 18)]})
    return index


class TestFacetQueries:

    def test_entries_with_tag(self, populated, ts):
        graph = populated.graph
        assert query.entries_with_tag(graph, "#COFFEE") == [ts(2023, 4, 12, 9), ts(2023, 4, 12, 18)]
        assert query.entries_with_tag(graph, "coffee") == query.entries_with_tag(graph, "#coffee")
        assert query.entries_with_tag(graph, "#diary") == []
        assert query.entries_with_tag(graph, "#diary", private=True) == [ts(2023, 4, 13, 8)]

    def test_entries_with_mention(self, populated, ts):
        assert query.entries_with_mention(populated.graph, "@ANA") == [
            ts(2023, 4, 12, 9), ts(2023, 4, 13, 8),
        ]

    def test_hashtag_counts(self, populated):
        graph = populated.graph
        assert query.hashtags(graph) == [("#coffee", 2), ("#morning", 1)]
        assert query.hashtags(graph, private=True) == [("#Diary", 1), ("#pvt", 1)]

    def test_mention_counts(self, populated):
        assert query.mentions(populated.graph) == [("@ana", 2), ("@Bo", 1)]

    def test_category_counts(self, populated):
        graph = populated.graph
        assert query.activities(graph) == [("walk", 1)]
        assert query.consumption_types(graph) == [("espresso", 1)]

    def test_tags_of(self, populated, ts):
        # Display value is the most recent spelling
        assert query.tags_of(populated.graph, ts(2023, 4, 12, 9)) == ["#coffee", "#morning"]
        assert query.tags_of(populated.graph, 12345) == []


class TestReferenceQueries:

    def test_comments_and_links(self, populated, ts):
        graph = populated.graph
        reply = ts(2023, 4, 13, 9)
        assert query.comments_for(graph, ts(2023, 4, 12, 9)) == [reply]
        assert query.linked_from(graph, reply) == [ts(2023, 4, 12, 18)]
        assert query.linked_to(graph, ts(2023, 4, 12, 18)) == [reply]
        assert query.comments_for(graph, reply) == []


class TestChronologicalQueries:

    def test_entries_for_day(self, populated, ts):
        assert query.entries_for_day(populated.graph, "2023-04-12") == [
            ts(2023, 4, 12, 9), ts(2023, 4, 12, 18),
        ]
        assert query.entries_for_day(populated.graph, "1999-01-01") == []

    def test_entries_between(self, populated, ts):
        state = populated.state
        assert query.entries_between(state, ts(2023, 4, 12, 12), ts(2023, 4, 13, 9)) == [
            ts(2023, 4, 12, 18), ts(2023, 4, 13, 8),
        ]
        assert len(query.entries_between(state)) == 4

    def test_latest_entries(self, populated, ts):
        assert query.latest_entries(populated.state, 2) == [ts(2023, 4, 13, 9), ts(2023, 4, 13, 8)]

    def test_day_key_for(self, ts):
        assert query.day_key_for(ts(2023, 4, 12, 23, 59)) == "2023-04-12"


class TestTimezone:

    def test_day_follows_configured_timezone(self, tmp_path, ts):
        zoneinfo = pytest.importorskip("zoneinfo")
        try:
            zoneinfo.ZoneInfo("America/Los_Angeles")
        except zoneinfo.ZoneInfoNotFoundError:
            pytest.skip("timezone database not available")

        index = EntryIndex(IndexConfig(path=tmp_path, timezone="America/Los_Angeles"))
        late = ts(2023, 4, 13, 3)  # 20:00 on the 12th in Los Angeles
        index.add_node(late, {"md": "late evening"})
        assert query.entries_for_day(index.graph, "2023-04-12") == [late]
        assert query.entries_for_day(index.graph, "2023-04-13") == []
