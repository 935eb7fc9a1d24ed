"""
diarygraph

An in-memory index of timestamped journal entries (notes, photos, visits)
as one labeled graph. Entries are discoverable by hashtag, mention,
calendar day, activity, consumption type, comment thread and link
without a secondary query engine.

Quick Start:
    from diarygraph import EntryIndex

    index = EntryIndex()
    index.add({"timestamp": 1681300000000, "md": "Espresso", "tags": ["#coffee"]})
    index.remove(1681300000000)

CLI Usage:
    diarygraph load entries.jsonl
    diarygraph day entries.jsonl 2023-04-12
    diarygraph tags entries.jsonl --private

Environment Variables:
    DIARYGRAPH_HOME     - Directory holding diarygraph.toml and logs
    DIARYGRAPH_VERBOSE  - Set to 1 for debug logging in the CLI
"""

from .chrono import ChronologicalIndex
from .config import IndexConfig, load_config, load_or_create_config, save_config
from .errors import InvalidTimestamp
from .graph import ANY, GraphStore
from .index import COLLECTIBLE_KINDS, EntryIndex, IndexOptions, IndexState, add_node, remove_node
from .types import Edge, FacetKey

__version__ = "0.1.0"
__all__ = [
    "ANY",
    "COLLECTIBLE_KINDS",
    "ChronologicalIndex",
    "Edge",
    "EntryIndex",
    "FacetKey",
    "GraphStore",
    "IndexConfig",
    "IndexOptions",
    "IndexState",
    "InvalidTimestamp",
    "add_node",
    "remove_node",
    "load_config",
    "load_or_create_config",
    "save_config",
]
