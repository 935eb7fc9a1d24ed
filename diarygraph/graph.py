"""
Graph store: a labeled, directed multigraph.

Nodes are keyed by any hashable value and hold an attribute mapping.
Edges carry an optional relationship label; each (src, dest, label)
triple is stored at most once, so re-adding an edge is a no-op.

Edges whose endpoints do not exist yet are held as pending and become
regular edges as soon as both endpoints are created. This lets a comment
refer to a parent that is imported later.

Backed by networkx.MultiDiGraph, keyed by relationship label.
"""

from typing import Any, Iterable, Iterator, Optional

import networkx as nx

from .types import Edge

# Sentinel for "any relationship" in edge filters (None means unlabeled)
ANY = object()

# MultiDiGraph edge key for unlabeled edges. networkx assigns a fresh
# integer key when key=None, which would allow duplicates.
_UNLABELED = "_"


def _edge_key(relationship: Optional[str]) -> str:
    return relationship if relationship is not None else _UNLABELED


def _as_edge(spec) -> Edge:
    if isinstance(spec, Edge):
        return spec
    if len(spec) == 2:
        return Edge(spec[0], spec[1], None)
    src, dest, relationship = spec
    return Edge(src, dest, relationship)


class GraphStore:
    """
    Mutable labeled multigraph, applied in place.

    Single-writer: callers serialize mutation (see EntryIndex).
    Read paths never raise for missing keys; they return None or empty.
    """

    def __init__(self):
        self._graph = nx.MultiDiGraph()
        # Pending edge -> the missing endpoint it waits on (insertion ordered)
        self._pending: dict[Edge, Any] = {}
        # Missing endpoint -> pending edges waiting on it
        self._waiting: dict[Any, dict[Edge, None]] = {}
        # Source -> pending edges from it
        self._pending_from: dict[Any, dict[Edge, None]] = {}

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_nodes(self, *keys) -> "GraphStore":
        """Add nodes if missing. Existing attributes are left untouched."""
        added = [key for key in keys if key not in self._graph]
        self._graph.add_nodes_from(added)
        self._materialize_pending(added)
        return self

    def add_nodes_with_attrs(self, *nodes: tuple[Any, dict]) -> "GraphStore":
        """Create nodes or replace their attributes wholesale."""
        for key, attrs in nodes:
            self._graph.add_node(key)
            data = self._graph.nodes[key]
            data.clear()
            data.update(attrs)
        self._materialize_pending(key for key, _ in nodes)
        return self

    def has_node(self, key) -> bool:
        return key in self._graph

    def attrs(self, key) -> Optional[dict]:
        """Copy of the node's attributes, or None if the node is absent."""
        if key not in self._graph:
            return None
        return dict(self._graph.nodes[key])

    def remove_nodes(self, *keys) -> "GraphStore":
        """Remove nodes with all incident edges.

        Pending edges whose source is removed are dropped too.
        """
        for key in keys:
            if key in self._graph:
                self._graph.remove_node(key)
            for edge in list(self._pending_from.get(key, ())):
                self._discard_pending(edge)
        return self

    def nodes(self) -> Iterator[Any]:
        return iter(self._graph.nodes)

    def __contains__(self, key) -> bool:
        return key in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def add_edges(self, *edges) -> "GraphStore":
        """
        Add edges given as (src, dest) or (src, dest, relationship).

        An edge with a missing endpoint is held as pending.
        """
        for spec in edges:
            edge = _as_edge(spec)
            if edge.src in self._graph and edge.dest in self._graph:
                self._graph.add_edge(
                    edge.src, edge.dest,
                    key=_edge_key(edge.relationship),
                    relationship=edge.relationship,
                )
            else:
                self._add_pending(edge)
        return self

    def find_edges(
        self,
        src=None,
        dest=None,
        relationship=ANY,
        *,
        include_pending: bool = False,
    ) -> list[Edge]:
        """
        Find edges filtered by source, destination and/or relationship.

        Args:
            src: Source key, or None for any
            dest: Destination key, or None for any
            relationship: Label to match; None matches unlabeled edges,
                ANY (default) matches every label
            include_pending: Also return edges still waiting for an endpoint
        """
        if src is not None:
            if src not in self._graph:
                candidates: Iterable = ()
            else:
                candidates = self._graph.out_edges(src, data="relationship")
        elif dest is not None:
            if dest not in self._graph:
                candidates = ()
            else:
                candidates = self._graph.in_edges(dest, data="relationship")
        else:
            candidates = self._graph.edges(data="relationship")

        result = []
        for u, v, rel in candidates:
            if dest is not None and v != dest:
                continue
            if relationship is not ANY and rel != relationship:
                continue
            result.append(Edge(u, v, rel))

        if include_pending:
            result.extend(self.pending_edges(src=src, dest=dest, relationship=relationship))
        return result

    def out_edges(self, key, relationship=ANY) -> list[Edge]:
        if key not in self._graph:
            return []
        return self.find_edges(src=key, relationship=relationship)

    def in_edges(self, key, relationship=ANY) -> list[Edge]:
        if key not in self._graph:
            return []
        return self.find_edges(dest=key, relationship=relationship)

    def successors(self, key, relationship=ANY) -> list[Any]:
        """Distinct destinations of outgoing edges, in insertion order."""
        return list(dict.fromkeys(e.dest for e in self.out_edges(key, relationship)))

    def predecessors(self, key, relationship=ANY) -> list[Any]:
        """Distinct sources of incoming edges, in insertion order."""
        return list(dict.fromkeys(e.src for e in self.in_edges(key, relationship)))

    def pending_edges(self, src=None, dest=None, relationship=ANY) -> list[Edge]:
        """Edges recorded while an endpoint was missing."""
        candidates = self._pending_from.get(src, {}) if src is not None else self._pending
        return [
            e for e in candidates
            if (src is None or e.src == src)
            and (dest is None or e.dest == dest)
            and (relationship is ANY or e.relationship == relationship)
        ]

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def _add_pending(self, edge: Edge) -> None:
        if edge in self._pending:
            return
        missing = edge.dest if edge.dest not in self._graph else edge.src
        self._pending[edge] = missing
        self._waiting.setdefault(missing, {})[edge] = None
        self._pending_from.setdefault(edge.src, {})[edge] = None

    def _discard_pending(self, edge: Edge) -> None:
        missing = self._pending.pop(edge)
        for index, key in ((self._waiting, missing), (self._pending_from, edge.src)):
            bucket = index[key]
            del bucket[edge]
            if not bucket:
                del index[key]

    def _materialize_pending(self, keys: Iterable[Any]) -> None:
        """Retry pending edges that were waiting on any of keys."""
        if not self._pending:
            return
        for key in keys:
            waiting = list(self._waiting.get(key, ()))
            for edge in waiting:
                self._discard_pending(edge)
            # Re-queued under the other endpoint if that is still missing
            self.add_edges(*waiting)

    # -------------------------------------------------------------------------
    # Copying
    # -------------------------------------------------------------------------

    def copy(self) -> "GraphStore":
        """Independent copy (node attribute dicts are copied, values shared)."""
        other = GraphStore()
        other._graph = self._graph.copy()
        other._pending = dict(self._pending)
        other._waiting = {k: dict(v) for k, v in self._waiting.items()}
        other._pending_from = {k: dict(v) for k, v in self._pending_from.items()}
        return other

    def __repr__(self) -> str:
        return (
            f"GraphStore(nodes={len(self)}, edges={self.number_of_edges()}, "
            f"pending={len(self._pending)})"
        )
