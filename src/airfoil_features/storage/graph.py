"""Derivation graph between features.

Edges run from a source feature to the features derived from it. The graph is
kept explicitly in both directions so that dependency checks before deletion
do not need to scan every feature.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class DerivationGraph:
    """Adjacency of feature ids: id -> sources and id -> dependents."""

    def __init__(self) -> None:
        self._sources: dict[str, set[str]] = {}
        self._dependents: dict[str, set[str]] = {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def add_node(self, node_id: str, sources: Iterable[str] = ()) -> None:
        """Register a node and link it to its sources.

        Raises:
            ValueError: If the node already exists or a source is unknown.
        """
        if node_id in self._sources:
            msg = f"Node already in graph: {node_id}"
            raise ValueError(msg)
        source_set = set(sources)
        missing = source_set - self._sources.keys()
        if missing:
            msg = f"Unknown source node(s) for {node_id}: {sorted(missing)}"
            raise ValueError(msg)

        self._sources[node_id] = source_set
        self._dependents[node_id] = set()
        for source in source_set:
            self._dependents[source].add(node_id)

    def remove_node(self, node_id: str) -> None:
        """Remove a node that nothing depends on.

        Raises:
            KeyError: If the node is unknown.
            ValueError: If other nodes still depend on it.
        """
        if self._dependents[node_id]:
            msg = f"Node {node_id} still has dependents: {sorted(self._dependents[node_id])}"
            raise ValueError(msg)
        for source in self._sources.pop(node_id):
            self._dependents[source].discard(node_id)
        del self._dependents[node_id]

    def sources_of(self, node_id: str) -> frozenset[str]:
        return frozenset(self._sources.get(node_id, ()))

    def dependents_of(self, node_id: str) -> frozenset[str]:
        return frozenset(self._dependents.get(node_id, ()))

    def has_dependents(self, node_id: str) -> bool:
        return bool(self._dependents.get(node_id))

    def external_dependents(self, node_ids: Iterable[str]) -> frozenset[str]:
        """Dependents of any of node_ids that are not themselves in node_ids."""
        group = set(node_ids)
        outside: set[str] = set()
        for node_id in group:
            outside |= self._dependents.get(node_id, set()) - group
        return frozenset(outside)

    def clear(self) -> None:
        self._sources.clear()
        self._dependents.clear()
