"""Mutable directed acyclic graph with cycle checking on every insertion.

This module provides the Dag class, the single owner of a graph's vertex
set and adjacency relation. All structural mutation goes through it, and
every edge insertion is vetted by the cycle guard before it is committed.
"""

from collections.abc import Hashable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

from acyclic.graph import guard
from acyclic.graph.errors import NotFoundError
from acyclic.graph.traversal import TieBreak, induced_edges, reachable, topological_sort

if TYPE_CHECKING:
    from acyclic.config import AcyclicConfig
    from acyclic.graph.validator import ValidationReport

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Hashable)


class Dag(Generic[T]):
    """Directed acyclic graph over hashable vertex values.

    Vertices are compared by value: the graph holds at most one vertex per
    distinct value. Adjacency is kept in both directions as insertion-ordered
    dicts, which makes predecessor lookups and vertex removal proportional to
    the vertex degree and keeps every ordering deterministic.

    Invariants held after every public call:
        - every edge endpoint is a vertex
        - there is no directed cycle and no self-loop
        - each edge is stored once

    Thread-safety:
        This class is NOT thread-safe. The cycle check and the commit that
        follows it are not atomic against concurrent mutation, and traversals
        assume the graph does not change while they run. Guard all calls with
        a single external lock if the graph is shared between threads.

    Example:
        >>> dag = Dag()
        >>> dag.add_edge("A", "B")
        True
        >>> dag.add_edge("B", "C")
        True
        >>> dag.topological_order()
        ['A', 'B', 'C']
        >>> dag.add_edge("C", "A")
        Traceback (most recent call last):
            ...
        acyclic.graph.errors.CycleError: Edge 'C' -> 'A' would create a cycle: 'C' -> 'A' -> 'B' -> 'C'
    """

    def __init__(
        self,
        edges: Iterable[tuple[T, T]] = (),
        vertices: Iterable[T] = (),
        *,
        tie_break: TieBreak = TieBreak.INSERTION,
    ):
        """Create a graph, optionally populated from vertices and edges.

        Vertices are added first, then edges one at a time in the given order.
        If any edge is rejected the exception propagates and the partially
        built graph is discarded with the failed constructor call.

        Args:
            edges: Ordered (source, target) pairs to insert
            vertices: Vertices to insert, including isolated ones
            tie_break: Default ordering rule for topological sorts

        Raises:
            SelfLoopError: If an edge connects a vertex to itself
            CycleError: If an edge would close a cycle
        """
        self._successors: dict[T, dict[T, None]] = {}
        self._predecessors: dict[T, dict[T, None]] = {}
        self._edge_count = 0
        self.tie_break = TieBreak(tie_break)

        for vertex in vertices:
            self.add_vertex(vertex)
        for source, target in edges:
            self.add_edge(source, target)

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[tuple[T, T]],
        *,
        tie_break: TieBreak = TieBreak.INSERTION,
    ) -> "Dag[T]":
        """Build a graph from an ordered collection of (source, target) edges.

        Example:
            >>> Dag.from_edges([("a", "b"), ("b", "c")]).successors("a")
            frozenset({'b'})
        """
        return cls(edges, tie_break=tie_break)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[T, Iterable[T]],
        *,
        tie_break: TieBreak = TieBreak.INSERTION,
    ) -> "Dag[T]":
        """Build a graph from a ``{source: targets}`` mapping.

        A source with no targets becomes an isolated vertex.
        """
        dag: Dag[T] = cls(tie_break=tie_break)
        for source, targets in mapping.items():
            dag.add_edges(source, targets)
        return dag

    @classmethod
    def from_config(
        cls,
        config: "AcyclicConfig",
        edges: Iterable[tuple[T, T]] = (),
        vertices: Iterable[T] = (),
    ) -> "Dag[T]":
        """Build a graph using the tie-break rule from a loaded configuration."""
        return cls(edges, vertices, tie_break=config.graph.tie_break)

    # Mutation

    def add_vertex(self, vertex: T) -> bool:
        """Insert a vertex if it is absent.

        Returns:
            True if the vertex was newly added
        """
        if vertex in self._successors:
            return False

        self._successors[vertex] = {}
        self._predecessors[vertex] = {}
        logger.debug("vertex_added", vertex=vertex)
        return True

    def add_edge(self, source: T, target: T) -> bool:
        """Insert the edge ``source -> target``.

        Missing endpoints are added along with the edge. Nothing is modified
        if the edge is rejected.

        Returns:
            True if the edge was added, False if it already existed

        Raises:
            SelfLoopError: If ``source == target``
            CycleError: If ``target`` can already reach ``source``
        """
        if source != target and target in self._successors.get(source, ()):
            return False

        guard.check_edge(self._successors, source, target)

        self.add_vertex(source)
        self.add_vertex(target)
        self._successors[source][target] = None
        self._predecessors[target][source] = None
        self._edge_count += 1

        logger.debug("edge_added", source=source, target=target)
        return True

    def add_vertices(self, vertices: Iterable[T]) -> bool:
        """Insert several vertices.

        Returns:
            True if at least one vertex was newly added
        """
        changed = False
        for vertex in vertices:
            changed |= self.add_vertex(vertex)
        return changed

    def add_edges(self, source: T, targets: Iterable[T]) -> bool:
        """Insert an edge from ``source`` to each of ``targets``, in order.

        With no targets, only ``source`` is added. Edges are committed one at
        a time, so when one is rejected the edges before it remain.

        Returns:
            True if the graph changed

        Raises:
            SelfLoopError: If a target equals ``source``
            CycleError: If an edge would close a cycle
        """
        targets = list(targets)
        if not targets:
            return self.add_vertex(source)

        changed = False
        for target in targets:
            changed |= self.add_edge(source, target)
        return changed

    def remove_vertex(self, vertex: T) -> bool:
        """Remove a vertex and every edge incident to it.

        Returns:
            True if the vertex was present
        """
        if vertex not in self._successors:
            return False

        for target in self._successors.pop(vertex):
            del self._predecessors[target][vertex]
            self._edge_count -= 1
        for source in self._predecessors.pop(vertex):
            del self._successors[source][vertex]
            self._edge_count -= 1

        logger.debug("vertex_removed", vertex=vertex)
        return True

    def remove_edge(self, source: T, target: T) -> bool:
        """Remove the edge ``source -> target``, keeping both endpoints.

        Returns:
            True if the edge was present
        """
        if target not in self._successors.get(source, ()):
            return False

        del self._successors[source][target]
        del self._predecessors[target][source]
        self._edge_count -= 1

        logger.debug("edge_removed", source=source, target=target)
        return True

    def remove_vertices(self, vertices: Iterable[T]) -> bool:
        """Remove several vertices and their incident edges.

        Returns:
            True if at least one vertex was present
        """
        changed = False
        for vertex in list(vertices):
            changed |= self.remove_vertex(vertex)
        return changed

    def retain_vertices(self, vertices: Iterable[T]) -> bool:
        """Remove every vertex not in ``vertices``.

        Returns:
            True if any vertex was removed
        """
        keep = set(vertices)
        return self.remove_vertices([vertex for vertex in self._successors if vertex not in keep])

    def clear(self) -> None:
        """Remove all vertices and edges."""
        self._successors.clear()
        self._predecessors.clear()
        self._edge_count = 0
        logger.debug("graph_cleared")

    # Membership and views

    def contains_vertex(self, vertex: T) -> bool:
        return vertex in self._successors

    def contains_edge(self, source: T, target: T) -> bool:
        return target in self._successors.get(source, ())

    def vertices(self) -> frozenset[T]:
        """Snapshot of the vertex set."""
        return frozenset(self._successors)

    def edges(self) -> frozenset[tuple[T, T]]:
        """Snapshot of the edge set as (source, target) pairs."""
        return frozenset(
            (source, target) for source, targets in self._successors.items() for target in targets
        )

    def edge_count(self) -> int:
        return self._edge_count

    def predecessors(self, vertex: T) -> frozenset[T]:
        """Direct in-neighbours of a vertex.

        Raises:
            NotFoundError: If the vertex is not in the graph
        """
        return frozenset(self._require(vertex, self._predecessors))

    def successors(self, vertex: T) -> frozenset[T]:
        """Direct out-neighbours of a vertex.

        Raises:
            NotFoundError: If the vertex is not in the graph
        """
        return frozenset(self._require(vertex, self._successors))

    def roots(self) -> frozenset[T]:
        """Vertices with no predecessors."""
        return frozenset(v for v, sources in self._predecessors.items() if not sources)

    def leaves(self) -> frozenset[T]:
        """Vertices with no successors."""
        return frozenset(v for v, targets in self._successors.items() if not targets)

    # Queries

    def topological_order(self, tie_break: TieBreak | None = None) -> list[T]:
        """Order all vertices so that every edge points forward.

        Args:
            tie_break: Rule for simultaneously ready vertices; defaults to the
                graph's own ``tie_break``

        Returns:
            List of every vertex, sources before targets
        """
        return topological_sort(self._successors, TieBreak(tie_break or self.tie_break))

    def descendants_of(self, vertex: T) -> frozenset[T]:
        """All vertices reachable from ``vertex``, excluding itself.

        Raises:
            NotFoundError: If the vertex is not in the graph
        """
        self._require(vertex, self._successors)
        return frozenset(reachable(self._successors, vertex))

    def ancestors_of(self, vertex: T) -> frozenset[T]:
        """All vertices that can reach ``vertex``, excluding itself.

        Raises:
            NotFoundError: If the vertex is not in the graph
        """
        self._require(vertex, self._predecessors)
        return frozenset(reachable(self._predecessors, vertex))

    def subgraph(self, vertices: Iterable[T]) -> "Dag[T]":
        """Induced subgraph on ``vertices``.

        Vertices not in this graph are ignored. The result keeps this graph's
        insertion order and tie-break, and shares no state with it.
        """
        sub = type(self)(tie_break=self.tie_break)
        sub._load(induced_edges(self._successors, vertices))
        return sub

    def copy(self) -> "Dag[T]":
        """Independent copy with the same structure and insertion order.

        Vertex values themselves are shared, not copied.
        """
        dup = type(self)(tie_break=self.tie_break)
        dup._load(self._successors)
        logger.debug("graph_copied", vertex_count=len(self))
        return dup

    def to_mapping(self) -> dict[T, set[T]]:
        """Fresh ``{vertex: successors}`` mapping including isolated vertices."""
        return {vertex: set(targets) for vertex, targets in self._successors.items()}

    def audit(self) -> "ValidationReport":
        """Re-check the graph invariants and report any violation."""
        from acyclic.graph.validator import GraphValidator

        return GraphValidator().validate(self)

    def stats(self) -> dict[str, int]:
        """Summary counts for the graph.

        Returns:
            Dictionary with vertex_count, edge_count, root_count and leaf_count
        """
        return {
            "vertex_count": len(self._successors),
            "edge_count": self._edge_count,
            "root_count": len(self.roots()),
            "leaf_count": len(self.leaves()),
        }

    # Internal helpers

    def _require(self, vertex: T, index: dict[T, dict[T, None]]) -> dict[T, None]:
        try:
            return index[vertex]
        except KeyError:
            raise NotFoundError(vertex) from None

    def _load(self, successors: Mapping[T, Iterable[T]]) -> None:
        """Copy an adjacency mapping known to be acyclic, bypassing the guard.

        Every key of ``successors`` must also cover all of its targets.
        """
        for vertex in successors:
            self._successors[vertex] = {}
            self._predecessors[vertex] = {}
        for source, targets in successors.items():
            for target in targets:
                self._successors[source][target] = None
                self._predecessors[target][source] = None
                self._edge_count += 1

    # Python protocols

    def __len__(self) -> int:
        return len(self._successors)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._successors

    def __iter__(self) -> Iterator[T]:
        """Iterate over the vertices in topological order."""
        return iter(self.topological_order())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dag):
            return NotImplemented
        return self.vertices() == other.vertices() and self.edges() == other.edges()

    def __hash__(self) -> int:
        return hash((self.vertices(), self.edges()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(vertices={len(self)}, edges={self._edge_count})"
