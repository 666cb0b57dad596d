"""Read-only graph algorithms over adjacency mappings."""

import heapq
from collections.abc import Hashable, Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

T = TypeVar("T", bound=Hashable)


class TieBreak(str, Enum):
    """Order in which simultaneously ready vertices leave a topological sort.

    Attributes:
        INSERTION: Earliest inserted vertex first
        SORTED: Smallest vertex first, by the natural ordering of the vertex type
    """

    INSERTION = "insertion"
    SORTED = "sorted"

    @classmethod
    def _missing_(cls, value: object) -> "TieBreak | None":
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


def topological_sort(
    successors: Mapping[T, Iterable[T]],
    tie_break: TieBreak = TieBreak.INSERTION,
) -> list[T]:
    """Sort a graph topologically using Kahn's algorithm.

    For every edge ``a -> b`` the result places ``a`` before ``b``. Vertices
    become ready once their in-degree drops to zero, and ready vertices are
    released according to ``tie_break``. Insertion rank is the order in which
    vertices first appear in ``successors`` (keys first, then edge targets).

    Args:
        successors: Mapping from vertex to its direct successors.
        tie_break: Rule for ordering simultaneously ready vertices.

    Returns:
        List of all vertices in topological order.

    Raises:
        ValueError: If the mapping contains a cycle.
        TypeError: If ``tie_break`` is SORTED and vertices are not mutually orderable.

    Example:
        >>> topological_sort({"b": ["c"], "a": ["b"], "c": []})
        ['a', 'b', 'c']

    """
    rank: dict[T, int] = {}
    for vertex in successors:
        rank.setdefault(vertex, len(rank))
    for targets in successors.values():
        for vertex in targets:
            rank.setdefault(vertex, len(rank))

    indegree = dict.fromkeys(rank, 0)
    for targets in successors.values():
        for vertex in targets:
            indegree[vertex] += 1

    def entry(vertex: T) -> tuple[Any, int, T]:
        key = vertex if tie_break is TieBreak.SORTED else rank[vertex]
        return (key, rank[vertex], vertex)

    heap = [entry(vertex) for vertex, degree in indegree.items() if degree == 0]
    heapq.heapify(heap)
    order: list[T] = []

    while heap:
        _, _, vertex = heapq.heappop(heap)
        order.append(vertex)
        for successor in successors.get(vertex, ()):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                heapq.heappush(heap, entry(successor))

    if len(order) != len(indegree):
        msg = "Cycle detected in graph"
        raise ValueError(msg)

    return order


def reachable(adjacency: Mapping[T, Iterable[T]], start: T) -> set[T]:
    """Collect every vertex reachable from ``start``, excluding ``start`` itself.

    Args:
        adjacency: Mapping from vertex to its neighbours in the direction of travel.
        start: Vertex to walk from.

    Returns:
        Set of reachable vertices.

    """
    visited: set[T] = set()
    stack = list(adjacency.get(start, ()))
    while stack:
        current = stack.pop()
        if current not in visited:
            visited.add(current)
            stack.extend(adjacency.get(current, ()))
    return visited


def induced_edges(
    successors: Mapping[T, Iterable[T]],
    keep: Iterable[T],
) -> dict[T, list[T]]:
    """Restrict a successor mapping to a vertex subset.

    Args:
        successors: Mapping from vertex to its direct successors.
        keep: Vertices to retain; those absent from ``successors`` are ignored.

    Returns:
        Successor mapping of the induced subgraph, in the iteration order of
        ``successors``.

    """
    members = set(keep)
    return {
        vertex: [target for target in targets if target in members]
        for vertex, targets in successors.items()
        if vertex in members
    }
