"""Cycle guard consulted before every edge insertion.

An edge ``source -> target`` keeps the graph acyclic if and only if
``target`` cannot already reach ``source``. The check is a breadth-first
search from ``target`` along successor edges, visiting each vertex at most
once, so it costs O(V + E) in the worst case.
"""

from collections import deque
from collections.abc import Hashable, Iterable, Mapping
from typing import TypeVar

import structlog

from acyclic.graph.errors import CycleError, SelfLoopError

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Hashable)


def find_path(successors: Mapping[T, Iterable[T]], start: T, goal: T) -> list[T] | None:
    """Find a directed path from ``start`` to ``goal``.

    Args:
        successors: Mapping from each vertex to its direct successors
        start: Vertex to search from
        goal: Vertex to search for

    Returns:
        The shortest path as a list beginning with ``start`` and ending with
        ``goal``, or None if ``goal`` is unreachable. A vertex absent from
        ``successors`` has no outgoing edges.
    """
    if start == goal:
        return [start]
    if start not in successors:
        return None

    parents: dict[T, T] = {}
    seen = {start}
    queue = deque([start])

    while queue:
        current = queue.popleft()
        for nxt in successors.get(current, ()):
            if nxt in seen:
                continue
            parents[nxt] = current
            if nxt == goal:
                path = [goal]
                while path[-1] != start:
                    path.append(parents[path[-1]])
                path.reverse()
                return path
            seen.add(nxt)
            queue.append(nxt)

    return None


def check_edge(successors: Mapping[T, Iterable[T]], source: T, target: T) -> None:
    """Verify that committing ``source -> target`` preserves acyclicity.

    Args:
        successors: Current successor mapping of the graph
        source: Source of the prospective edge
        target: Target of the prospective edge

    Raises:
        SelfLoopError: If ``source == target``
        CycleError: If ``target`` already reaches ``source``
    """
    if source == target:
        raise SelfLoopError(source)

    path = find_path(successors, target, source)
    if path is not None:
        logger.warning(
            "edge_rejected_cycle",
            source=source,
            target=target,
            path=[repr(vertex) for vertex in path],
        )
        raise CycleError(source, target, [source, *path])
