"""Exceptions raised by graph operations.

Every mutating operation validates before it commits, so none of these
exceptions leave a graph partially modified.
"""

from collections.abc import Hashable, Sequence


class DagError(Exception):
    """Base class for all errors raised by acyclic graphs."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the error
        """
        super().__init__(message)
        self.message = message


class SelfLoopError(DagError):
    """Raised when an edge would connect a vertex to itself."""

    def __init__(self, vertex: Hashable):
        super().__init__(f"Self-loop rejected: {vertex!r} -> {vertex!r}")
        self.vertex = vertex


class CycleError(DagError):
    """Raised when adding an edge would close a directed cycle.

    Attributes:
        source: Source of the rejected edge
        target: Target of the rejected edge
        path: The cycle the edge would have formed, starting and ending at source
    """

    def __init__(self, source: Hashable, target: Hashable, path: Sequence[Hashable]):
        cycle = " -> ".join(repr(vertex) for vertex in path)
        super().__init__(f"Edge {source!r} -> {target!r} would create a cycle: {cycle}")
        self.source = source
        self.target = target
        self.path = list(path)


class NotFoundError(DagError, LookupError):
    """Raised when an operation dereferences a vertex that is not in the graph."""

    def __init__(self, vertex: Hashable):
        super().__init__(f"Vertex not found: {vertex!r}")
        self.vertex = vertex


class TraversalTimeoutError(DagError):
    """Raised when a concurrent traversal exceeds its time budget."""

    def __init__(self, timeout_seconds: float, pending: int):
        super().__init__(
            f"Traversal did not finish within {timeout_seconds}s ({pending} vertices unfinished)",
        )
        self.timeout_seconds = timeout_seconds
        self.pending = pending
