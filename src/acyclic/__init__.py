"""In-memory directed acyclic graphs with cycle checking on every edge."""

from acyclic.graph import (
    CycleError,
    Dag,
    DagError,
    GraphValidator,
    NotFoundError,
    SelfLoopError,
    TieBreak,
    TraversalTimeoutError,
    ValidationReport,
    topological_sort,
)

__all__ = [
    "CycleError",
    "Dag",
    "DagError",
    "GraphValidator",
    "NotFoundError",
    "SelfLoopError",
    "TieBreak",
    "TraversalTimeoutError",
    "ValidationReport",
    "topological_sort",
]
