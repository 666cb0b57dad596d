"""Graph module providing the cycle-checked directed acyclic graph.

This module contains:
- Dag[T]: a mutable, generic DAG that rejects cycle-forming edges
- topological_sort: Kahn's algorithm over a successor mapping
- GraphValidator: invariant audit with cycle path reporting
"""

from acyclic.graph.errors import (
    CycleError,
    DagError,
    NotFoundError,
    SelfLoopError,
    TraversalTimeoutError,
)
from acyclic.graph.store import Dag
from acyclic.graph.traversal import TieBreak, topological_sort
from acyclic.graph.validator import GraphValidator, ValidationReport

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
