"""Dependency-order walking and concurrent traversal of graphs."""

from acyclic.walk.executor import TraversalResult, TraversalRunner, run_traversal, traverse
from acyclic.walk.walker import Walker

__all__ = ["TraversalResult", "TraversalRunner", "Walker", "run_traversal", "traverse"]
