"""Step-by-step dependency-order walking over a graph snapshot.

This module provides the Walker class which wraps graphlib.TopologicalSorter
to hand out vertices as soon as everything they depend on has been marked
done, so callers can process independent vertices in parallel.
"""

from collections.abc import Hashable
from graphlib import TopologicalSorter
from typing import Generic, TypeVar

from acyclic.graph.store import Dag
from acyclic.log_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=Hashable)


class Walker(Generic[T]):
    """Hands out the vertices of a DAG in dependency order.

    By default a vertex becomes ready once all of its predecessors are done,
    so sources come out first. With ``reverse=True`` a vertex becomes ready
    once all of its successors are done, so leaves come out first.

    The walker works on a snapshot taken at construction; later changes to
    the graph do not affect it.

    Thread-safety:
        This class is NOT thread-safe. Protect get_ready() and mark_done()
        with external synchronization when called from several threads.

    Example:
        >>> dag = Dag([("a", "b"), ("a", "c")])
        >>> walker = Walker(dag)
        >>> walker.get_ready()
        ('a',)
        >>> walker.mark_done("a")
        >>> sorted(walker.get_ready())
        ['b', 'c']
    """

    def __init__(self, dag: Dag[T], *, reverse: bool = False):
        """Snapshot a graph and prepare it for walking.

        Args:
            dag: Graph to walk
            reverse: Release leaves first instead of roots
        """
        self.reverse = reverse
        order = dag.topological_order()
        if reverse:
            order.reverse()
            depends_on = dag.successors
        else:
            depends_on = dag.predecessors

        self.graph: dict[T, frozenset[T]] = {vertex: depends_on(vertex) for vertex in order}
        self.sorter: TopologicalSorter = TopologicalSorter(self.graph)
        self.sorter.prepare()

        logger.debug(
            "walker_prepared",
            vertex_count=len(self.graph),
            reverse=reverse,
        )

    def get_ready(self) -> tuple[T, ...]:
        """Get vertices whose dependencies are all done.

        Each vertex is returned exactly once over the life of the walker.

        Returns:
            Tuple of newly ready vertices, empty if none are ready yet
        """
        if not self.sorter.is_active():
            return ()

        ready = self.sorter.get_ready()
        logger.debug("vertices_ready", count=len(ready))
        return ready

    def mark_done(self, *vertices: T) -> None:
        """Mark one or more handed-out vertices as done.

        Args:
            *vertices: Vertices previously returned by get_ready()

        Raises:
            ValueError: If a vertex was never handed out or is already done
        """
        if not vertices:
            return

        self.sorter.done(*vertices)
        logger.debug("vertices_done", count=len(vertices))

    def is_active(self) -> bool:
        """Check whether any vertex is still waiting to be handed out or marked done."""
        return self.sorter.is_active()

    def static_order(self) -> list[T]:
        """Return the complete walk order without affecting this walker's state."""
        return list(TopologicalSorter(self.graph).static_order())

    def __len__(self) -> int:
        return len(self.graph)
