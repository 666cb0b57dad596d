"""Concurrent dependency-order traversal with semaphore-based concurrency control.

This module runs a visit function over every vertex of a graph, starting a
vertex only after everything it depends on has been visited. At most
``max_concurrency`` visits run at once; synchronous visit functions run in
worker threads, coroutine functions run on the event loop.
"""

import asyncio
import inspect
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from acyclic.config import TraversalConfig
from acyclic.graph.errors import TraversalTimeoutError
from acyclic.graph.store import Dag
from acyclic.log_config import get_logger, traversal_context
from acyclic.walk.walker import Walker

logger = get_logger(__name__)

T = TypeVar("T", bound=Hashable)

Visit = Callable[[Any], Any]


@dataclass
class TraversalResult(Generic[T]):
    """Outcome of a traversal.

    Attributes:
        visited: Successfully visited vertices, in completion order
        failed: Vertices whose visit raised, with the exception raised
        skipped: Vertices never started because an earlier visit failed
    """

    visited: list[T] = field(default_factory=list)
    failed: dict[T, BaseException] = field(default_factory=dict)
    skipped: set[T] = field(default_factory=set)

    @property
    def ok(self) -> bool:
        """True if every vertex was visited successfully."""
        return not self.failed and not self.skipped


class TraversalRunner(Generic[T]):
    """Drives a Walker, dispatching ready vertices to concurrent visits.

    The first failing visit stops new vertices from being scheduled; visits
    already running are allowed to finish. Failures are reported in the
    result rather than raised.

    Attributes:
        dag: Graph being traversed (snapshotted by the walker)
        visit: Function applied to each vertex
        config: Concurrency, timeout and direction settings
        semaphore: Asyncio semaphore limiting concurrent visits
        result: Accumulated traversal result
    """

    def __init__(self, dag: Dag[T], visit: Visit, config: TraversalConfig | None = None):
        self.dag = dag
        self.visit = visit
        self.config = config or TraversalConfig()
        self.semaphore = asyncio.Semaphore(self.config.max_concurrency)
        self.result: TraversalResult[T] = TraversalResult()
        self._pending: dict[asyncio.Task, T] = {}

    async def run(self) -> TraversalResult[T]:
        """Traverse the whole graph.

        Returns:
            TraversalResult describing visited, failed and skipped vertices

        Raises:
            TraversalTimeoutError: If the configured timeout elapses first
        """
        walker = Walker(self.dag, reverse=self.config.reverse)
        with traversal_context():
            return await self._run(walker)

    async def _run(self, walker: Walker[T]) -> TraversalResult[T]:
        logger.info(
            "traversal_started",
            vertex_count=len(walker),
            max_concurrency=self.config.max_concurrency,
            reverse=self.config.reverse,
        )

        try:
            if self.config.timeout_seconds is None:
                await self._drive(walker)
            else:
                await asyncio.wait_for(self._drive(walker), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError:
            unfinished = len(walker) - len(self.result.visited) - len(self.result.failed)
            logger.error(
                "traversal_timed_out",
                timeout_seconds=self.config.timeout_seconds,
                unfinished=unfinished,
            )
            raise TraversalTimeoutError(self.config.timeout_seconds, unfinished) from None

        done = set(self.result.visited) | set(self.result.failed)
        self.result.skipped = {vertex for vertex in walker.graph if vertex not in done}

        logger.info(
            "traversal_finished",
            visited=len(self.result.visited),
            failed=len(self.result.failed),
            skipped=len(self.result.skipped),
        )
        return self.result

    async def _drive(self, walker: Walker[T]) -> None:
        try:
            while walker.is_active():
                if not self.result.failed:
                    for vertex in walker.get_ready():
                        task = asyncio.create_task(self._visit_one(vertex))
                        self._pending[task] = vertex

                if not self._pending:
                    break

                finished, _ = await asyncio.wait(
                    self._pending,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in finished:
                    vertex = self._pending.pop(task)
                    error = asyncio.CancelledError() if task.cancelled() else task.exception()
                    if error is None:
                        self.result.visited.append(vertex)
                        walker.mark_done(vertex)
                    else:
                        self.result.failed[vertex] = error
                        logger.warning(
                            "vertex_visit_failed",
                            vertex=vertex,
                            error=repr(error),
                        )
        finally:
            for task in self._pending:
                task.cancel()
            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)
            self._pending.clear()

    async def _visit_one(self, vertex: T) -> None:
        async with self.semaphore:
            if inspect.iscoroutinefunction(self.visit):
                await self.visit(vertex)
            else:
                outcome = await asyncio.to_thread(self.visit, vertex)
                if inspect.isawaitable(outcome):
                    await outcome


async def traverse(
    dag: Dag[T],
    visit: Visit,
    config: TraversalConfig | None = None,
) -> TraversalResult[T]:
    """Visit every vertex after all of the vertices it depends on.

    Args:
        dag: Graph to traverse; later mutation does not affect a running traversal
        visit: Coroutine function or plain callable applied to each vertex
        config: Concurrency, timeout and direction settings (defaults apply if None)

    Returns:
        TraversalResult describing visited, failed and skipped vertices

    Raises:
        TraversalTimeoutError: If ``config.timeout_seconds`` elapses first

    Example:
        >>> dag = Dag([("fetch", "build"), ("build", "test")])
        >>> seen = []
        >>> result = asyncio.run(traverse(dag, seen.append))
        >>> result.visited
        ['fetch', 'build', 'test']
    """
    return await TraversalRunner(dag, visit, config).run()


def run_traversal(
    dag: Dag[T],
    visit: Visit,
    config: TraversalConfig | None = None,
) -> TraversalResult[T]:
    """Synchronous wrapper around traverse() for code without an event loop."""
    return asyncio.run(traverse(dag, visit, config))
