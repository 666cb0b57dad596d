"""Unit tests for concurrent traversal.

Tests cover:
- Dependency ordering of visits
- Coroutine and plain visit functions
- Concurrency limiting
- Failure handling and skipped vertices
- Timeouts
"""

import asyncio
import threading

import pytest

from acyclic.config import TraversalConfig
from acyclic.graph import Dag, TraversalTimeoutError
from acyclic.walk import TraversalResult, run_traversal, traverse


@pytest.fixture
def diamond() -> Dag[str]:
    """Graph with edges A->B, A->C, B->D, C->D."""
    return Dag([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")])


def assert_dependency_order(dag: Dag, visited: list, reverse: bool = False) -> None:
    position = {vertex: i for i, vertex in enumerate(visited)}
    for source, target in dag.edges():
        if reverse:
            assert position[target] < position[source]
        else:
            assert position[source] < position[target]


class TestTraversalResult:
    """Test TraversalResult functionality."""

    def test_empty_result_is_ok(self):
        """Test that a fresh result reports success."""
        assert TraversalResult().ok

    def test_failed_result(self):
        """Test that failures clear the ok flag."""
        result = TraversalResult(failed={"A": RuntimeError("boom")})

        assert not result.ok


class TestTraverse:
    """Test asynchronous traversal."""

    @pytest.mark.asyncio
    async def test_async_visit_order(self, diamond):
        """Test that coroutine visits respect edge direction."""
        seen = []

        async def visit(vertex):
            await asyncio.sleep(0)
            seen.append(vertex)

        result = await traverse(diamond, visit)

        assert result.ok
        assert sorted(result.visited) == ["A", "B", "C", "D"]
        assert_dependency_order(diamond, seen)
        assert_dependency_order(diamond, result.visited)

    @pytest.mark.asyncio
    async def test_sync_visit_runs_in_threads(self, diamond):
        """Test that plain callables are run off the event loop thread."""
        loop_thread = threading.get_ident()
        threads = set()

        def visit(vertex):
            threads.add(threading.get_ident())

        result = await traverse(diamond, visit)

        assert result.ok
        assert loop_thread not in threads

    @pytest.mark.asyncio
    async def test_reverse(self, diamond):
        """Test that reverse traversal visits leaves first."""
        result = await traverse(diamond, lambda vertex: None, TraversalConfig(reverse=True))

        assert result.visited[0] == "D"
        assert result.visited[-1] == "A"
        assert_dependency_order(diamond, result.visited, reverse=True)

    @pytest.mark.asyncio
    async def test_empty_graph(self):
        """Test traversing an empty graph."""
        result = await traverse(Dag(), lambda vertex: None)

        assert result.ok
        assert result.visited == []

    @pytest.mark.asyncio
    async def test_concurrency_limit(self):
        """Test that no more than max_concurrency visits overlap."""
        dag = Dag(vertices=range(10))
        running = 0
        peak = 0

        async def visit(vertex):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        result = await traverse(dag, visit, TraversalConfig(max_concurrency=3))

        assert result.ok
        assert peak == 3

    @pytest.mark.asyncio
    async def test_independent_vertices_overlap(self):
        """Test that independent vertices are visited concurrently."""
        dag = Dag(vertices=["a", "b"])
        both_started = asyncio.Event()
        started = set()

        async def visit(vertex):
            started.add(vertex)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)

        result = await traverse(dag, visit, TraversalConfig(max_concurrency=2))

        assert result.ok

    @pytest.mark.asyncio
    async def test_failure_skips_dependents(self, diamond):
        """Test that a failing visit stops its dependents from running."""

        async def visit(vertex):
            if vertex == "B":
                raise RuntimeError("boom")

        result = await traverse(diamond, visit, TraversalConfig(max_concurrency=1))

        assert not result.ok
        assert set(result.failed) == {"B"}
        assert isinstance(result.failed["B"], RuntimeError)
        assert "D" in result.skipped
        assert "A" in result.visited

    @pytest.mark.asyncio
    async def test_failure_lets_running_visits_finish(self):
        """Test that visits already in flight complete after a failure."""
        dag = Dag(vertices=["slow", "bad"])
        finished = []

        async def visit(vertex):
            if vertex == "bad":
                raise ValueError("bad vertex")
            await asyncio.sleep(0.05)
            finished.append(vertex)

        result = await traverse(dag, visit, TraversalConfig(max_concurrency=2))

        assert finished == ["slow"]
        assert result.visited == ["slow"]
        assert set(result.failed) == {"bad"}
        assert result.skipped == set()

    @pytest.mark.asyncio
    async def test_cancelled_visit_is_a_failure(self):
        """Test that a visit ending in CancelledError is recorded, not raised."""

        async def visit(vertex):
            raise asyncio.CancelledError()

        result = await traverse(Dag([("a", "b")]), visit)

        assert not result.ok
        assert set(result.failed) == {"a"}
        assert isinstance(result.failed["a"], asyncio.CancelledError)
        assert result.skipped == {"b"}
        assert result.visited == []

    @pytest.mark.asyncio
    async def test_cancelled_inner_task_is_a_failure(self, diamond):
        """Test that awaiting a cancelled task fails only that vertex."""

        async def visit(vertex):
            if vertex == "B":
                inner = asyncio.create_task(asyncio.sleep(10))
                inner.cancel()
                await inner

        result = await traverse(diamond, visit, TraversalConfig(max_concurrency=1))

        assert set(result.failed) == {"B"}
        assert isinstance(result.failed["B"], asyncio.CancelledError)
        assert "D" in result.skipped

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test that an overrunning traversal raises and cancels visits."""
        dag = Dag([("a", "b")])
        cancelled = asyncio.Event()

        async def visit(vertex):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(TraversalTimeoutError) as exc_info:
            await traverse(dag, visit, TraversalConfig(timeout_seconds=0.05))

        assert exc_info.value.pending == 2
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_traversal_uses_snapshot(self, diamond):
        """Test that mutating the graph during traversal has no effect."""

        async def visit(vertex):
            if vertex == "A":
                diamond.add_edge("D", "E")

        result = await traverse(diamond, visit)

        assert "E" not in result.visited
        assert len(result.visited) == 4


class TestRunTraversal:
    """Test the synchronous wrapper."""

    def test_run_traversal(self, diamond):
        """Test running a traversal without an event loop."""
        seen = []
        lock = threading.Lock()

        def visit(vertex):
            with lock:
                seen.append(vertex)

        result = run_traversal(diamond, visit, TraversalConfig(max_concurrency=2))

        assert result.ok
        assert_dependency_order(diamond, seen)
