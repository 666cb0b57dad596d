"""Demonstration of building and walking a dependency graph.

This example models a small build pipeline: each step is a vertex and an
edge ``a -> b`` means ``b`` needs ``a`` first. It shows cycle rejection,
reachability queries, subgraph extraction and a concurrent traversal with
structured logging.
"""

import asyncio

from acyclic.config import AcyclicConfig, TraversalConfig
from acyclic.graph import CycleError, Dag
from acyclic.log_config import bind_context, clear_context, get_logger
from acyclic.walk import traverse

PIPELINE = [
    ("fetch", "compile"),
    ("fetch", "lint"),
    ("compile", "unit-tests"),
    ("compile", "package"),
    ("unit-tests", "publish"),
    ("package", "publish"),
    ("lint", "publish"),
]


async def run_step(step: str) -> None:
    """Pretend to run one pipeline step.

    Args:
        step: Name of the step to run
    """
    logger = get_logger(__name__)
    logger.info("step_started", step=step)
    await asyncio.sleep(0.1)
    logger.info("step_finished", step=step)


def demonstrate_cycle_rejection(dag: Dag[str]) -> None:
    """Show that an edge closing a cycle is refused and nothing changes."""
    logger = get_logger(__name__)
    edges_before = dag.edge_count()

    try:
        dag.add_edge("publish", "fetch")
    except CycleError as e:
        logger.info("cycle_rejected", path=e.path, edges_unchanged=dag.edge_count() == edges_before)


def main() -> None:
    """Main demonstration function."""
    config = AcyclicConfig.from_env()
    config.configure_logging()
    logger = get_logger(__name__)

    dag: Dag[str] = Dag.from_config(config, edges=PIPELINE)
    logger.info("pipeline_loaded", **dag.stats())
    logger.info("pipeline_order", order=dag.topological_order())

    demonstrate_cycle_rejection(dag)

    logger.info("needed_for_publish", steps=sorted(dag.ancestors_of("publish")))
    logger.info("affected_by_compile", steps=sorted(dag.descendants_of("compile")))

    quick = dag.subgraph({"fetch", "lint", "publish"})
    logger.info("quick_pipeline", edges=sorted(quick.edges()))

    bind_context(pipeline="demo")
    try:
        result = asyncio.run(
            traverse(dag, run_step, TraversalConfig(max_concurrency=2, timeout_seconds=10)),
        )
        logger.info("pipeline_finished", ok=result.ok, visited=result.visited)
    finally:
        clear_context()


if __name__ == "__main__":
    main()
