"""Graph validation with detailed cycle detection and reporting.

This module audits graphs against the acyclic-graph invariants: closure of
the vertex set over edges, absence of cycles and self-loops, and agreement
between the predecessor and successor indexes. It also checks raw
``{source: targets}`` mappings before they are loaded into a Dag.
"""

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from acyclic.graph.store import Dag

logger = structlog.get_logger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


@dataclass
class ValidationReport:
    """Report containing validation results for a graph.

    Attributes:
        is_valid: Whether the graph passed all validation checks
        errors: List of error messages (invariant violations)
        warnings: List of warning messages (suspicious but legal input)
        cycles: Detected cycles, each a vertex path that starts and ends at the same vertex
        self_loops: Vertices with an edge to themselves
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[Any]] = field(default_factory=list)
    self_loops: set[Any] = field(default_factory=set)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = []
        lines.append(f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append(f"Cycles: {len(self.cycles)}")
        lines.append(f"Self-loops: {len(self.self_loops)}")

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {_format_path(cycle)}")

        return "\n".join(lines)


class GraphValidator:
    """Validator for acyclic graphs and adjacency mappings.

    A Dag maintains its invariants on every mutation, so validating one
    should always pass; a failure indicates a defect in the graph code.
    """

    def validate(self, dag: "Dag[Any]") -> ValidationReport:
        """Audit a Dag and generate a detailed report.

        Args:
            dag: The graph to audit

        Returns:
            ValidationReport containing all validation results
        """
        successors = dag._successors
        predecessors = dag._predecessors
        logger.info("starting_graph_validation", vertex_count=len(successors))

        report = ValidationReport()

        for source, targets in successors.items():
            for target in targets:
                if target not in successors:
                    report.add_error(f"Edge {source!r} -> {target!r} points outside the graph")
                elif source not in predecessors.get(target, {}):
                    report.add_error(
                        f"Edge {source!r} -> {target!r} missing from predecessor index",
                    )
        for target, sources in predecessors.items():
            for source in sources:
                if target not in successors.get(source, {}):
                    report.add_error(
                        f"Predecessor entry {source!r} -> {target!r} has no matching edge",
                    )
        if set(predecessors) != set(successors):
            report.add_error("Predecessor and successor indexes cover different vertices")

        self._check_structure(successors, report)

        logger.info(
            "graph_validation_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
        )
        return report

    def validate_mapping(self, mapping: Mapping[Hashable, Iterable[Hashable]]) -> ValidationReport:
        """Check a raw ``{source: targets}`` mapping before loading it.

        Targets that are not keys are legal (they become vertices) but are
        reported as warnings.

        Args:
            mapping: Adjacency mapping to check

        Returns:
            ValidationReport containing all validation results
        """
        successors = {source: list(targets) for source, targets in mapping.items()}
        report = ValidationReport()

        undeclared = {t for targets in successors.values() for t in targets} - set(successors)
        if undeclared:
            names = ", ".join(sorted(repr(vertex) for vertex in undeclared))
            report.add_warning(f"Targets not declared as sources: {names}")

        self._check_structure(successors, report)
        return report

    def _check_structure(
        self,
        successors: Mapping[Hashable, Iterable[Hashable]],
        report: ValidationReport,
    ) -> None:
        for source, targets in successors.items():
            if source in targets:
                report.self_loops.add(source)
                report.add_error(f"Self-loop on {source!r}")

        for cycle in self._detect_cycles(successors):
            report.cycles.append(cycle)
            report.add_error(f"Cycle detected: {_format_path(cycle)}")

    def _detect_cycles(
        self,
        successors: Mapping[Hashable, Iterable[Hashable]],
    ) -> list[list[Hashable]]:
        """Detect cycles with an iterative depth-first search.

        Self-loops are left to the dedicated check. At most one cycle is
        reported per depth-first tree.

        Args:
            successors: Mapping from vertex to its direct successors

        Returns:
            List of cycles, each a path that starts and ends at the same vertex
        """
        color: dict[Hashable, int] = {}
        cycles: list[list[Hashable]] = []

        for start in successors:
            if color.get(start, _WHITE) != _WHITE:
                continue

            path = [start]
            color[start] = _GREY
            stack = [iter(successors.get(start, ()))]
            found = False

            while stack:
                advanced = False
                for nxt in stack[-1]:
                    if nxt == path[-1]:
                        continue
                    state = color.get(nxt, _WHITE)
                    if state == _GREY and not found:
                        cycles.append([*path[path.index(nxt):], nxt])
                        found = True
                    elif state == _WHITE:
                        color[nxt] = _GREY
                        path.append(nxt)
                        stack.append(iter(successors.get(nxt, ())))
                        advanced = True
                        break
                if not advanced:
                    color[path.pop()] = _BLACK
                    stack.pop()

        if cycles:
            logger.debug("cycles_found", count=len(cycles))

        return cycles


def _format_path(path: Iterable[Any]) -> str:
    return " -> ".join(repr(vertex) for vertex in path)
