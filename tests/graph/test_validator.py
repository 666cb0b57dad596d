"""Unit tests for GraphValidator class.

Tests cover:
- Validation report generation
- Auditing well-formed graphs
- Detecting corrupted adjacency indexes
- Cycle and self-loop detection in raw mappings
"""

from acyclic.graph import Dag, GraphValidator, ValidationReport


class TestValidationReport:
    """Test ValidationReport functionality."""

    def test_initialization(self):
        """Test that ValidationReport initializes correctly."""
        report = ValidationReport()

        assert report.is_valid is True
        assert report.errors == []
        assert report.warnings == []
        assert report.cycles == []
        assert report.self_loops == set()

    def test_add_error(self):
        """Test adding errors marks validation as failed."""
        report = ValidationReport()
        report.add_error("Test error")

        assert not report.is_valid
        assert report.errors == ["Test error"]

    def test_add_warning(self):
        """Test adding warnings doesn't fail validation."""
        report = ValidationReport()
        report.add_warning("Test warning")

        assert report.is_valid
        assert report.warnings == ["Test warning"]

    def test_summary_empty_report(self):
        """Test summary generation for empty report."""
        summary = ValidationReport().summary()

        assert "Validation Status: PASS" in summary
        assert "Errors: 0" in summary
        assert "Self-loops: 0" in summary

    def test_summary_with_cycles(self):
        """Test summary generation with cycle information."""
        report = ValidationReport()
        report.cycles = [["a", "b", "a"]]
        report.add_error("Cycle detected")

        summary = report.summary()

        assert "Validation Status: FAIL" in summary
        assert "Cycles: 1" in summary
        assert "'a' -> 'b' -> 'a'" in summary


class TestDagAudit:
    """Test auditing Dag instances."""

    def test_valid_graph(self):
        """Test that a graph built through the public API passes."""
        dag = Dag([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")], vertices=["E"])

        report = GraphValidator().validate(dag)

        assert report.is_valid
        assert report.errors == []

    def test_empty_graph(self):
        """Test that an empty graph passes."""
        assert Dag().audit().is_valid

    def test_detects_injected_cycle(self):
        """Test that a cycle smuggled past the guard is reported."""
        dag = Dag([("A", "B"), ("B", "C")])
        dag._successors["C"]["A"] = None
        dag._predecessors["A"]["C"] = None

        report = dag.audit()

        assert not report.is_valid
        assert len(report.cycles) == 1
        assert set(report.cycles[0]) == {"A", "B", "C"}
        assert report.cycles[0][0] == report.cycles[0][-1]

    def test_detects_injected_self_loop(self):
        """Test that a self-loop smuggled past the guard is reported."""
        dag = Dag(vertices=["A"])
        dag._successors["A"]["A"] = None
        dag._predecessors["A"]["A"] = None

        report = dag.audit()

        assert report.self_loops == {"A"}
        assert not report.is_valid

    def test_detects_index_mismatch(self):
        """Test that a successor entry without its mirror is reported."""
        dag = Dag(vertices=["A", "B"])
        dag._successors["A"]["B"] = None

        report = dag.audit()

        assert not report.is_valid
        assert any("predecessor index" in error for error in report.errors)

    def test_detects_dangling_edge(self):
        """Test that an edge to a vertex outside the graph is reported."""
        dag = Dag(vertices=["A"])
        dag._successors["A"]["Z"] = None

        report = dag.audit()

        assert any("points outside the graph" in error for error in report.errors)


class TestMappingValidation:
    """Test validation of raw adjacency mappings."""

    def test_valid_mapping(self):
        """Test that an acyclic mapping passes."""
        report = GraphValidator().validate_mapping({"a": ["b"], "b": []})

        assert report.is_valid
        assert report.warnings == []

    def test_two_vertex_cycle(self):
        """Test detection of a simple two-vertex cycle."""
        report = GraphValidator().validate_mapping({"a": ["b"], "b": ["a"]})

        assert not report.is_valid
        assert report.cycles == [["a", "b", "a"]]

    def test_three_vertex_cycle_with_tail(self):
        """Test that the reported cycle excludes the path leading into it."""
        mapping = {"start": ["a"], "a": ["b"], "b": ["c"], "c": ["a"]}

        report = GraphValidator().validate_mapping(mapping)

        assert report.cycles == [["a", "b", "c", "a"]]

    def test_disjoint_cycles(self):
        """Test that cycles in separate components are both reported."""
        mapping = {"a": ["b"], "b": ["a"], "x": ["y"], "y": ["x"]}

        report = GraphValidator().validate_mapping(mapping)

        assert len(report.cycles) == 2

    def test_self_loop(self):
        """Test that a self-loop is reported separately from cycles."""
        report = GraphValidator().validate_mapping({"a": ["a", "b"]})

        assert report.self_loops == {"a"}
        assert report.cycles == []
        assert not report.is_valid

    def test_undeclared_targets_warn(self):
        """Test that targets missing as keys produce a warning only."""
        report = GraphValidator().validate_mapping({"a": ["b", "c"]})

        assert report.is_valid
        assert len(report.warnings) == 1
        assert "'b'" in report.warnings[0]

    def test_long_chain(self):
        """Test that deep mappings do not exhaust the stack."""
        mapping = {i: [i + 1] for i in range(5000)}

        assert GraphValidator().validate_mapping(mapping).cycles == []

    def test_valid_mapping_loads(self):
        """Test that a mapping that validates loads into an equal Dag."""
        mapping = {"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []}

        assert GraphValidator().validate_mapping(mapping).is_valid
        assert Dag.from_mapping(mapping).to_mapping() == {
            "a": {"b", "c"},
            "b": {"d"},
            "c": {"d"},
            "d": set(),
        }
