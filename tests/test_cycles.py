# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for CircularDependencyDetector."""

from codemap.analysis import CircularDependencyDetector
from codemap.graph_builder import GraphBuilder
from codemap.models import CodeGraph, EdgeKind, GraphEdge, GraphNode, NodeKind


def type_graph(edges, node_ids=None, kind=EdgeKind.EXTENDS) -> CodeGraph:
    if node_ids is None:
        node_ids = []
        for source, target in edges:
            for node_id in (source, target):
                if node_id not in node_ids:
                    node_ids.append(node_id)
    nodes = [
        GraphNode(id=node_id, name=node_id, qualified_name=node_id, kind=NodeKind.CLASS)
        for node_id in node_ids
    ]
    return CodeGraph(nodes, [GraphEdge(source=s, target=t, kind=kind) for s, t in edges])


class TestCircularDependencyDetector:
    """Tests for strongly connected component detection."""

    def test_three_cycle(self):
        graph = type_graph([("A", "B"), ("B", "C"), ("C", "A")])
        cycles = CircularDependencyDetector(graph).detect_circular_dependencies()
        assert len(cycles) == 1
        assert set(cycles[0]) == {"A", "B", "C"}

    def test_acyclic_graph(self):
        graph = type_graph([("A", "B"), ("B", "C"), ("A", "C")])
        assert CircularDependencyDetector(graph).detect_circular_dependencies() == []

    def test_self_loop_not_reported(self):
        graph = type_graph([("A", "A"), ("A", "B")])
        assert CircularDependencyDetector(graph).detect_circular_dependencies() == []

    def test_two_separate_cycles(self):
        graph = type_graph([("A", "B"), ("B", "A"), ("C", "D"), ("D", "C"), ("B", "C")])
        cycles = CircularDependencyDetector(graph).detect_circular_dependencies()
        assert sorted(sorted(cycle) for cycle in cycles) == [["A", "B"], ["C", "D"]]

    def test_components_are_disjoint(self):
        graph = type_graph(
            [("A", "B"), ("B", "C"), ("C", "A"), ("C", "D"), ("D", "E"), ("E", "D"), ("E", "F")]
        )
        cycles = CircularDependencyDetector(graph).detect_circular_dependencies()
        members = [node_id for cycle in cycles for node_id in cycle]
        assert len(members) == len(set(members))
        assert all(len(cycle) >= 2 for cycle in cycles)
        assert {frozenset(c) for c in cycles} == {frozenset("ABC"), frozenset("DE")}

    def test_dependency_and_implements_edges_count(self):
        nodes = [
            GraphNode(id=i, name=i, qualified_name=i, kind=NodeKind.CLASS) for i in ("A", "B")
        ]
        edges = [
            GraphEdge(source="A", target="B", kind=EdgeKind.DEPENDENCY),
            GraphEdge(source="B", target="A", kind=EdgeKind.IMPLEMENTS),
        ]
        cycles = CircularDependencyDetector(CodeGraph(nodes, edges)).detect_circular_dependencies()
        assert len(cycles) == 1

    def test_calls_edges_ignored(self):
        graph = type_graph([("A", "B"), ("B", "A")], kind=EdgeKind.CALLS)
        assert CircularDependencyDetector(graph).detect_circular_dependencies() == []

    def test_member_nodes_ignored(self):
        nodes = [
            GraphNode(id="A", name="A", qualified_name="A", kind=NodeKind.CLASS),
            GraphNode(id="m", name="m", qualified_name="A.m()", kind=NodeKind.METHOD),
        ]
        edges = [
            GraphEdge(source="A", target="m", kind=EdgeKind.DEPENDENCY),
            GraphEdge(source="m", target="A", kind=EdgeKind.DEPENDENCY),
        ]
        assert CircularDependencyDetector(CodeGraph(nodes, edges)).detect_circular_dependencies() == []

    def test_long_chain_without_recursion_error(self):
        """A 5000-node dependency ring is found without deep recursion."""
        count = 5000
        edges = [(f"T{i}", f"T{(i + 1) % count}") for i in range(count)]
        cycles = CircularDependencyDetector(type_graph(edges)).detect_circular_dependencies()
        assert len(cycles) == 1
        assert len(cycles[0]) == count

    def test_long_acyclic_chain(self):
        edges = [(f"T{i}", f"T{i + 1}") for i in range(5000)]
        assert CircularDependencyDetector(type_graph(edges)).detect_circular_dependencies() == []

    def test_stable_across_runs(self):
        graph = type_graph([("A", "B"), ("B", "C"), ("C", "A"), ("D", "E"), ("E", "D")])
        detector = CircularDependencyDetector(graph)
        assert detector.detect_circular_dependencies() == detector.detect_circular_dependencies()

    def test_cycle_node_ids(self):
        graph = type_graph([("A", "B"), ("B", "A"), ("B", "C")])
        assert CircularDependencyDetector(graph).get_cycle_node_ids() == {"A", "B"}

    def test_scenario_has_no_cycles(self, scenario_declarations):
        graph = GraphBuilder().build(scenario_declarations)
        assert CircularDependencyDetector(graph).detect_circular_dependencies() == []

    def test_empty_graph(self):
        assert CircularDependencyDetector(CodeGraph.empty()).detect_circular_dependencies() == []
