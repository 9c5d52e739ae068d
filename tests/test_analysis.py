# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for call-graph, dependency and impact analyzers.

All tests run against the service scenario:
Controller.handle -> Service.process, ServiceImpl.process -> Repository.fetch
and ServiceImpl.transform; ServiceImpl implements Service and holds a
Repository; Controller holds a Service.
"""

import pytest

from codemap.analysis import (
    CallGraphAnalyzer,
    DependencyAnalyzer,
    ImpactAnalyzer,
    resolve_member_target,
    resolve_type_target,
)
from codemap.graph_builder import GraphBuilder
from codemap.models import EdgeKind

SERVICE = "type:com.example.Service"
SERVICE_IMPL = "type:com.example.ServiceImpl"
REPOSITORY = "type:com.example.Repository"
CONTROLLER = "type:com.example.Controller"
SERVICE_PROCESS = "method:com.example.Service.process(String)"
IMPL_PROCESS = "method:com.example.ServiceImpl.process(String)"
IMPL_TRANSFORM = "method:com.example.ServiceImpl.transform(String)"
REPOSITORY_FETCH = "method:com.example.Repository.fetch(String)"
CONTROLLER_HANDLE = "method:com.example.Controller.handle(String)"


@pytest.fixture
def graph(scenario_declarations):
    return GraphBuilder().build(scenario_declarations)


class TestTargetResolution:
    """Tests for resolving user-supplied names to node ids."""

    def test_member_exact_id(self, graph):
        assert resolve_member_target(graph, "com.example.ServiceImpl.process(String)") == IMPL_PROCESS

    def test_member_substring_first_match(self, graph):
        """Service.process matches before ServiceImpl.process in insertion order."""
        assert resolve_member_target(graph, "process") == SERVICE_PROCESS
        assert resolve_member_target(graph, "ServiceImpl.process") == IMPL_PROCESS

    def test_member_not_found(self, graph):
        assert resolve_member_target(graph, "nothing") is None
        assert resolve_member_target(graph, "") is None

    def test_type_exact_id(self, graph):
        assert resolve_type_target(graph, "com.example.Repository") == REPOSITORY

    def test_type_suffix(self, graph):
        assert resolve_type_target(graph, "Service") == SERVICE
        assert resolve_type_target(graph, "Impl") == SERVICE_IMPL

    def test_type_does_not_match_members(self, graph):
        assert resolve_type_target(graph, "process(String)") is None


class TestCallGraphAnalyzer:
    """Tests for outgoing and incoming call graphs."""

    def test_call_graph(self, graph):
        result = CallGraphAnalyzer(graph).get_call_graph("ServiceImpl.process", 5)
        assert set(result.node_ids()) == {IMPL_PROCESS, REPOSITORY_FETCH, IMPL_TRANSFORM}
        assert result.edge_count() == 2
        assert all(edge.kind == EdgeKind.CALLS for edge in result.edges)

    def test_call_graph_depth_zero(self, graph):
        result = CallGraphAnalyzer(graph).get_call_graph("ServiceImpl.process", 0)
        assert result.node_ids() == [IMPL_PROCESS]

    def test_call_graph_unknown_target(self, graph):
        assert CallGraphAnalyzer(graph).get_call_graph("Missing.method", 5).is_empty()

    def test_incoming_calls(self, graph):
        result = CallGraphAnalyzer(graph).get_incoming_calls("Repository.fetch")
        assert set(result.node_ids()) == {REPOSITORY_FETCH, IMPL_PROCESS}

    def test_incoming_calls_to_interface_method(self, graph):
        result = CallGraphAnalyzer(graph).get_incoming_calls("Service.process")
        assert set(result.node_ids()) == {SERVICE_PROCESS, CONTROLLER_HANDLE}

    def test_incoming_calls_unknown_target(self, graph):
        assert CallGraphAnalyzer(graph).get_incoming_calls("Missing").is_empty()


class TestDependencyAnalyzer:
    """Tests for dependencies and dependents of a type."""

    def test_class_dependencies(self, graph):
        result = DependencyAnalyzer(graph).get_class_dependencies("ServiceImpl")
        assert set(result.node_ids()) == {SERVICE_IMPL, SERVICE, REPOSITORY}
        assert result.edge_count() == 2

    def test_dependencies_are_one_hop(self, graph):
        result = DependencyAnalyzer(graph).get_class_dependencies("Controller")
        assert set(result.node_ids()) == {CONTROLLER, SERVICE}

    def test_dependents(self, graph):
        result = DependencyAnalyzer(graph).get_dependents("Repository")
        assert set(result.node_ids()) == {REPOSITORY, SERVICE_IMPL}

    def test_dependents_of_leaf(self, graph):
        assert DependencyAnalyzer(graph).get_dependents("Controller").node_ids() == [CONTROLLER]

    def test_unknown_target(self, graph):
        analyzer = DependencyAnalyzer(graph)
        assert analyzer.get_class_dependencies("Nope").is_empty()
        assert analyzer.get_dependents("Nope").is_empty()


class TestImpactAnalyzer:
    """Tests for change impact analysis."""

    def test_impact_of_interface(self, graph):
        result = ImpactAnalyzer(graph).get_impact_analysis("Service")
        assert set(result.node_ids()) == {SERVICE, SERVICE_IMPL, CONTROLLER}

    def test_direct_impact_count(self, graph):
        assert ImpactAnalyzer(graph).get_direct_impact_count("Service") == 2
        assert ImpactAnalyzer(graph).get_direct_impact_count("Repository") == 1
        assert ImpactAnalyzer(graph).get_direct_impact_count("Controller") == 0

    def test_unknown_target(self, graph):
        analyzer = ImpactAnalyzer(graph)
        assert analyzer.get_impact_analysis("Nope").is_empty()
        assert analyzer.get_direct_impact_count("Nope") == 0
