# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rule flagging inheritance chains deeper than a threshold."""

from typing import Any, Dict, List, Mapping, Set

from codemap.models import CodeGraph, EdgeKind, NodeKind
from codemap.rules.base import ArchitectureRule, Severity, Violation, int_option


class DeepInheritanceRule(ArchitectureRule):
    """Measures the longest EXTENDS chain above each class.

    Options:
        max_depth: Allowed number of EXTENDS hops (default: 4).
    """

    DEFAULT_MAX_DEPTH = 4

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def name(self) -> str:
        return "deep-inheritance"

    def description(self) -> str:
        return "Detects inheritance chains deeper than the configured threshold"

    def configure(self, options: Mapping[str, Any]) -> None:
        self.max_depth = int_option(options, "max_depth", self.max_depth)

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        violations: List[Violation] = []
        memo: Dict[str, int] = {}
        for node in graph.nodes_by_kind(NodeKind.CLASS):
            depth = self.inheritance_depth(graph, node.id, memo, set())
            if depth > self.max_depth:
                violations.append(
                    Violation.for_node(
                        self.name(),
                        Severity.WARNING,
                        f"Inheritance depth is {depth} (max: {self.max_depth})",
                        node,
                    )
                )
        return violations

    def inheritance_depth(
        self, graph: CodeGraph, node_id: str, memo: Dict[str, int], path: Set[str]
    ) -> int:
        """Longest EXTENDS chain starting at node_id; a cycle ends the chain."""
        if node_id in memo:
            return memo[node_id]
        if node_id in path:
            return 0
        path.add(node_id)
        depth = 0
        for edge in graph.outgoing_edges(node_id):
            if edge.kind == EdgeKind.EXTENDS:
                depth = max(depth, 1 + self.inheritance_depth(graph, edge.target, memo, path))
        path.discard(node_id)
        memo[node_id] = depth
        return depth
