# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rule flagging classes with too many members or dependencies."""

from typing import Any, List, Mapping

from codemap.models import CodeGraph, EdgeKind, NodeKind
from codemap.rules.base import ArchitectureRule, Severity, Violation, int_option


class GodClassRule(ArchitectureRule):
    """Counts CONTAINS and DEPENDENCY edges leaving each class.

    Options:
        max_methods: Members allowed per class (default: 20).
        max_dependencies: Dependencies allowed per class (default: 15).
    """

    DEFAULT_MAX_METHODS = 20
    DEFAULT_MAX_DEPENDENCIES = 15

    def __init__(
        self,
        max_methods: int = DEFAULT_MAX_METHODS,
        max_dependencies: int = DEFAULT_MAX_DEPENDENCIES,
    ):
        self.max_methods = max_methods
        self.max_dependencies = max_dependencies

    def name(self) -> str:
        return "god-class"

    def description(self) -> str:
        return "Detects classes with too many methods or dependencies"

    def configure(self, options: Mapping[str, Any]) -> None:
        self.max_methods = int_option(options, "max_methods", self.max_methods)
        self.max_dependencies = int_option(options, "max_dependencies", self.max_dependencies)

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        violations: List[Violation] = []
        for node in graph.nodes_by_kind(NodeKind.CLASS):
            outgoing = graph.outgoing_edges(node.id)
            method_count = sum(1 for edge in outgoing if edge.kind == EdgeKind.CONTAINS)
            dependency_count = sum(1 for edge in outgoing if edge.kind == EdgeKind.DEPENDENCY)

            if method_count > self.max_methods:
                violations.append(
                    Violation.for_node(
                        self.name(),
                        Severity.WARNING,
                        f"Class has {method_count} methods (max: {self.max_methods})",
                        node,
                    )
                )
            if dependency_count > self.max_dependencies:
                violations.append(
                    Violation.for_node(
                        self.name(),
                        Severity.WARNING,
                        f"Class has {dependency_count} dependencies "
                        f"(max: {self.max_dependencies})",
                        node,
                    )
                )
        return violations
