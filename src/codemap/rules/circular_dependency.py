# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rule flagging types that take part in a dependency cycle."""

from typing import List

from codemap.analysis.cycles import CircularDependencyDetector
from codemap.models import CodeGraph
from codemap.rules.base import ArchitectureRule, Severity, Violation


class CircularDependencyRule(ArchitectureRule):
    """One WARNING per type in each detected cycle."""

    def name(self) -> str:
        return "circular-dependency"

    def description(self) -> str:
        return "Detects circular dependencies between classes"

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        violations: List[Violation] = []
        for cycle in CircularDependencyDetector(graph).detect_circular_dependencies():
            cycle_str = " -> ".join(cycle)
            for node_id in cycle:
                node = graph.get_node(node_id)
                if node is not None:
                    violations.append(
                        Violation.for_node(
                            self.name(),
                            Severity.WARNING,
                            f"Class is part of circular dependency: {cycle_str}",
                            node,
                        )
                    )
        return violations
