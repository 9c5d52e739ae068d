# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rule flagging types nothing depends on."""

from typing import List

from codemap.models import CodeGraph, EdgeKind, NodeKind
from codemap.rules.base import ArchitectureRule, Severity, Violation

REFERENCE_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS)


class UnusedClassRule(ArchitectureRule):
    """INFO for each class or interface without incoming type references."""

    def name(self) -> str:
        return "unused-class"

    def description(self) -> str:
        return "Detects classes with no incoming dependencies"

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        violations: List[Violation] = []
        for node in graph.nodes_by_kind(NodeKind.CLASS, NodeKind.INTERFACE):
            referenced = any(edge.kind in REFERENCE_KINDS for edge in graph.incoming_edges(node.id))
            if not referenced:
                violations.append(
                    Violation.for_node(
                        self.name(),
                        Severity.INFO,
                        "Class has no incoming dependencies and may be unused",
                        node,
                    )
                )
        return violations
