# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Type-level dependency analysis."""

import logging

from codemap.analysis.targets import resolve_type_target
from codemap.models import CodeGraph, EdgeKind
from codemap.query import UNLIMITED_DEPTH, GraphQuery

logger = logging.getLogger(__name__)

DEPENDENCY_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS, EdgeKind.IMPORTS)
DEPENDENT_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS)


class DependencyAnalyzer:
    """Direct dependencies and transitive dependents of a declared type."""

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph
        self._query = GraphQuery(graph)

    def get_class_dependencies(self, target: str) -> CodeGraph:
        """Types that target depends on directly (one hop).

        Args:
            target: Qualified type name, or a suffix of one.

        Returns:
            The resolved type and its direct dependencies, empty if unresolved.
        """
        type_id = resolve_type_target(self.graph, target)
        if type_id is None:
            logger.info(f"Dependency target not found: {target}")
            return CodeGraph.empty()
        return self._query.forward_traverse(type_id, 1, DEPENDENCY_KINDS)

    def get_dependents(self, target: str) -> CodeGraph:
        """Types that depend on target, directly or transitively."""
        type_id = resolve_type_target(self.graph, target)
        if type_id is None:
            logger.info(f"Dependents target not found: {target}")
            return CodeGraph.empty()
        return self._query.reverse_traverse(type_id, UNLIMITED_DEPTH, DEPENDENT_KINDS)
