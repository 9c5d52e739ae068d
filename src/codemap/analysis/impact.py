# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Change impact analysis for declared types."""

import logging

from codemap.analysis.targets import resolve_type_target
from codemap.models import CodeGraph, EdgeKind
from codemap.query import UNLIMITED_DEPTH, GraphQuery

logger = logging.getLogger(__name__)

IMPACT_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS, EdgeKind.CALLS)
DIRECT_IMPACT_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS)


class ImpactAnalyzer:
    """Finds everything affected by a change to a declared type."""

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph
        self._query = GraphQuery(graph)

    def get_impact_analysis(self, target: str) -> CodeGraph:
        """Nodes that transitively depend on, extend, implement or call into target.

        Args:
            target: Qualified type name, or a suffix of one.

        Returns:
            Impact subgraph including the resolved type, empty if unresolved.
        """
        type_id = resolve_type_target(self.graph, target)
        if type_id is None:
            logger.info(f"Impact target not found: {target}")
            return CodeGraph.empty()
        return self._query.reverse_traverse(type_id, UNLIMITED_DEPTH, IMPACT_KINDS)

    def get_direct_impact_count(self, target: str) -> int:
        """Number of distinct types with a direct DEPENDENCY, EXTENDS or IMPLEMENTS edge to target."""
        type_id = resolve_type_target(self.graph, target)
        if type_id is None:
            return 0
        sources = {
            edge.source
            for edge in self.graph.incoming_edges(type_id)
            if edge.kind in DIRECT_IMPACT_KINDS
        }
        return len(sources)
