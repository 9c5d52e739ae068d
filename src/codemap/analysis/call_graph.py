# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Call-graph analysis: callees and callers of a member."""

import logging

from codemap.analysis.targets import resolve_member_target
from codemap.models import CodeGraph, EdgeKind
from codemap.query import UNLIMITED_DEPTH, GraphQuery

logger = logging.getLogger(__name__)


class CallGraphAnalyzer:
    """Expands CALLS edges around a method or constructor."""

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph
        self._query = GraphQuery(graph)

    def get_call_graph(self, target: str, depth: int) -> CodeGraph:
        """Members reachable from target over CALLS edges within depth hops.

        Args:
            target: Member id without the ``method:`` prefix, or any substring
                of a member's qualified name.
            depth: Maximum number of hops; negative means unlimited.

        Returns:
            Call graph rooted at the resolved member, empty if unresolved.
        """
        member_id = resolve_member_target(self.graph, target)
        if member_id is None:
            logger.info(f"Call graph target not found: {target}")
            return CodeGraph.empty()
        return self._query.forward_traverse(member_id, depth, [EdgeKind.CALLS])

    def get_incoming_calls(self, target: str) -> CodeGraph:
        """All direct and transitive callers of target."""
        member_id = resolve_member_target(self.graph, target)
        if member_id is None:
            logger.info(f"Incoming calls target not found: {target}")
            return CodeGraph.empty()
        return self._query.reverse_traverse(member_id, UNLIMITED_DEPTH, [EdgeKind.CALLS])
