# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Traversal engine for the code graph.

GraphQuery performs bounded breadth-first traversal over a CodeGraph,
following outgoing edges (forward) or incoming edges (reverse), optionally
restricted to a set of relation kinds. Every query returns a new subgraph;
the source graph is never modified.
"""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, Optional, Tuple

from codemap.models import CodeGraph, GraphEdge

logger = logging.getLogger(__name__)

UNLIMITED_DEPTH = -1


class Direction:
    """Traversal directions.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    FORWARD = "forward"  # follow outgoing edges
    REVERSE = "reverse"  # follow incoming edges


class GraphQuery:
    """Read-only queries over a CodeGraph.

    Usage:
        query = GraphQuery(graph)
        callees = query.forward_traverse("method:app.Service.run()", 3, [EdgeKind.CALLS])
        callers = query.reverse_traverse("method:app.Service.run()", -1, [EdgeKind.CALLS])
    """

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph

    def traverse(
        self,
        start_id: str,
        max_depth: int = UNLIMITED_DEPTH,
        relation_kinds: Optional[Iterable[str]] = None,
        direction: str = Direction.FORWARD,
    ) -> CodeGraph:
        """Breadth-first traversal from a start node.

        Each node is visited once, at the depth of first discovery. A node at
        depth ``d`` is not expanded when ``max_depth >= 0`` and ``d >= max_depth``.
        The result is the subgraph induced by all visited nodes, so it may
        contain edges between visited nodes that were never walked.

        Args:
            start_id: Id of the node to start from.
            max_depth: Maximum number of hops; negative means unlimited.
            relation_kinds: Edge kinds to follow. None or empty follows all kinds.
            direction: Direction.FORWARD or Direction.REVERSE.

        Returns:
            Subgraph of visited nodes, empty if start_id is not in the graph.

        Raises:
            ValueError: If direction is not a known Direction value.
        """
        if direction not in (Direction.FORWARD, Direction.REVERSE):
            raise ValueError(f"Unknown traversal direction '{direction}'")

        if not self.graph.has_node(start_id):
            logger.debug(f"Traversal start node not found: {start_id}")
            return CodeGraph.empty()

        kinds = frozenset(relation_kinds) if relation_kinds else None
        depths: Dict[str, int] = {start_id: 0}
        queue: Deque[str] = deque([start_id])

        while queue:
            current = queue.popleft()
            depth = depths[current]
            if 0 <= max_depth <= depth:
                continue

            for edge in self._edges_from(current, direction):
                if kinds is not None and edge.kind not in kinds:
                    continue
                neighbor = edge.target if direction == Direction.FORWARD else edge.source
                if neighbor not in depths:
                    depths[neighbor] = depth + 1
                    queue.append(neighbor)

        return self.graph.subgraph(depths)

    def forward_traverse(
        self,
        start_id: str,
        max_depth: int = UNLIMITED_DEPTH,
        relation_kinds: Optional[Iterable[str]] = None,
    ) -> CodeGraph:
        """Traverse outgoing edges from start_id."""
        return self.traverse(start_id, max_depth, relation_kinds, Direction.FORWARD)

    def reverse_traverse(
        self,
        start_id: str,
        max_depth: int = UNLIMITED_DEPTH,
        relation_kinds: Optional[Iterable[str]] = None,
    ) -> CodeGraph:
        """Traverse incoming edges into start_id."""
        return self.traverse(start_id, max_depth, relation_kinds, Direction.REVERSE)

    def filter_by_package(self, package_prefix: str) -> CodeGraph:
        """Keep only nodes whose qualified name starts with package_prefix."""
        return self.graph.subgraph(
            node.id for node in self.graph.nodes if node.qualified_name.startswith(package_prefix)
        )

    def exclude_package(self, package_prefix: str) -> CodeGraph:
        """Drop nodes whose qualified name starts with package_prefix."""
        return self.graph.subgraph(
            node.id
            for node in self.graph.nodes
            if not node.qualified_name.startswith(package_prefix)
        )

    def _edges_from(self, node_id: str, direction: str) -> Tuple[GraphEdge, ...]:
        if direction == Direction.FORWARD:
            return self.graph.outgoing_edges(node_id)
        return self.graph.incoming_edges(node_id)
