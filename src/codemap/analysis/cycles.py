# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Circular dependency detection over declared types.

Uses Tarjan's strongly-connected-components algorithm on the subgraph of
CLASS, INTERFACE and ENUM nodes linked by DEPENDENCY, EXTENDS and IMPLEMENTS
edges. The depth-first search keeps an explicit work stack, so long
dependency chains do not hit the interpreter recursion limit.
"""

import logging
from typing import Dict, Iterator, List, Set, Tuple

from codemap.models import CodeGraph, EdgeKind, NodeKind

logger = logging.getLogger(__name__)

CYCLE_EDGE_KINDS = (EdgeKind.DEPENDENCY, EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS)


class CircularDependencyDetector:
    """Reports groups of types that depend on each other in a cycle.

    Only components with at least two types are reported; a type that
    references itself is not a cycle.

    Usage:
        detector = CircularDependencyDetector(graph)
        for cycle in detector.detect_circular_dependencies():
            print(" -> ".join(cycle))
    """

    def __init__(self, graph: CodeGraph) -> None:
        self.graph = graph

    def detect_circular_dependencies(self) -> List[List[str]]:
        """Find all dependency cycles.

        Roots are taken in node insertion order and edges in outgoing-index
        order, so the reported components and their member order are stable
        for a given graph.

        Returns:
            List of cycles, each a list of type node ids.
        """
        type_ids = [node.id for node in self.graph.nodes_by_kind(*NodeKind.TYPE_KINDS)]
        type_id_set = set(type_ids)

        index_of: Dict[str, int] = {}
        low_link: Dict[str, int] = {}
        on_stack: Set[str] = set()
        stack: List[str] = []
        components: List[List[str]] = []
        counter = 0

        for root in type_ids:
            if root in index_of:
                continue

            index_of[root] = low_link[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            work: List[Tuple[str, Iterator[str]]] = [(root, self._successors(root, type_id_set))]

            while work:
                node, successors = work[-1]
                advanced = False
                for successor in successors:
                    if successor not in index_of:
                        index_of[successor] = low_link[successor] = counter
                        counter += 1
                        stack.append(successor)
                        on_stack.add(successor)
                        work.append((successor, self._successors(successor, type_id_set)))
                        advanced = True
                        break
                    if successor in on_stack:
                        low_link[node] = min(low_link[node], index_of[successor])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    low_link[parent] = min(low_link[parent], low_link[node])

                if low_link[node] == index_of[node]:
                    component: List[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1:
                        components.append(component)

        if components:
            logger.info(f"Detected {len(components)} circular dependency group(s)")
        return components

    def get_cycle_node_ids(self) -> Set[str]:
        """Ids of all types that take part in any cycle."""
        return {node_id for cycle in self.detect_circular_dependencies() for node_id in cycle}

    def _successors(self, node_id: str, type_ids: Set[str]) -> Iterator[str]:
        for edge in self.graph.outgoing_edges(node_id):
            if edge.kind in CYCLE_EDGE_KINDS and edge.target in type_ids:
                yield edge.target
