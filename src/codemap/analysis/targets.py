# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Resolution of user-supplied target names to graph node ids."""

from typing import Optional

from codemap.models import MEMBER_ID_PREFIX, TYPE_ID_PREFIX, CodeGraph, NodeKind


def resolve_member_target(graph: CodeGraph, target: str) -> Optional[str]:
    """Resolve a method-like name to a member node id.

    Tries the exact id ``method:<target>`` first, then the first METHOD or
    CONSTRUCTOR node (insertion order) whose qualified name contains target.
    """
    if not target:
        return None
    exact = MEMBER_ID_PREFIX + target
    if graph.has_node(exact):
        return exact
    for node in graph.nodes:
        if node.kind in NodeKind.MEMBER_KINDS and target in node.qualified_name:
            return node.id
    return None


def resolve_type_target(graph: CodeGraph, target: str) -> Optional[str]:
    """Resolve a type-like name to a type node id.

    Tries the exact id ``type:<target>`` first, then the first CLASS or
    INTERFACE node (insertion order) whose qualified name ends with target.
    """
    if not target:
        return None
    exact = TYPE_ID_PREFIX + target
    if graph.has_node(exact):
        return exact
    for node in graph.nodes:
        if node.kind in (NodeKind.CLASS, NodeKind.INTERFACE) and node.qualified_name.endswith(
            target
        ):
            return node.id
    return None
