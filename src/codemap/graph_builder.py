# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Graph builder for parsed type declarations.

This module converts the TypeDeclarations of a whole codebase into one
CodeGraph, resolving symbolic references (supertypes, calls, field types,
imports) across files.

Flow: TypeDeclaration (all files) -> GraphBuilder -> CodeGraph

The build runs in two passes:
Pass 1: create type and member nodes, CONTAINS edges and the lookup tables
Pass 2: create EXTENDS, IMPLEMENTS, CALLS, DEPENDENCY and OVERRIDES edges

Resolution is heuristic and best-effort. A name that cannot be resolved
produces no edge and no error. The lookup order of resolve_type_id and
resolve_member_id is part of the observable behaviour: changing it changes
which edges are built.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from codemap.models import (
    MEMBER_ID_PREFIX,
    TYPE_ID_PREFIX,
    CodeGraph,
    EdgeKind,
    GraphEdge,
    GraphNode,
    MemberDeclaration,
    NodeKind,
    TypeDeclaration,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionContext:
    """Where a reference appears: the declaring type's package, name and imports."""

    package: str
    owner: str  # Qualified name of the declaring type
    imports: Tuple[str, ...] = ()

    @classmethod
    def for_type(cls, decl: TypeDeclaration) -> "ResolutionContext":
        return cls(package=decl.package, owner=decl.qualified_name, imports=decl.imports)


class SymbolTables:
    """Lookup tables filled during pass 1 and read-only afterwards.

    type_ids maps qualified names (and bare names as a fallback) to type node
    ids. member_ids maps ``Type.signature``, ``Type.name`` and bare ``name``
    keys to member node ids. Later registrations overwrite earlier ones.
    """

    def __init__(self) -> None:
        self.type_ids: Dict[str, str] = {}
        self.member_ids: Dict[str, str] = {}
        self._known_type_ids: Set[str] = set()
        # package -> qualified names of its types, in insertion order
        self._package_types: Dict[str, List[str]] = {}

    def register_type(self, decl: TypeDeclaration, type_id: str) -> None:
        self.type_ids[decl.qualified_name] = type_id
        self.type_ids[decl.name] = type_id
        self._known_type_ids.add(type_id)
        self._package_types.setdefault(decl.package, []).append(decl.qualified_name)

    def register_member(self, owner: str, member: MemberDeclaration, member_id: str) -> None:
        self.member_ids[f"{owner}.{member.signature}"] = member_id
        self.member_ids[f"{owner}.{member.name}"] = member_id
        self.member_ids[member.name] = member_id

    def is_type_id(self, type_id: str) -> bool:
        return type_id in self._known_type_ids

    def types_in_package(self, package: str) -> List[str]:
        return self._package_types.get(package, [])


def type_id_for(qualified_name: str) -> str:
    return f"{TYPE_ID_PREFIX}{qualified_name}"


def member_id_for(owner: str, member: MemberDeclaration) -> str:
    return f"{MEMBER_ID_PREFIX}{owner}.{member.signature}"


def resolve_type_id(
    name: Optional[str], context: ResolutionContext, tables: SymbolTables
) -> Optional[str]:
    """Resolve a type name as written in source to a type node id.

    Lookups, first hit wins:
    1. Exact key (qualified or bare name)
    2. ``<package>.<name>`` (same-package assumption)
    3. An import ending with ``.<name>`` that is itself a known type
    4. A known type whose id is exactly ``type:<name>``

    Args:
        name: Type name, possibly qualified.
        context: Package and imports of the referencing type.
        tables: Lookup tables from pass 1.

    Returns:
        Type node id, or None if the name cannot be resolved.
    """
    if not name:
        return None

    type_id = tables.type_ids.get(name)
    if type_id is not None:
        return type_id

    if context.package:
        type_id = tables.type_ids.get(f"{context.package}.{name}")
        if type_id is not None:
            return type_id

    suffix = "." + name
    for imported in context.imports:
        if imported.endswith(suffix) and imported in tables.type_ids:
            return tables.type_ids[imported]

    candidate = type_id_for(name)
    if tables.is_type_id(candidate):
        return candidate

    return None


def resolve_member_id(
    call: str, context: ResolutionContext, tables: SymbolTables
) -> Optional[str]:
    """Resolve a raw call target to a member node id.

    Lookups, first hit wins:
    1. Exact key in the member table
    2. For ``scope.member`` calls (split on the first dot):
       a. ``<package>.<scope>.<member>``
       b. ``scope`` resolved as a type, then ``<type>.<member>``
       c. ``<import>.<member>`` for every import that is a known type
       d. ``<type>.<member>`` for every type of the same package
    3. For unscoped calls: ``<owner>.<call>``

    Args:
        call: Call target as recorded by the parser, e.g. "helper" or "repo.fetch".
        context: Package, owner and imports of the calling type.
        tables: Lookup tables from pass 1.

    Returns:
        Member node id, or None if the call cannot be resolved.
    """
    if not call:
        return None

    member_ids = tables.member_ids
    member_id = member_ids.get(call)
    if member_id is not None:
        return member_id

    if "." in call:
        scope, member = call.split(".", 1)

        if context.package:
            member_id = member_ids.get(f"{context.package}.{scope}.{member}")
            if member_id is not None:
                return member_id

        scope_type_id = resolve_type_id(scope, context, tables)
        if scope_type_id is not None:
            scope_type = scope_type_id[len(TYPE_ID_PREFIX) :]
            member_id = member_ids.get(f"{scope_type}.{member}")
            if member_id is not None:
                return member_id

        for imported in context.imports:
            if imported in tables.type_ids:
                member_id = member_ids.get(f"{imported}.{member}")
                if member_id is not None:
                    return member_id

        for qualified_name in tables.types_in_package(context.package):
            member_id = member_ids.get(f"{qualified_name}.{member}")
            if member_id is not None:
                return member_id

        return None

    return member_ids.get(f"{context.owner}.{call}")


class GraphBuilder:
    """Builds a CodeGraph from the TypeDeclarations of a codebase.

    The builder holds no state between runs: every call to build() creates
    fresh lookup tables, so building twice from the same declarations yields
    identical node and edge ids.

    Usage:
        builder = GraphBuilder()
        graph = builder.build(declarations)
    """

    def __init__(self, emit_overrides: bool = True) -> None:
        """Initialize the graph builder.

        Args:
            emit_overrides: Whether to emit OVERRIDES edges from members to the
                same-named member of a direct supertype or interface.
        """
        self.emit_overrides = emit_overrides

    def build(self, declarations: Sequence[TypeDeclaration]) -> CodeGraph:
        """Build the code graph for a list of declarations.

        Args:
            declarations: All type declarations of the codebase, in parse order.

        Returns:
            Immutable CodeGraph.
        """
        nodes: List[GraphNode] = []
        edges: List[GraphEdge] = []

        tables = self._create_nodes(declarations, nodes, edges)
        for decl in declarations:
            self._create_edges(decl, tables, edges)

        graph = CodeGraph(nodes, edges)
        logger.info(
            f"Built code graph from {len(declarations)} types: "
            f"{graph.node_count()} nodes, {graph.edge_count()} edges"
        )
        return graph

    def _create_nodes(
        self,
        declarations: Sequence[TypeDeclaration],
        nodes: List[GraphNode],
        edges: List[GraphEdge],
    ) -> SymbolTables:
        """Pass 1: type nodes, member nodes, CONTAINS edges and lookup tables."""
        tables = SymbolTables()

        for decl in declarations:
            type_id = type_id_for(decl.qualified_name)
            metadata = {
                "package": decl.package,
                "isAbstract": str(decl.is_abstract).lower(),
            }
            if decl.annotations:
                metadata["annotations"] = ",".join(decl.annotations)

            nodes.append(
                GraphNode(
                    id=type_id,
                    name=decl.name,
                    qualified_name=decl.qualified_name,
                    kind=NodeKind.for_type_kind(decl.kind),
                    file_path=decl.file_path,
                    line=decl.line,
                    metadata=metadata,
                )
            )
            tables.register_type(decl, type_id)

            for member in decl.members:
                member_id = member_id_for(decl.qualified_name, member)
                nodes.append(
                    GraphNode(
                        id=member_id,
                        name=member.name,
                        qualified_name=f"{decl.qualified_name}.{member.signature}",
                        kind=NodeKind.CONSTRUCTOR if member.is_constructor else NodeKind.METHOD,
                        file_path=decl.file_path,
                        line=member.line,
                        metadata={
                            "returnType": member.return_type or "void",
                            "access": member.visibility,
                            "isStatic": str(member.is_static).lower(),
                            "isAbstract": str(member.is_abstract).lower(),
                        },
                    )
                )
                tables.register_member(decl.qualified_name, member, member_id)
                edges.append(GraphEdge(source=type_id, target=member_id, kind=EdgeKind.CONTAINS))

        logger.debug(
            f"Pass 1 complete: {len(tables.type_ids)} type keys, "
            f"{len(tables.member_ids)} member keys"
        )
        return tables

    def _create_edges(
        self, decl: TypeDeclaration, tables: SymbolTables, edges: List[GraphEdge]
    ) -> None:
        """Pass 2: relation edges for one declared type."""
        type_id = type_id_for(decl.qualified_name)
        context = ResolutionContext.for_type(decl)

        supertype_ids: List[str] = []
        if decl.super_type:
            super_id = resolve_type_id(decl.super_type, context, tables)
            if super_id is not None:
                edges.append(GraphEdge(source=type_id, target=super_id, kind=EdgeKind.EXTENDS))
                supertype_ids.append(super_id)

        for interface in decl.interfaces:
            interface_id = resolve_type_id(interface, context, tables)
            if interface_id is not None:
                edges.append(
                    GraphEdge(source=type_id, target=interface_id, kind=EdgeKind.IMPLEMENTS)
                )
                supertype_ids.append(interface_id)

        for member in decl.members:
            member_id = member_id_for(decl.qualified_name, member)
            for call in member.calls:
                target_id = resolve_member_id(call, context, tables)
                if target_id is not None and target_id != member_id:
                    edges.append(GraphEdge(source=member_id, target=target_id, kind=EdgeKind.CALLS))

        if self.emit_overrides:
            self._create_override_edges(decl, supertype_ids, tables, edges)

        dependency_ids: Set[str] = set()
        for field_descriptor in decl.fields:
            tokens = field_descriptor.split()
            if not tokens:
                continue
            dependency_id = resolve_type_id(tokens[0], context, tables)
            if (
                dependency_id is not None
                and dependency_id != type_id
                and dependency_id not in dependency_ids
            ):
                dependency_ids.add(dependency_id)
                edges.append(
                    GraphEdge(
                        source=type_id,
                        target=dependency_id,
                        kind=EdgeKind.DEPENDENCY,
                        metadata={"via": "field"},
                    )
                )

        for imported in decl.imports:
            dependency_id = tables.type_ids.get(imported)
            if (
                dependency_id is not None
                and dependency_id != type_id
                and dependency_id not in dependency_ids
            ):
                dependency_ids.add(dependency_id)
                edges.append(
                    GraphEdge(
                        source=type_id,
                        target=dependency_id,
                        kind=EdgeKind.DEPENDENCY,
                        metadata={"via": "import"},
                    )
                )

    def _create_override_edges(
        self,
        decl: TypeDeclaration,
        supertype_ids: List[str],
        tables: SymbolTables,
        edges: List[GraphEdge],
    ) -> None:
        """Link each member to the first same-named member of a direct supertype."""
        for member in decl.members:
            if member.is_constructor:
                continue
            member_id = member_id_for(decl.qualified_name, member)
            for super_id in supertype_ids:
                super_name = super_id[len(TYPE_ID_PREFIX) :]
                target_id = tables.member_ids.get(f"{super_name}.{member.name}")
                if target_id is not None and target_id != member_id:
                    edges.append(
                        GraphEdge(source=member_id, target=target_id, kind=EdgeKind.OVERRIDES)
                    )
                    break
