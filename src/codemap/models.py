# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for codemap.

This module defines the foundational data structures used throughout the system:
- TypeKind / NodeKind / EdgeKind: Enum-like classes for declaration, node and edge kinds
- MemberDeclaration: A method or constructor as reported by a source parser
- TypeDeclaration: A class, interface or enum as reported by a source parser
- GraphNode / GraphEdge: Vertices and typed relations of the code graph
- CodeGraph: Immutable graph with id, outgoing and incoming indices
- AnalysisResult: A query result wrapped with run statistics

Declarations and graph elements are immutable once constructed. All kind values
are plain strings so that every model serializes to JSON without conversion.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

TYPE_ID_PREFIX = "type:"
MEMBER_ID_PREFIX = "method:"


class TypeKind:
    """Kinds of declared types.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    CLASS = "class"  # ordinary class
    INTERFACE = "interface"  # Protocol or pure abstract base
    ENUM = "enum"  # Enum subclass


class Visibility:
    """Member visibility derived from naming conventions."""

    PUBLIC = "public"  # name
    PROTECTED = "protected"  # _name
    PRIVATE = "private"  # __name


class NodeKind:
    """Kinds of graph nodes (wire format values)."""

    CLASS = "CLASS"
    INTERFACE = "INTERFACE"
    ENUM = "ENUM"
    METHOD = "METHOD"
    CONSTRUCTOR = "CONSTRUCTOR"

    TYPE_KINDS = (CLASS, INTERFACE, ENUM)
    MEMBER_KINDS = (METHOD, CONSTRUCTOR)

    @classmethod
    def for_type_kind(cls, type_kind: str) -> str:
        """Map a TypeKind value to the matching node kind."""
        if type_kind == TypeKind.INTERFACE:
            return cls.INTERFACE
        if type_kind == TypeKind.ENUM:
            return cls.ENUM
        return cls.CLASS


class EdgeKind:
    """Relation kinds between graph nodes (wire format values)."""

    CALLS = "CALLS"  # member -> member
    EXTENDS = "EXTENDS"  # type -> supertype
    IMPLEMENTS = "IMPLEMENTS"  # type -> interface
    DEPENDENCY = "DEPENDENCY"  # type -> type (field or import)
    IMPORTS = "IMPORTS"  # type -> type
    OVERRIDES = "OVERRIDES"  # member -> supertype member
    CONTAINS = "CONTAINS"  # type -> member

    ALL = (CALLS, EXTENDS, IMPLEMENTS, DEPENDENCY, IMPORTS, OVERRIDES, CONTAINS)


def build_signature(name: str, parameter_types: Sequence[str]) -> str:
    """Build a member signature such as ``process(str, int)``."""
    return f"{name}({', '.join(parameter_types)})"


@dataclass(frozen=True)
class MemberDeclaration:
    """A method or constructor declared by a type.

    The signature is derived from the name and parameter types when not given,
    so two records for the same member always share an identity.
    """

    name: str
    owner: str  # Qualified name of the declaring type
    signature: str = ""
    return_type: str = "void"
    parameter_types: Tuple[str, ...] = ()
    calls: Tuple[str, ...] = ()  # Raw call targets, e.g. "helper" or "repo.fetch"
    line: int = 0
    is_constructor: bool = False
    is_static: bool = False
    is_abstract: bool = False
    visibility: str = Visibility.PUBLIC
    annotations: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("MemberDeclaration requires a name")
        object.__setattr__(self, "parameter_types", tuple(self.parameter_types))
        object.__setattr__(self, "calls", tuple(self.calls))
        object.__setattr__(self, "annotations", tuple(self.annotations))
        if not self.signature:
            object.__setattr__(self, "signature", build_signature(self.name, self.parameter_types))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "name": self.name,
            "owner": self.owner,
            "signature": self.signature,
            "return_type": self.return_type,
            "line": self.line,
        }
        if self.parameter_types:
            result["parameter_types"] = list(self.parameter_types)
        if self.calls:
            result["calls"] = list(self.calls)
        if self.is_constructor:
            result["is_constructor"] = True
        if self.is_static:
            result["is_static"] = True
        if self.is_abstract:
            result["is_abstract"] = True
        if self.visibility != Visibility.PUBLIC:
            result["visibility"] = self.visibility
        if self.annotations:
            result["annotations"] = list(self.annotations)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemberDeclaration":
        """Deserialize from JSON-compatible dict."""
        return cls(
            name=data["name"],
            owner=data["owner"],
            signature=data.get("signature", ""),
            return_type=data.get("return_type", "void"),
            parameter_types=tuple(data.get("parameter_types", ())),
            calls=tuple(data.get("calls", ())),
            line=data.get("line", 0),
            is_constructor=data.get("is_constructor", False),
            is_static=data.get("is_static", False),
            is_abstract=data.get("is_abstract", False),
            visibility=data.get("visibility", Visibility.PUBLIC),
            annotations=tuple(data.get("annotations", ())),
        )


@dataclass(frozen=True)
class TypeDeclaration:
    """A declared type (class, interface or enum) and everything it references.

    Field descriptors are raw ``"<Type> <name>"`` strings; only the leading
    token is used for dependency resolution.
    """

    name: str
    package: str = ""
    qualified_name: str = ""
    file_path: Optional[str] = None
    line: int = 0
    kind: str = TypeKind.CLASS
    is_abstract: bool = False
    super_type: Optional[str] = None
    interfaces: Tuple[str, ...] = ()
    members: Tuple[MemberDeclaration, ...] = ()
    fields: Tuple[str, ...] = ()
    annotations: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("TypeDeclaration requires a name")
        if self.kind not in (TypeKind.CLASS, TypeKind.INTERFACE, TypeKind.ENUM):
            raise ValueError(f"Unknown type kind '{self.kind}' for {self.name}")
        for attr in ("interfaces", "members", "fields", "annotations", "imports"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))
        if not self.qualified_name:
            qualified = f"{self.package}.{self.name}" if self.package else self.name
            object.__setattr__(self, "qualified_name", qualified)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "name": self.name,
            "package": self.package,
            "qualified_name": self.qualified_name,
            "kind": self.kind,
            "line": self.line,
        }
        if self.file_path is not None:
            result["file_path"] = self.file_path
        if self.is_abstract:
            result["is_abstract"] = True
        if self.super_type is not None:
            result["super_type"] = self.super_type
        if self.interfaces:
            result["interfaces"] = list(self.interfaces)
        if self.members:
            result["members"] = [m.to_dict() for m in self.members]
        if self.fields:
            result["fields"] = list(self.fields)
        if self.annotations:
            result["annotations"] = list(self.annotations)
        if self.imports:
            result["imports"] = list(self.imports)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TypeDeclaration":
        """Deserialize from JSON-compatible dict."""
        return cls(
            name=data["name"],
            package=data.get("package", ""),
            qualified_name=data.get("qualified_name", ""),
            file_path=data.get("file_path"),
            line=data.get("line", 0),
            kind=data.get("kind", TypeKind.CLASS),
            is_abstract=data.get("is_abstract", False),
            super_type=data.get("super_type"),
            interfaces=tuple(data.get("interfaces", ())),
            members=tuple(MemberDeclaration.from_dict(m) for m in data.get("members", ())),
            fields=tuple(data.get("fields", ())),
            annotations=tuple(data.get("annotations", ())),
            imports=tuple(data.get("imports", ())),
        )


@dataclass(frozen=True)
class GraphNode:
    """A vertex of the code graph.

    Ids are ``type:<qualifiedName>`` for declared types and
    ``method:<qualifiedType>.<signature>`` for members.
    """

    id: str
    name: str
    qualified_name: str
    kind: str
    file_path: Optional[str] = None
    line: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("GraphNode requires an id")
        if not self.name:
            raise ValueError(f"GraphNode {self.id} requires a name")


def make_edge_id(source: str, kind: str, target: str) -> str:
    """Derive the id of an edge from its endpoints and relation kind."""
    return f"{source}-{kind}-{target}"


@dataclass(frozen=True)
class GraphEdge:
    """A directed, typed relation between two graph nodes.

    When no id is given it is derived from source, kind and target, so
    structurally identical edges share an id and collapse in a CodeGraph.
    """

    source: str
    target: str
    kind: str
    id: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.source or not self.target:
            raise ValueError("GraphEdge requires both source and target")
        if self.kind not in EdgeKind.ALL:
            raise ValueError(f"Unknown edge kind '{self.kind}'")
        if not self.id:
            object.__setattr__(self, "id", make_edge_id(self.source, self.kind, self.target))


class CodeGraph:
    """Immutable graph of declared types, members and their relations.

    Nodes and edges keep their insertion order. A node or edge whose id was
    already seen is dropped, keeping the first occurrence.
    An edge whose source or target is not a node of the graph is dropped.

    Example:
        >>> graph = CodeGraph(nodes, edges)
        >>> graph.get_node("type:app.Service")
        >>> graph.subgraph({"type:app.Service", "type:app.ServiceImpl"})
    """

    def __init__(
        self,
        nodes: Iterable[GraphNode] = (),
        edges: Iterable[GraphEdge] = (),
    ) -> None:
        node_index: Dict[str, GraphNode] = {}
        for node in nodes:
            if node.id not in node_index:
                node_index[node.id] = node

        edge_ids = set()
        unique_edges: List[GraphEdge] = []
        outgoing: Dict[str, List[GraphEdge]] = {}
        incoming: Dict[str, List[GraphEdge]] = {}
        dangling = 0
        for edge in edges:
            if edge.source not in node_index or edge.target not in node_index:
                dangling += 1
                continue
            if edge.id in edge_ids:
                continue
            edge_ids.add(edge.id)
            unique_edges.append(edge)
            outgoing.setdefault(edge.source, []).append(edge)
            incoming.setdefault(edge.target, []).append(edge)
        if dangling:
            logger.debug(f"Dropped {dangling} edges with an endpoint outside the graph")

        self._node_index = node_index
        self._nodes: Tuple[GraphNode, ...] = tuple(node_index.values())
        self._edges: Tuple[GraphEdge, ...] = tuple(unique_edges)
        self._outgoing = {key: tuple(value) for key, value in outgoing.items()}
        self._incoming = {key: tuple(value) for key, value in incoming.items()}

    @classmethod
    def empty(cls) -> "CodeGraph":
        """Return a graph with no nodes and no edges."""
        return cls()

    @property
    def nodes(self) -> Tuple[GraphNode, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[GraphEdge, ...]:
        return self._edges

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return len(self._edges)

    def is_empty(self) -> bool:
        return not self._nodes

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Look up a node by id in O(1)."""
        return self._node_index.get(node_id)

    def node_ids(self) -> List[str]:
        return [node.id for node in self._nodes]

    def edge_ids(self) -> List[str]:
        return [edge.id for edge in self._edges]

    def nodes_by_kind(self, *kinds: str) -> List[GraphNode]:
        """Return nodes of the given kinds in insertion order."""
        return [node for node in self._nodes if node.kind in kinds]

    def edges_by_kind(self, *kinds: str) -> List[GraphEdge]:
        """Return edges of the given kinds in insertion order."""
        return [edge for edge in self._edges if edge.kind in kinds]

    def outgoing_edges(self, node_id: str) -> Tuple[GraphEdge, ...]:
        return self._outgoing.get(node_id, ())

    def incoming_edges(self, node_id: str) -> Tuple[GraphEdge, ...]:
        return self._incoming.get(node_id, ())

    def subgraph(self, node_ids: Iterable[str]) -> "CodeGraph":
        """Extract the subgraph induced by a set of node ids.

        Ids that are not in this graph are ignored. An edge is kept only when
        both of its endpoints survive.

        Args:
            node_ids: Ids of the nodes to keep.

        Returns:
            New CodeGraph; this graph is not modified.
        """
        keep = {node_id for node_id in node_ids if node_id in self._node_index}
        nodes = [node for node in self._nodes if node.id in keep]
        edges = [edge for edge in self._edges if edge.source in keep and edge.target in keep]
        return CodeGraph(nodes, edges)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"CodeGraph(nodes={len(self._nodes)}, edges={len(self._edges)})"


@dataclass
class AnalysisResult:
    """The outcome of one engine query.

    Attributes:
        command: Command name (e.g. "callgraph", "impact").
        target: User-supplied target, empty for whole-graph commands.
        graph: Result subgraph.
        analysis_time_ms: Wall-clock duration of the query that produced the graph.
        total_types_parsed: Number of type declarations in the analyzed codebase.
        total_members_parsed: Number of member declarations in the analyzed codebase.
        timestamp: UTC time the result was produced.
    """

    command: str
    target: str
    graph: CodeGraph
    analysis_time_ms: int = 0
    total_types_parsed: int = 0
    total_members_parsed: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
