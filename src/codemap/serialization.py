# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""JSON wire format for graphs and analysis results.

Result shape:
    {"command", "target", "timestamp", "analysisTimeMs",
     "stats": {"totalClassesParsed", "totalMethodsParsed", "graphNodes", "graphEdges"},
     "graph": {"nodes": [...], "edges": [...]}}

Optional node and edge fields (filePath, lineNumber, metadata) are omitted
when empty or zero, never emitted as null.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from codemap.models import AnalysisResult, CodeGraph, GraphEdge, GraphNode
from codemap.rules.base import Violation
from codemap.rules.registry import RuleEngine


def format_timestamp(timestamp: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, e.g. 2025-01-01T12:00:00.123Z."""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    return timestamp.isoformat(timespec="milliseconds") + "Z"


def node_to_dict(node: GraphNode) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "qualifiedName": node.qualified_name,
        "type": node.kind,
    }
    if node.file_path is not None:
        result["filePath"] = node.file_path
    if node.line > 0:
        result["lineNumber"] = node.line
    if node.metadata:
        result["metadata"] = dict(node.metadata)
    return result


def edge_to_dict(edge: GraphEdge) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "type": edge.kind,
    }
    if edge.metadata:
        result["metadata"] = dict(edge.metadata)
    return result


def graph_to_dict(graph: CodeGraph) -> Dict[str, Any]:
    """Serialize a graph to its JSON-compatible dict."""
    return {
        "nodes": [node_to_dict(node) for node in graph.nodes],
        "edges": [edge_to_dict(edge) for edge in graph.edges],
    }


def result_to_dict(result: AnalysisResult) -> Dict[str, Any]:
    """Serialize an analysis result to its JSON-compatible dict."""
    return {
        "command": result.command,
        "target": result.target,
        "timestamp": format_timestamp(result.timestamp),
        "analysisTimeMs": result.analysis_time_ms,
        "stats": {
            "totalClassesParsed": result.total_types_parsed,
            "totalMethodsParsed": result.total_members_parsed,
            "graphNodes": result.graph.node_count(),
            "graphEdges": result.graph.edge_count(),
        },
        "graph": graph_to_dict(result.graph),
    }


def violations_to_dict(
    violations: List[Violation], timestamp: Optional[datetime] = None
) -> Dict[str, Any]:
    """Serialize rule violations with a per-severity summary."""
    return {
        "command": "check",
        "timestamp": format_timestamp(timestamp or datetime.now(timezone.utc)),
        "summary": RuleEngine.summary(violations),
        "violations": [violation.to_dict() for violation in violations],
    }


def graph_from_dict(data: Dict[str, Any]) -> CodeGraph:
    """Rebuild a CodeGraph from its wire format."""
    nodes = [
        GraphNode(
            id=item["id"],
            name=item["name"],
            qualified_name=item.get("qualifiedName", item["name"]),
            kind=item["type"],
            file_path=item.get("filePath"),
            line=item.get("lineNumber", 0),
            metadata=dict(item.get("metadata", {})),
        )
        for item in data.get("nodes", [])
    ]
    edges = [
        GraphEdge(
            id=item["id"],
            source=item["source"],
            target=item["target"],
            kind=item["type"],
            metadata=dict(item.get("metadata", {})),
        )
        for item in data.get("edges", [])
    ]
    return CodeGraph(nodes, edges)


def to_json(payload: Dict[str, Any], indent: Optional[int] = 2) -> str:
    return json.dumps(payload, indent=indent)
