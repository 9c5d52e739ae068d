# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""codemap: structural code graph engine for Python codebases."""

from .analysis import (
    CallGraphAnalyzer,
    CircularDependencyDetector,
    DependencyAnalyzer,
    ImpactAnalyzer,
)
from .config import Config, ConfigurationError
from .engine import AnalysisNotRunError, CodeMapEngine, Command
from .fingerprint_cache import FingerprintCache
from .graph_builder import GraphBuilder, resolve_member_id, resolve_type_id
from .models import (
    AnalysisResult,
    CodeGraph,
    EdgeKind,
    GraphEdge,
    GraphNode,
    MemberDeclaration,
    NodeKind,
    TypeDeclaration,
    TypeKind,
    Visibility,
)
from .parsers import PythonSourceParser
from .query import Direction, GraphQuery
from .rules import ArchitectureRule, RuleEngine, Severity, Violation

__version__ = "0.1.0"

__all__ = [
    "AnalysisNotRunError",
    "AnalysisResult",
    "ArchitectureRule",
    "CallGraphAnalyzer",
    "CircularDependencyDetector",
    "CodeGraph",
    "CodeMapEngine",
    "Command",
    "Config",
    "ConfigurationError",
    "DependencyAnalyzer",
    "Direction",
    "EdgeKind",
    "FingerprintCache",
    "GraphBuilder",
    "GraphEdge",
    "GraphNode",
    "GraphQuery",
    "ImpactAnalyzer",
    "MemberDeclaration",
    "NodeKind",
    "PythonSourceParser",
    "RuleEngine",
    "Severity",
    "TypeDeclaration",
    "TypeKind",
    "Violation",
    "Visibility",
    "resolve_member_id",
    "resolve_type_id",
]

# Conditional import for MCP server (requires the mcp package)
try:
    from .mcp_server import CodeMapMCPServer

    __all__.append("CodeMapMCPServer")
except ImportError:
    # MCP package not available
    pass
