# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for codemap.

This module exposes the engine queries as MCP tools with no analysis logic
of its own. All analysis is delegated to CodeMapEngine; tools return the
same JSON payloads the command line prints.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from codemap.config import Config
from codemap.engine import CodeMapEngine
from codemap.logging_setup import setup_logging
from codemap.models import AnalysisResult
from codemap.serialization import graph_to_dict, result_to_dict, violations_to_dict

logger = logging.getLogger(__name__)

SERVER_NAME = "codemap"


class CodeMapMCPServer:
    """MCP Protocol Layer for codemap.

    Responsibilities:
    - Initialize MCP server and register tools
    - Translate tool invocations into engine queries
    - Format engine results as wire-format dicts

    When a project root is given, the first query analyzes it automatically;
    otherwise clients call analyze_project first.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        engine: Optional[CodeMapEngine] = None,
        project_root: Optional[Path] = None,
    ):
        """Initialize MCP server.

        Args:
            config: Configuration object. If None, loads from the project root
                (or the current directory).
            engine: Engine instance. If None, creates one from the configuration.
            project_root: Codebase analyzed on first use. If None, clients must
                call analyze_project.
        """
        if config is None:
            config = Config.for_project(project_root) if project_root else Config()
        self.config = config
        self.engine = engine or CodeMapEngine(config)
        self.project_root = project_root

        self.mcp = FastMCP(name=SERVER_NAME)
        self._register_tools()

        logger.info("CodeMapMCPServer initialized")

    def _ensure_analyzed(self) -> None:
        if not self.engine.is_analyzed() and self.project_root is not None:
            self.engine.analyze(self.project_root)

    def _result(self, result: AnalysisResult) -> Dict[str, Any]:
        return result_to_dict(result)

    def _register_tools(self) -> None:
        """Register MCP tools with the server.

        Registers:
        - analyze_project: Parse a codebase and build its graph
        - call_graph / incoming_calls: Callees and callers of a member
        - class_dependencies / dependents: Type dependency queries
        - impact_analysis: Everything affected by changing a type
        - circular_dependencies: Dependency cycles between types
        - full_graph: The complete graph
        - check_rules: Architecture rule violations
        """

        @self.mcp.tool()
        async def analyze_project(
            project_path: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Parse a Python codebase and build its structural graph.

            Args:
                project_path: Root directory of the codebase
                ctx: MCP context for logging and progress

            Returns:
                Dictionary with project, types, members, nodes, edges and analysisTimeMs.
            """
            await ctx.info(f"Analyzing project: {project_path}")
            try:
                graph = self.engine.analyze(project_path)
            except Exception as e:
                await ctx.error(f"Error analyzing {project_path}: {e}")
                raise
            self.project_root = Path(project_path)
            summary = {
                "project": str(self.engine.source_root),
                "types": len(self.engine.declarations),
                "members": sum(len(d.members) for d in self.engine.declarations),
                "nodes": graph.node_count(),
                "edges": graph.edge_count(),
                "analysisTimeMs": self.engine.last_analysis_ms,
            }
            await ctx.info(f"Graph built: {summary['nodes']} nodes, {summary['edges']} edges")
            return summary

        @self.mcp.tool()
        async def call_graph(
            target: str,
            ctx: Context[ServerSession, None],
            depth: Optional[int] = None,
        ) -> Dict[str, Any]:
            """Members called by a method, transitively, up to a depth.

            Args:
                target: Method name, qualified name or any part of one
                ctx: MCP context for logging and progress
                depth: Maximum call depth, -1 for unlimited (default from configuration)
            """
            await ctx.info(f"Call graph for {target}")
            try:
                self._ensure_analyzed()
                return self._result(self.engine.get_call_graph(target, depth))
            except Exception as e:
                await ctx.error(f"Error building call graph for {target}: {e}")
                raise

        @self.mcp.tool()
        async def incoming_calls(
            target: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """All direct and transitive callers of a method."""
            await ctx.info(f"Incoming calls for {target}")
            try:
                self._ensure_analyzed()
                return self._result(self.engine.get_incoming_calls(target))
            except Exception as e:
                await ctx.error(f"Error finding callers of {target}: {e}")
                raise

        @self.mcp.tool()
        async def class_dependencies(
            target: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Types a class depends on directly (fields, imports, bases)."""
            await ctx.info(f"Dependencies of {target}")
            try:
                self._ensure_analyzed()
                return self._result(self.engine.get_class_dependencies(target))
            except Exception as e:
                await ctx.error(f"Error finding dependencies of {target}: {e}")
                raise

        @self.mcp.tool()
        async def dependents(
            target: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Types that depend on a class, directly or transitively."""
            await ctx.info(f"Dependents of {target}")
            try:
                self._ensure_analyzed()
                return self._result(self.engine.get_dependents(target))
            except Exception as e:
                await ctx.error(f"Error finding dependents of {target}: {e}")
                raise

        @self.mcp.tool()
        async def impact_analysis(
            target: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Everything transitively affected by changing a class.

            The result also carries directImpactCount, the number of types
            directly depending on, extending or implementing the target.
            """
            await ctx.info(f"Impact analysis for {target}")
            try:
                self._ensure_analyzed()
                response = self._result(self.engine.get_impact_analysis(target))
                response["directImpactCount"] = self.engine.get_direct_impact_count(target)
                return response
            except Exception as e:
                await ctx.error(f"Error analyzing impact of {target}: {e}")
                raise

        @self.mcp.tool()
        async def circular_dependencies(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Types taking part in dependency cycles, with the cycles themselves."""
            await ctx.info("Detecting circular dependencies")
            try:
                self._ensure_analyzed()
                response = self._result(self.engine.detect_circular_dependencies())
                response["cycles"] = self.engine.get_cycles()
                await ctx.info(f"Found {len(response['cycles'])} cycles")
                return response
            except Exception as e:
                await ctx.error(f"Error detecting circular dependencies: {e}")
                raise

        @self.mcp.tool()
        async def full_graph(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """The complete structural graph of the analyzed codebase."""
            await ctx.info("Exporting full graph")
            try:
                self._ensure_analyzed()
                return graph_to_dict(self.engine.get_graph())
            except Exception as e:
                await ctx.error(f"Error exporting graph: {e}")
                raise

        @self.mcp.tool()
        async def check_rules(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Architecture rule violations (cycles, god classes, deep inheritance, ...)."""
            await ctx.info("Checking architecture rules")
            try:
                self._ensure_analyzed()
                return violations_to_dict(self.engine.check_rules())
            except Exception as e:
                await ctx.error(f"Error checking rules: {e}")
                raise

        logger.info(
            "MCP tools registered: analyze_project, call_graph, incoming_calls, "
            "class_dependencies, dependents, impact_analysis, circular_dependencies, "
            "full_graph, check_rules"
        )

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: Transport type to use. Options:
                - "stdio": Standard input/output (default)
                - "streamable-http": HTTP transport
                - "sse": Server-sent events transport
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="codemap MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=None,
        help="Codebase analyzed on first query. Default: none (call analyze_project)",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    return parser.parse_args(argv)


def main() -> None:
    """Main entry point for the MCP server."""
    args = parse_args()

    setup_logging(log_level=logging.INFO)

    server = CodeMapMCPServer(project_root=args.project)
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
