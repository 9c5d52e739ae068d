# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""CodeMapEngine - facade over parsing, graph building and analysis.

Key Responsibilities:
- Parse a source tree (with the fingerprint cache) and build the code graph
- Hold the graph of the last analysis run, read-only
- Answer call-graph, dependency, impact and cycle queries as AnalysisResults
- Evaluate architecture rules against the graph

Every query raises AnalysisNotRunError until analyze() has completed.
"""

import dataclasses
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from codemap.analysis import (
    CallGraphAnalyzer,
    CircularDependencyDetector,
    DependencyAnalyzer,
    ImpactAnalyzer,
)
from codemap.config import Config
from codemap.fingerprint_cache import FingerprintCache
from codemap.graph_builder import GraphBuilder
from codemap.models import AnalysisResult, CodeGraph, TypeDeclaration
from codemap.parsers import PythonSourceParser
from codemap.query import GraphQuery
from codemap.rules import RuleEngine, Violation

logger = logging.getLogger(__name__)


class AnalysisNotRunError(RuntimeError):
    """Raised when the engine is queried before analyze() has run."""

    pass


class Command:
    """Command names used in AnalysisResults and on the command line."""

    CALL_GRAPH = "callgraph"
    INCOMING_CALLS = "incoming-calls"
    DEPENDENCIES = "dependencies"
    DEPENDENTS = "dependents"
    CIRCULAR_DEPS = "circular-deps"
    IMPACT = "impact"
    FULL_GRAPH = "fullgraph"


class CodeMapEngine:
    """Analysis engine for one codebase at a time.

    Usage:
        engine = CodeMapEngine(Config.for_project(root))
        engine.analyze(root)
        result = engine.get_call_graph("app.services.Controller.handle", depth=3)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        parser: Optional[PythonSourceParser] = None,
        builder: Optional[GraphBuilder] = None,
        cache: Optional[FingerprintCache] = None,
    ):
        """Initialize the engine.

        Args:
            config: Configuration. If None, loads .codemap.yml from the current directory.
            parser: Source parser. If None, creates one from the configuration.
            builder: Graph builder. If None, creates a default one.
            cache: Fingerprint cache. If None and caching is enabled, one is created
                per analyzed project, persisted to the configured cache file.
        """
        if config is None:
            config = Config()
        self.config = config

        self._owns_cache = cache is None and config.cache_enabled
        self.cache = cache

        if parser is None:
            parser = PythonSourceParser(
                cache=cache,
                max_file_lines=config.max_file_lines,
                workers=config.parse_workers,
                ignore_patterns=config.ignore_patterns,
            )
        self.parser = parser
        self.builder = builder or GraphBuilder()

        self._cache_root: Optional[Path] = None
        self._graph: Optional[CodeGraph] = None
        self._declarations: List[TypeDeclaration] = []
        self._source_root: Optional[Path] = None
        self.last_analysis_ms = 0

    @property
    def source_root(self) -> Optional[Path]:
        return self._source_root

    @property
    def declarations(self) -> List[TypeDeclaration]:
        return list(self._declarations)

    def is_analyzed(self) -> bool:
        return self._graph is not None

    def analyze(self, source_root: Union[str, Path]) -> CodeGraph:
        """Parse a source tree and build its code graph.

        The previous graph, if any, is discarded.

        Args:
            source_root: Root directory of the codebase.

        Returns:
            The new graph.

        Raises:
            NotADirectoryError: If source_root is not a directory.
        """
        root = Path(source_root).resolve()
        logger.info(f"Starting analysis of {root}")
        start_time = time.time()

        if self._owns_cache:
            self._bind_cache(root)

        declarations = self.parser.parse(root)
        graph = self.builder.build(declarations)

        self._declarations = list(declarations)
        self._graph = graph
        self._source_root = root
        self.last_analysis_ms = int((time.time() - start_time) * 1000)

        if self.cache is not None:
            self.cache.persist()

        logger.info(
            f"Analysis complete in {self.last_analysis_ms}ms: "
            f"{len(declarations)} types, {self._member_count()} members, "
            f"{graph.node_count()} nodes, {graph.edge_count()} edges"
        )
        return graph

    def get_graph(self) -> CodeGraph:
        """The full graph of the last analysis run."""
        return self._require_graph()

    def get_call_graph(self, target: str, depth: Optional[int] = None) -> AnalysisResult:
        """Members called by target, transitively, up to depth hops.

        Args:
            target: Member name, qualified name or any substring of one.
            depth: Maximum hops; None uses the configured default, negative is unlimited.
        """
        graph = self._require_graph()
        start_time = time.time()
        if depth is None:
            depth = self.config.default_depth
        result = CallGraphAnalyzer(graph).get_call_graph(target, depth)
        return self._build_result(Command.CALL_GRAPH, target, result, start_time)

    def get_incoming_calls(self, target: str) -> AnalysisResult:
        """All direct and transitive callers of a member."""
        graph = self._require_graph()
        start_time = time.time()
        result = CallGraphAnalyzer(graph).get_incoming_calls(target)
        return self._build_result(Command.INCOMING_CALLS, target, result, start_time)

    def get_class_dependencies(self, target: str) -> AnalysisResult:
        """Direct dependencies of a type."""
        graph = self._require_graph()
        start_time = time.time()
        result = DependencyAnalyzer(graph).get_class_dependencies(target)
        return self._build_result(Command.DEPENDENCIES, target, result, start_time)

    def get_dependents(self, target: str) -> AnalysisResult:
        """Types that depend on a type, directly or transitively."""
        graph = self._require_graph()
        start_time = time.time()
        result = DependencyAnalyzer(graph).get_dependents(target)
        return self._build_result(Command.DEPENDENTS, target, result, start_time)

    def detect_circular_dependencies(self) -> AnalysisResult:
        """Subgraph of all types that take part in a dependency cycle."""
        graph = self._require_graph()
        start_time = time.time()
        cycles = CircularDependencyDetector(graph).detect_circular_dependencies()
        cycle_node_ids = {node_id for cycle in cycles for node_id in cycle}
        result = self._build_result(
            Command.CIRCULAR_DEPS, "all", graph.subgraph(cycle_node_ids), start_time
        )
        logger.info(f"Found {len(cycles)} circular dependency cycles")
        return result

    def get_cycles(self) -> List[List[str]]:
        """Dependency cycles as lists of type node ids."""
        return CircularDependencyDetector(self._require_graph()).detect_circular_dependencies()

    def get_impact_analysis(self, target: str) -> AnalysisResult:
        """Everything transitively affected by a change to a type."""
        graph = self._require_graph()
        start_time = time.time()
        result = ImpactAnalyzer(graph).get_impact_analysis(target)
        return self._build_result(Command.IMPACT, target, result, start_time)

    def get_direct_impact_count(self, target: str) -> int:
        """Number of types directly depending on, extending or implementing target."""
        return ImpactAnalyzer(self._require_graph()).get_direct_impact_count(target)

    def get_full_graph(self) -> AnalysisResult:
        """The whole graph wrapped as a result."""
        graph = self._require_graph()
        return self._build_result(Command.FULL_GRAPH, "", graph, time.time())

    def check_rules(self, rule_engine: Optional[RuleEngine] = None) -> List[Violation]:
        """Evaluate architecture rules against the graph.

        Args:
            rule_engine: Rules to evaluate. If None, uses the defaults adjusted
                by the ``rules`` configuration section.
        """
        graph = self._require_graph()
        if rule_engine is None:
            rule_engine = RuleEngine.from_config(self.config.rules)
        return rule_engine.evaluate(graph)

    def filter_result(
        self,
        result: AnalysisResult,
        include_package: Optional[str] = None,
        exclude_package: Optional[str] = None,
    ) -> AnalysisResult:
        """Restrict a result graph to (or away from) a package prefix."""
        graph = result.graph
        if include_package:
            graph = GraphQuery(graph).filter_by_package(include_package)
        if exclude_package:
            graph = GraphQuery(graph).exclude_package(exclude_package)
        if graph is result.graph:
            return result
        return dataclasses.replace(result, graph=graph)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Fingerprint cache statistics, or an empty dict when caching is off."""
        if self.cache is None:
            return {}
        return self.cache.stats()

    def clear_cache(self) -> None:
        """Clear the fingerprint cache and forget the analyzed graph."""
        if self.cache is not None:
            self.cache.clear()
        self._graph = None
        self._declarations = []

    def _bind_cache(self, root: Path) -> None:
        """Create the fingerprint cache for a newly analyzed project."""
        if self.cache is not None and self._cache_root == root:
            return
        persist_path = root / self.config.cache_file if self.config.cache_file else None
        self.cache = FingerprintCache(persist_path=persist_path)
        self.parser.cache = self.cache
        self._cache_root = root

    def _require_graph(self) -> CodeGraph:
        if self._graph is None:
            raise AnalysisNotRunError("No project has been analyzed yet. Call analyze() first.")
        return self._graph

    def _member_count(self) -> int:
        return sum(len(decl.members) for decl in self._declarations)

    def _build_result(
        self, command: str, target: str, graph: CodeGraph, start_time: float
    ) -> AnalysisResult:
        return AnalysisResult(
            command=command,
            target=target,
            graph=graph,
            analysis_time_ms=int((time.time() - start_time) * 1000),
            total_types_parsed=len(self._declarations),
            total_members_parsed=self._member_count(),
        )
