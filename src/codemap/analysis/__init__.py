# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structural analyses over a built code graph.

Components:
- CallGraphAnalyzer: Callees and transitive callers of a member
- DependencyAnalyzer: Direct dependencies and transitive dependents of a type
- ImpactAnalyzer: Everything affected by a change to a type
- CircularDependencyDetector: Tarjan SCC cycle detection over types

Each analyzer resolves a human-supplied name to a node id and returns a
subgraph of the analyzed graph. Unresolvable names yield an empty graph.
"""

from codemap.analysis.call_graph import CallGraphAnalyzer
from codemap.analysis.cycles import CircularDependencyDetector
from codemap.analysis.dependency import DependencyAnalyzer
from codemap.analysis.impact import ImpactAnalyzer
from codemap.analysis.targets import resolve_member_target, resolve_type_target

__all__ = [
    "CallGraphAnalyzer",
    "CircularDependencyDetector",
    "DependencyAnalyzer",
    "ImpactAnalyzer",
    "resolve_member_target",
    "resolve_type_target",
]
