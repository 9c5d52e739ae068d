# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Architecture rules evaluated over a finished code graph.

Components:
- ArchitectureRule: Abstract base class for rule plugins
- Violation / Severity: Rule findings
- RuleEngine: Registry that evaluates rules with error isolation
- CircularDependencyRule, GodClassRule, DeepInheritanceRule, UnusedClassRule,
  LayerViolationRule: Built-in rules
"""

from codemap.rules.base import ArchitectureRule, Severity, Violation
from codemap.rules.circular_dependency import CircularDependencyRule
from codemap.rules.deep_inheritance import DeepInheritanceRule
from codemap.rules.god_class import GodClassRule
from codemap.rules.layer_violation import LayerViolationRule
from codemap.rules.registry import RuleEngine
from codemap.rules.unused_class import UnusedClassRule

__all__ = [
    "ArchitectureRule",
    "CircularDependencyRule",
    "DeepInheritanceRule",
    "GodClassRule",
    "LayerViolationRule",
    "RuleEngine",
    "Severity",
    "UnusedClassRule",
    "Violation",
]
