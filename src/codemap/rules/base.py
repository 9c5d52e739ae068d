# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Base interface for architecture rule plugins.

A rule is a pure function of a finished CodeGraph: it inspects the graph
and reports violations, never modifying it. New rules can be added to a
RuleEngine without changing the graph engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from codemap.models import CodeGraph, GraphNode


class Severity:
    """Violation severities.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Violation:
    """A single rule finding attached to a graph node."""

    rule_name: str
    severity: str
    message: str
    node_id: str
    file_path: Optional[str] = None
    line_number: int = 0

    @classmethod
    def for_node(cls, rule_name: str, severity: str, message: str, node: GraphNode) -> "Violation":
        return cls(rule_name, severity, message, node.id, node.file_path, node.line)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "ruleName": self.rule_name,
            "severity": self.severity,
            "message": self.message,
            "nodeId": self.node_id,
        }
        if self.file_path is not None:
            result["filePath"] = self.file_path
        if self.line_number:
            result["lineNumber"] = self.line_number
        return result


class ArchitectureRule(ABC):
    """Abstract base class for architecture rules.

    Lifecycle:
    1. Rule is registered in a RuleEngine
    2. configure() is called with options from the config file, if any
    3. evaluate() is called with the analyzed graph
    """

    @abstractmethod
    def name(self) -> str:
        """Return the unique rule name, e.g. "god-class"."""
        pass

    @abstractmethod
    def description(self) -> str:
        """Return a one-line description of what the rule checks."""
        pass

    @abstractmethod
    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        """Check the graph and return all violations found.

        Args:
            graph: Complete analyzed graph.

        Returns:
            List of violations. Empty list if the graph conforms.
        """
        pass

    def configure(self, options: Mapping[str, Any]) -> None:
        """Apply rule options. Rules without options ignore them.

        Args:
            options: Option name to value.

        Raises:
            ValueError: If an option has an invalid value.
        """
        pass


def int_option(options: Mapping[str, Any], key: str, default: int) -> int:
    """Read a non-negative integer option, rejecting anything else."""
    if key not in options:
        return default
    value = options[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Option '{key}' must be a non-negative integer, got {value!r}")
    return value
