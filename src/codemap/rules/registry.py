# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Registry and evaluator for architecture rules.

RuleEngine holds an ordered set of ArchitectureRule plugins. The default
set is circular-dependency, god-class, deep-inheritance and unused-class;
layer-violation is opt-in because it depends on package naming conventions.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from codemap.models import CodeGraph
from codemap.rules.base import ArchitectureRule, Violation
from codemap.rules.circular_dependency import CircularDependencyRule
from codemap.rules.deep_inheritance import DeepInheritanceRule
from codemap.rules.god_class import GodClassRule
from codemap.rules.layer_violation import LayerViolationRule
from codemap.rules.unused_class import UnusedClassRule

logger = logging.getLogger(__name__)

# Rules that can be enabled by name from configuration
OPTIONAL_RULES = {"layer-violation": LayerViolationRule}


class RuleEngine:
    """Evaluates registered architecture rules against a graph.

    A rule that raises during evaluation is logged and skipped; the other
    rules still run.

    Thread Safety:
    - NOT thread-safe: Register and configure rules before evaluating
    """

    def __init__(self, register_defaults: bool = True) -> None:
        """Initialize the rule engine.

        Args:
            register_defaults: Whether to register the default rule set.
        """
        self._rules: List[ArchitectureRule] = []
        if register_defaults:
            self.add_rule(CircularDependencyRule())
            self.add_rule(GodClassRule())
            self.add_rule(DeepInheritanceRule())
            self.add_rule(UnusedClassRule())

    @classmethod
    def from_config(cls, rules_config: Mapping[str, Any]) -> "RuleEngine":
        """Build an engine from the ``rules`` section of the configuration.

        Each key is a rule name mapped to its options. ``enabled: false``
        removes a default rule; naming an optional rule adds it.

        Args:
            rules_config: Rule name to option mapping.

        Returns:
            Configured RuleEngine.
        """
        engine = cls()
        for rule_name, options in rules_config.items():
            options = dict(options or {})
            enabled = options.pop("enabled", True)
            if not enabled:
                engine.remove_rule(rule_name)
                continue
            if engine.get_rule(rule_name) is None and rule_name in OPTIONAL_RULES:
                engine.add_rule(OPTIONAL_RULES[rule_name]())
            try:
                engine.configure_rule(rule_name, options)
            except ValueError as e:
                logger.warning(f"Invalid options for rule '{rule_name}': {e}, using defaults")
        return engine

    def add_rule(self, rule: ArchitectureRule) -> None:
        """Register a rule.

        Raises:
            TypeError: If rule is not an ArchitectureRule instance.
            ValueError: If a rule with the same name is already registered.
        """
        if not isinstance(rule, ArchitectureRule):
            raise TypeError(f"Rule must be an ArchitectureRule instance, got {type(rule)}")
        if self.get_rule(rule.name()) is not None:
            raise ValueError(f"Rule '{rule.name()}' is already registered")
        self._rules.append(rule)
        logger.debug(f"Registered rule '{rule.name()}'")

    def remove_rule(self, rule_name: str) -> None:
        self._rules = [rule for rule in self._rules if rule.name() != rule_name]

    def get_rule(self, rule_name: str) -> Optional[ArchitectureRule]:
        for rule in self._rules:
            if rule.name() == rule_name:
                return rule
        return None

    def configure_rule(self, rule_name: str, options: Mapping[str, Any]) -> None:
        """Pass options to a registered rule; unknown rules are logged and ignored."""
        rule = self.get_rule(rule_name)
        if rule is None:
            logger.warning(f"Rule not found: {rule_name}")
            return
        rule.configure(options)

    def get_rules(self) -> List[ArchitectureRule]:
        return list(self._rules)

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        """Run every registered rule against the graph.

        Returns:
            Violations of all rules, in rule registration order.
        """
        all_violations: List[Violation] = []
        for rule in self._rules:
            try:
                violations = rule.evaluate(graph)
            except Exception as e:
                logger.error(f"Error evaluating rule '{rule.name()}': {e}", exc_info=True)
                continue
            all_violations.extend(violations)
            logger.info(f"Rule '{rule.name()}': {len(violations)} violations")
        return all_violations

    @staticmethod
    def summary(violations: List[Violation]) -> Dict[str, int]:
        """Count violations per severity."""
        counts: Dict[str, int] = {}
        for violation in violations:
            counts[violation.severity] = counts.get(violation.severity, 0) + 1
        return counts
