# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rule enforcing a layered architecture by package naming."""

from typing import Any, List, Mapping, Sequence

from codemap.models import CodeGraph, EdgeKind
from codemap.rules.base import ArchitectureRule, Severity, Violation


class LayerViolationRule(ArchitectureRule):
    """Flags DEPENDENCY edges that point from a lower layer to a higher one.

    A type's layer is the first entry of layer_order contained in its
    lower-cased qualified name. Types outside every layer are not checked.

    Options:
        layer_order: Layer names from top to bottom
            (default: controller, service, repository, model).
    """

    DEFAULT_LAYER_ORDER = ("controller", "service", "repository", "model")

    def __init__(self, layer_order: Sequence[str] = DEFAULT_LAYER_ORDER):
        self.layer_order = [layer.lower() for layer in layer_order]

    def name(self) -> str:
        return "layer-violation"

    def description(self) -> str:
        return "Detects violations of layered architecture conventions"

    def configure(self, options: Mapping[str, Any]) -> None:
        if "layer_order" not in options:
            return
        layer_order = options["layer_order"]
        if not isinstance(layer_order, list) or not all(isinstance(x, str) for x in layer_order):
            raise ValueError(f"Option 'layer_order' must be a list of strings, got {layer_order!r}")
        self.layer_order = [layer.lower() for layer in layer_order]

    def layer_index(self, qualified_name: str) -> int:
        lower = qualified_name.lower()
        for index, layer in enumerate(self.layer_order):
            if layer in lower:
                return index
        return -1

    def evaluate(self, graph: CodeGraph) -> List[Violation]:
        violations: List[Violation] = []
        for edge in graph.edges_by_kind(EdgeKind.DEPENDENCY):
            source = graph.get_node(edge.source)
            target = graph.get_node(edge.target)
            if source is None or target is None:
                continue
            source_layer = self.layer_index(source.qualified_name)
            target_layer = self.layer_index(target.qualified_name)
            if source_layer >= 0 and target_layer >= 0 and source_layer > target_layer:
                violations.append(
                    Violation.for_node(
                        self.name(),
                        Severity.ERROR,
                        f"Layer violation: '{source.name}' (layer: "
                        f"{self.layer_order[source_layer]}) depends on '{target.name}' "
                        f"(layer: {self.layer_order[target_layer]})",
                        source,
                    )
                )
        return violations
