"""Heuristic pattern passes over a populated graph.

Each pass scans the graph once and proposes :class:`PatternMatch` objects.
:meth:`PatternDetector.discover` materialises every proposal as a concept
node with ``IMPLEMENTS`` edges from the matched nodes, which makes the
heuristics queryable like any other graph structure.

The confidence values below are tuning constants, not derived quantities.
"""

from typing import List, Dict, Optional

from ..config import settings
from ..errors import MissingNodeError
from ..types import Node, NodeType, RelationshipType, PatternMatch
from ..utils.identity import node_id
from ..utils.logger import app_logger
from .similarity import naming_style

SINGLETON_CONFIDENCE = 0.8
FACTORY_CONFIDENCE = 0.7
OBSERVER_CONFIDENCE = 0.8
MVC_CONFIDENCE = 0.9
REPOSITORY_CONFIDENCE = 0.8
SERVICE_CONFIDENCE = 0.7
NAMING_CONFIDENCE = 0.6
DEPENDENCY_CONFIDENCE = 0.8

SINGLETON_ACCESSORS = {"getInstance", "get_instance"}
FACTORY_METHOD_PREFIX = "create"
OBSERVER_METHODS = {"subscribe", "unsubscribe", "notify", "emit"}
REPOSITORY_METHODS = {"save", "find", "delete", "findById"}


def method_names(node: Node) -> List[str]:
    """Names of the methods recorded on a node, whether given as strings or mappings."""
    names = []
    for method in node.properties.get("methods") or []:
        if isinstance(method, str):
            names.append(method)
        elif isinstance(method, dict) and method.get("name"):
            names.append(str(method["name"]))
    return names


def _single(name: str, description: str, confidence: float,
            related: List[str], category: str) -> List[PatternMatch]:
    if not related:
        return []
    return [PatternMatch(name, description, confidence, related, category)]


class PatternDetector:
    """Runs design, architectural, naming and dependency passes."""

    def __init__(self, graph, heavy_usage_threshold: Optional[int] = None):
        self.graph = graph
        self.heavy_usage_threshold = (
            settings.heavy_usage_threshold if heavy_usage_threshold is None else heavy_usage_threshold
        )
        self.logger = app_logger.bind(component="pattern_detector")

    def discover(self) -> Dict[str, List[PatternMatch]]:
        """Detect every pattern, then add the results to the graph."""
        self.logger.info("Discovering patterns and relationships...")

        # Proposals are computed before any concept node is added so that
        # no pass sees the output of another.
        patterns = {
            "design": self.detect_design_patterns(),
            "architectural": self.detect_architectural_patterns(),
            "naming": self.detect_naming_patterns(),
            "dependency": self.detect_dependency_patterns(),
        }

        for pattern_list in patterns.values():
            for pattern in pattern_list:
                self.materialize(pattern)

        total = sum(len(p) for p in patterns.values())
        self.logger.info(f"Discovered {total} patterns")
        return patterns

    def materialize(self, pattern: PatternMatch) -> Node:
        """Add a concept node for ``pattern`` and link its related nodes to it."""
        concept = self.graph.add_node(node_id(NodeType.CONCEPT, pattern.name), {
            "type": NodeType.CONCEPT,
            "name": pattern.name,
            "properties": {
                "description": pattern.description,
                "confidence": pattern.confidence,
                "instances": len(pattern.related_nodes),
                "category": pattern.category,
            },
        })
        for related_id in pattern.related_nodes:
            try:
                self.graph.add_relationship(related_id, concept.id, RelationshipType.IMPLEMENTS, {
                    "confidence": pattern.confidence,
                })
            except MissingNodeError as e:
                self.logger.warning(f"Skipping {pattern.name} link: {e}")
        return concept

    # Design patterns

    def detect_design_patterns(self) -> List[PatternMatch]:
        return [
            *self.detect_singleton_pattern(),
            *self.detect_factory_pattern(),
            *self.detect_observer_pattern(),
        ]

    def _code_nodes(self) -> List[Node]:
        # Concepts are pattern output, never pattern input
        return [node for node in self.graph.nodes() if node.type != NodeType.CONCEPT]

    def _classes(self) -> List[Node]:
        return [node for node in self.graph.nodes() if node.type == NodeType.CLASS]

    def detect_singleton_pattern(self) -> List[PatternMatch]:
        related = [
            node.id for node in self._classes()
            if "singleton" in node.name.lower()
            or SINGLETON_ACCESSORS.intersection(method_names(node))
        ]
        return _single("singleton", "Singleton Design Pattern", SINGLETON_CONFIDENCE, related, "design")

    def detect_factory_pattern(self) -> List[PatternMatch]:
        related = [
            node.id for node in self._classes()
            if "factory" in node.name.lower()
            or any(m.startswith(FACTORY_METHOD_PREFIX) for m in method_names(node))
        ]
        return _single("factory", "Factory Design Pattern", FACTORY_CONFIDENCE, related, "design")

    def detect_observer_pattern(self) -> List[PatternMatch]:
        related = [
            node.id for node in self._classes()
            if OBSERVER_METHODS.intersection(method_names(node))
        ]
        return _single("observer", "Observer Design Pattern", OBSERVER_CONFIDENCE, related, "design")

    # Architectural patterns

    def detect_architectural_patterns(self) -> List[PatternMatch]:
        return [
            *self.detect_mvc_pattern(),
            *self.detect_repository_pattern(),
            *self.detect_service_pattern(),
        ]

    def detect_mvc_pattern(self) -> List[PatternMatch]:
        controllers, models, views = [], [], []
        for node in self._code_nodes():
            name = node.name.lower()
            if "controller" in name:
                controllers.append(node.id)
            if "model" in name:
                models.append(node.id)
            if "view" in name:
                views.append(node.id)

        if not (controllers and models):
            return []
        related = list(dict.fromkeys(controllers + models + views))
        return [PatternMatch("mvc", "Model-View-Controller Architecture", MVC_CONFIDENCE, related, "architectural")]

    def detect_repository_pattern(self) -> List[PatternMatch]:
        related = [
            node.id for node in self._code_nodes()
            if "repository" in node.name.lower()
            or REPOSITORY_METHODS.intersection(method_names(node))
        ]
        return _single("repository", "Repository Pattern", REPOSITORY_CONFIDENCE, related, "architectural")

    def detect_service_pattern(self) -> List[PatternMatch]:
        related = [node.id for node in self._code_nodes() if "service" in node.name.lower()]
        return _single("service", "Service Pattern", SERVICE_CONFIDENCE, related, "architectural")

    # Naming patterns

    def detect_naming_patterns(self) -> List[PatternMatch]:
        groups: Dict[str, List[str]] = {}
        for node in self._code_nodes():
            groups.setdefault(naming_style(node.name), []).append(node.id)

        return [
            PatternMatch(f"naming_{style}", f"{style} naming convention", NAMING_CONFIDENCE, ids, "naming")
            for style, ids in groups.items()
        ]

    # Dependency patterns

    def detect_dependency_patterns(self) -> List[PatternMatch]:
        dependents: Dict[str, List[str]] = {}
        for edge in self.graph.edges():
            if edge.type != RelationshipType.DEPENDS_ON:
                continue
            target = self.graph.get_node(edge.to_id)
            package = target.properties.get("package") if target else None
            if not package:
                continue
            files = dependents.setdefault(package, [])
            if edge.from_id not in files:
                files.append(edge.from_id)

        return [
            PatternMatch(
                f"dependency_{package}",
                f"Heavy usage of {package}",
                DEPENDENCY_CONFIDENCE,
                files,
                "dependency",
            )
            for package, files in dependents.items()
            if len(files) >= self.heavy_usage_threshold
        ]
