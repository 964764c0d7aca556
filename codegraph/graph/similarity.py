import re
from typing import Dict, Any, Set

from ..types import Node

NAME_WEIGHT = 0.4
PROPERTIES_WEIGHT = 0.3
CONNECTIONS_WEIGHT = 0.3

NAMING_STYLES = [
    ("PascalCase", re.compile(r"^[A-Z][a-zA-Z0-9]*$")),
    ("camelCase", re.compile(r"^[a-z][a-zA-Z0-9]*$")),
    ("snake_case", re.compile(r"^[a-z][a-z0-9_]*$")),
    ("CONSTANT_CASE", re.compile(r"^[A-Z][A-Z0-9_]*$")),
    ("kebab-case", re.compile(r"^[a-z][a-z0-9-]*$")),
]


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """``1 - distance / longest length``; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / longest


def properties_similarity(props_a: Dict[str, Any], props_b: Dict[str, Any]) -> float:
    keys_a, keys_b = set(props_a or {}), set(props_b or {})
    if not keys_a and not keys_b:
        return 1.0
    common = keys_a & keys_b
    if not common:
        return 0.0
    return len(common) / max(len(keys_a), len(keys_b))


def naming_style(name: str) -> str:
    """Classify a name into one of the known naming conventions."""
    for style, pattern in NAMING_STYLES:
        if pattern.match(name):
            return style
    return "mixed"


class SimilarityScorer:
    """Composite node similarity over names, property keys and edge types."""

    def __init__(self, graph):
        self.graph = graph

    def connection_types(self, node: Node) -> Set[str]:
        types = set()
        for eid in node.connections:
            edge = self.graph.get_edge(eid)
            if edge is not None:
                types.add(edge.type.value)
        return types

    def connection_similarity(self, node_a: Node, node_b: Node) -> float:
        types_a = self.connection_types(node_a)
        types_b = self.connection_types(node_b)
        return len(types_a & types_b) / max(len(types_a), len(types_b), 1)

    def similarity(self, node_a: Node, node_b: Node) -> float:
        """Score in ``[0, 1]``; nodes of different types score 0."""
        if node_a.type != node_b.type:
            return 0.0
        return (
            NAME_WEIGHT * string_similarity(node_a.name, node_b.name)
            + PROPERTIES_WEIGHT * properties_similarity(node_a.properties, node_b.properties)
            + CONNECTIONS_WEIGHT * self.connection_similarity(node_a, node_b)
        )
