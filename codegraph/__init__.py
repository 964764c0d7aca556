"""
codegraph: an in-memory knowledge graph of code entities and their relationships.

Typical use::

    from codegraph import KnowledgeGraph, QueryEngine

    graph = KnowledgeGraph()
    graph.build_from_directory("path/to/project")
    engine = QueryEngine(graph)
    engine.query({"type": "findPatterns", "filters": {"pattern": "repository"}})
"""

__version__ = "0.1.0"

from .errors import KnowledgeGraphError, MissingNodeError, InvalidTypeError
from .graph import KnowledgeGraph, GraphIngestor, PatternDetector, QueryEngine, SimilarityScorer
from .types import Node, Edge, NodeType, RelationshipType, QueryType, QueryRequest

__all__ = [
    "KnowledgeGraph",
    "GraphIngestor",
    "PatternDetector",
    "QueryEngine",
    "SimilarityScorer",
    "KnowledgeGraphError",
    "MissingNodeError",
    "InvalidTypeError",
    "Node",
    "Edge",
    "NodeType",
    "RelationshipType",
    "QueryType",
    "QueryRequest",
]
