"""
Code relationship knowledge graph: store, ingestion, pattern detection and queries.
"""
from .knowledge_graph import KnowledgeGraph
from .ingestion import GraphIngestor
from .pattern_detector import PatternDetector
from .query_engine import QueryEngine
from .similarity import SimilarityScorer

__all__ = [
    "KnowledgeGraph",
    "GraphIngestor",
    "PatternDetector",
    "QueryEngine",
    "SimilarityScorer",
]
