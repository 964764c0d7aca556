from typing import List, Dict, Any, Optional, Set
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def _now() -> str:
    return datetime.now().isoformat()


class NodeType(str, Enum):
    """Kinds of entity stored in the knowledge graph."""
    FILE = "file"
    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    CONCEPT = "concept"
    DEPENDENCY = "dependency"
    TECHNOLOGY = "technology"
    PATTERN = "pattern"


class RelationshipType(str, Enum):
    """Kinds of directed relationship between two nodes."""
    DEPENDS_ON = "DEPENDS_ON"
    SIMILAR_TO = "SIMILAR_TO"
    IMPLEMENTS = "IMPLEMENTS"
    USES = "USES"
    PART_OF = "PART_OF"
    CALLS = "CALLS"
    IMPORTS = "IMPORTS"


class QueryType(str, Enum):
    """Query dispatch tags understood by the query engine."""
    FIND_SIMILAR = "findSimilar"
    FIND_DEPENDENCIES = "findDependencies"
    FIND_USAGE = "findUsage"
    FIND_PATTERNS = "findPatterns"
    PATH_BETWEEN = "pathBetween"
    SEARCH = "search"


class FileType(Enum):
    """File type enumeration."""
    CODE = "code"
    DOCUMENTATION = "documentation"
    CONFIGURATION = "configuration"
    MARKUP = "markup"
    UNKNOWN = "unknown"


@dataclass
class CodeFile:
    """Represents a source file discovered by the scanner."""
    path: str
    absolute_path: str
    file_type: FileType
    language: Optional[str] = None
    size: int = 0
    last_modified: float = 0.0
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "absolute_path": self.absolute_path,
            "file_type": self.file_type.value,
            "language": self.language,
            "size": self.size,
            "last_modified": self.last_modified,
        }


@dataclass
class AnalysisRecord:
    """Structural facts extracted from one file, the ingestion input."""
    path: str
    language: str = "text"
    functions: List[Dict[str, Any]] = field(default_factory=list)
    classes: List[Dict[str, Any]] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "language": self.language,
            "functions": self.functions,
            "classes": self.classes,
            "imports": self.imports,
            "size": self.size,
        }


@dataclass
class NodeMetadata:
    """Bookkeeping attached to every node."""
    created: str = field(default_factory=_now)
    last_updated: str = field(default_factory=_now)
    weight: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "lastUpdated": self.last_updated,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeMetadata":
        return cls(
            created=data.get("created") or _now(),
            last_updated=data.get("lastUpdated") or data.get("last_updated") or _now(),
            weight=float(data.get("weight", 1.0)),
        )


@dataclass
class Node:
    """A code entity or abstract concept in the knowledge graph.

    ``connections`` is the set of edge ids touching this node. It is
    derived state owned by :class:`~codegraph.graph.knowledge_graph.KnowledgeGraph`
    and must only be changed through it.
    """
    id: str
    type: NodeType
    name: str
    properties: Dict[str, Any] = field(default_factory=dict)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    connections: Set[str] = field(default_factory=set)

    def projection(self) -> Dict[str, Any]:
        """Public view used in query results."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "properties": self.properties,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "properties": self.properties,
            "metadata": self.metadata.to_dict(),
            "connections": sorted(self.connections),
        }


@dataclass
class Edge:
    """A directed, typed relationship between two nodes."""
    id: str
    from_id: str
    to_id: str
    type: RelationshipType
    strength: float = 1.0
    properties: Dict[str, Any] = field(default_factory=dict)
    created: str = field(default_factory=_now)

    def other_end(self, node_id: str) -> str:
        return self.to_id if self.from_id == node_id else self.from_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "from": self.from_id,
            "to": self.to_id,
            "type": self.type.value,
            "strength": self.strength,
            "properties": self.properties,
            "created": self.created,
        }


@dataclass
class PatternMatch:
    """A pattern proposed by one of the detector passes."""
    name: str
    description: str
    confidence: float
    related_nodes: List[str]
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence,
            "related_nodes": list(self.related_nodes),
            "category": self.category,
        }


@dataclass
class IngestionResult:
    """Aggregate counts reported by the ingestion pipeline."""
    files_processed: int = 0
    nodes_created: int = 0
    edges_created: int = 0
    skipped_facts: int = 0
    failed_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_processed": self.files_processed,
            "nodes_created": self.nodes_created,
            "edges_created": self.edges_created,
            "skipped_facts": self.skipped_facts,
            "failed_files": list(self.failed_files),
        }


@dataclass
class QueryRequest:
    """A typed query against the graph."""
    type: str = QueryType.SEARCH.value
    filters: Dict[str, Any] = field(default_factory=dict)
    limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryRequest":
        return cls(
            type=data.get("type") or QueryType.SEARCH.value,
            filters=dict(data.get("filters") or {}),
            limit=data.get("limit"),
        )


@dataclass
class QueryHit:
    """One query result: a node projection plus query specific metadata."""
    node: Node
    score: Optional[float] = None
    depth: Optional[int] = None
    relationship: Optional[Edge] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, leaving out fields the query did not set."""
        result: Dict[str, Any] = {"node": self.node.projection()}
        if self.score is not None:
            result["score"] = self.score
        if self.depth is not None:
            result["depth"] = self.depth
        if self.relationship is not None:
            result["relationship"] = self.relationship.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result


@dataclass
class GraphStats:
    """Aggregate counts over the whole graph."""
    total_nodes: int
    total_edges: int
    nodes_by_type: Dict[str, int]
    edges_by_type: Dict[str, int]
    concepts: int
    avg_connections_per_node: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "nodesByType": dict(self.nodes_by_type),
            "edgesByType": dict(self.edges_by_type),
            "concepts": self.concepts,
            "avgConnectionsPerNode": self.avg_connections_per_node,
        }
