from typing import List, Dict, Any, Optional, Iterable, Iterator, Tuple, Union
import json
from datetime import datetime
from pathlib import Path

from ..errors import MissingNodeError, InvalidTypeError
from ..types import (
    Node, Edge, NodeMetadata, NodeType, RelationshipType, GraphStats,
    IngestionResult, PatternMatch,
)
from ..utils.identity import edge_id as make_edge_id
from ..utils.logger import app_logger
from .ingestion import GraphIngestor
from .pattern_detector import PatternDetector

SNAPSHOT_VERSION = "1.0"


def coerce_node_type(value: Union[str, NodeType]) -> NodeType:
    """Validate ``value`` against the known node types."""
    try:
        return NodeType(value)
    except ValueError:
        raise InvalidTypeError("node", value, [t.value for t in NodeType]) from None


def coerce_relationship_type(value: Union[str, RelationshipType]) -> RelationshipType:
    """Validate ``value`` against the known relationship types."""
    try:
        return RelationshipType(value)
    except ValueError:
        raise InvalidTypeError("relationship", value, [t.value for t in RelationshipType]) from None


class KnowledgeGraph:
    """In-memory code relationship graph.

    All mutation goes through :meth:`add_node` and :meth:`add_relationship`
    so that every node's ``connections`` set stays equal to the ids of the
    edges touching it.
    """

    def __init__(self):
        self.logger = app_logger.bind(component="knowledge_graph")
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._concept_index: Dict[str, str] = {}

    # Mutation

    def add_node(self, node_id: str, data: Dict[str, Any]) -> Node:
        """Insert a node, or upsert it if the id is already present.

        An upsert replaces type, name, properties and weight but keeps the
        creation time and the connection set.
        """
        node_type = coerce_node_type(data.get("type"))
        properties = dict(data.get("properties") or {})
        weight = data.get("weight")
        weight = 1.0 if weight is None else float(weight)

        existing = self._nodes.get(node_id)
        if existing is not None:
            if existing.type == NodeType.CONCEPT and node_type != NodeType.CONCEPT:
                self._concept_index.pop(existing.name.lower(), None)
            existing.type = node_type
            existing.name = data.get("name", existing.name)
            existing.properties = properties
            existing.metadata.weight = weight
            existing.metadata.last_updated = datetime.now().isoformat()
            node = existing
        else:
            node = Node(
                id=node_id,
                type=node_type,
                name=data.get("name", ""),
                properties=properties,
                metadata=NodeMetadata(weight=weight),
            )
            self._nodes[node_id] = node

        if node.type == NodeType.CONCEPT:
            self._concept_index[node.name.lower()] = node_id

        return node

    def add_relationship(self, from_id: str, to_id: str,
                         relationship_type: Union[str, RelationshipType],
                         properties: Optional[Dict[str, Any]] = None) -> Edge:
        """Create a directed relationship between two existing nodes."""
        rel_type = coerce_relationship_type(relationship_type)
        missing = [n for n in (from_id, to_id) if n not in self._nodes]
        if missing:
            raise MissingNodeError(list(dict.fromkeys(missing)))

        properties = dict(properties or {})
        strength = float(properties.get("strength", 1.0))
        strength = min(1.0, max(0.0, strength))

        edge = Edge(
            id=make_edge_id(from_id, to_id, rel_type),
            from_id=from_id,
            to_id=to_id,
            type=rel_type,
            strength=strength,
            properties=properties,
        )
        self._edges[edge.id] = edge

        self._nodes[from_id].connections.add(edge.id)
        self._nodes[to_id].connections.add(edge.id)

        return edge

    # Accessors

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def nodes(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def edges(self) -> Iterator[Edge]:
        return iter(list(self._edges.values()))

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def concept_index(self) -> Dict[str, str]:
        """Copy of the lower-cased concept name to node id index."""
        return dict(self._concept_index)

    def concept_id(self, name: str) -> Optional[str]:
        return self._concept_index.get(name.lower())

    def neighbors(self, node_id: str) -> Iterator[Tuple[Edge, str]]:
        """Yield ``(edge, other_node_id)`` for every edge touching the node."""
        node = self._nodes.get(node_id)
        if node is None:
            return
        for eid in sorted(node.connections):
            edge = self._edges.get(eid)
            if edge is not None:
                yield edge, edge.other_end(node_id)

    def find_nodes(self, name_fragment: str) -> List[Node]:
        """Find nodes whose name contains ``name_fragment``."""
        return [node for node in self._nodes.values() if name_fragment in node.name]

    def get_node_relationships(self, node_id: str) -> List[Dict[str, Any]]:
        """Summarise every relationship of a node from its point of view."""
        relationships = []
        for edge, other in self.neighbors(node_id):
            relationships.append({
                "type": edge.type.value,
                "target": other,
                "strength": edge.strength,
                "direction": "outgoing" if edge.from_id == node_id else "incoming",
            })
        return relationships

    # Building

    def build_from_codebase(self, records: Iterable[Any],
                            detect_patterns: bool = True) -> IngestionResult:
        """Ingest analysis records and optionally run pattern discovery."""
        self.logger.info("Building knowledge graph from codebase...")
        result = GraphIngestor(self).ingest(records)
        if detect_patterns:
            self.discover_patterns()
        self.logger.info(
            f"Knowledge graph built: {result.nodes_created} nodes, {result.edges_created} relationships"
        )
        return result

    def build_from_directory(self, directory_path: str,
                             detect_patterns: bool = True) -> IngestionResult:
        """Scan a directory, extract structure and build the graph from it."""
        from ..processor.structure_extractor import StructureExtractor
        from ..scanner.local_codebase_scanner import LocalCodebaseScanner

        self.logger.info(f"Building knowledge graph from directory: {directory_path}")
        scanner = LocalCodebaseScanner(directory_path)
        code_files = scanner.load_files_content(scanner.scan_directory())
        records = StructureExtractor().extract_all(code_files)
        self.logger.info(f"Analysis complete, building graph from {len(records)} files")
        return self.build_from_codebase(records, detect_patterns=detect_patterns)

    def discover_patterns(self) -> Dict[str, List[PatternMatch]]:
        """Run every pattern pass and add the results as concept nodes."""
        return PatternDetector(self).discover()

    # Statistics and snapshot

    def stats(self) -> GraphStats:
        """Aggregate counts over nodes, edges and concepts."""
        nodes_by_type: Dict[str, int] = {}
        for node in self._nodes.values():
            nodes_by_type[node.type.value] = nodes_by_type.get(node.type.value, 0) + 1

        edges_by_type: Dict[str, int] = {}
        for edge in self._edges.values():
            edges_by_type[edge.type.value] = edges_by_type.get(edge.type.value, 0) + 1

        return GraphStats(
            total_nodes=len(self._nodes),
            total_edges=len(self._edges),
            nodes_by_type=nodes_by_type,
            edges_by_type=edges_by_type,
            concepts=len(self._concept_index),
            avg_connections_per_node=self._average_connections(),
        )

    def _average_connections(self) -> float:
        if not self._nodes:
            return 0.0
        total = sum(len(node.connections) for node in self._nodes.values())
        return total / len(self._nodes)

    def export_graph(self) -> Dict[str, Any]:
        """Serialise the full graph as ordered ``[key, value]`` pair lists."""
        return {
            "nodes": [[nid, node.to_dict()] for nid, node in self._nodes.items()],
            "edges": [[eid, edge.to_dict()] for eid, edge in self._edges.items()],
            "conceptIndex": [[name, nid] for name, nid in self._concept_index.items()],
        }

    def import_graph(self, graph_data: Dict[str, Any]):
        """Replace the graph with the state held in an export.

        Connection sets and the concept index are rebuilt from the node and
        edge tables rather than trusted.
        """
        nodes: Dict[str, Node] = {}
        for nid, record in graph_data.get("nodes", []):
            nodes[nid] = Node(
                id=nid,
                type=coerce_node_type(record.get("type")),
                name=record.get("name", ""),
                properties=dict(record.get("properties") or {}),
                metadata=NodeMetadata.from_dict(record.get("metadata") or {}),
            )

        edges: Dict[str, Edge] = {}
        for eid, record in graph_data.get("edges", []):
            from_id, to_id = record.get("from"), record.get("to")
            missing = [n for n in (from_id, to_id) if n not in nodes]
            if missing:
                raise MissingNodeError(missing)
            edge = Edge(
                id=eid,
                from_id=from_id,
                to_id=to_id,
                type=coerce_relationship_type(record.get("type")),
                strength=float(record.get("strength", 1.0)),
                properties=dict(record.get("properties") or {}),
                created=record.get("created") or datetime.now().isoformat(),
            )
            edges[eid] = edge
            nodes[from_id].connections.add(eid)
            nodes[to_id].connections.add(eid)

        concept_index: Dict[str, str] = {}
        for name, nid in graph_data.get("conceptIndex", []):
            if nid in nodes:
                concept_index[name] = nid
        for node in nodes.values():
            if node.type == NodeType.CONCEPT:
                concept_index.setdefault(node.name.lower(), node.id)

        self._nodes, self._edges, self._concept_index = nodes, edges, concept_index
        self.logger.debug(f"Imported graph: {len(nodes)} nodes, {len(edges)} edges")

    def save_snapshot(self, path: Union[str, Path]):
        """Write the export to a JSON file."""
        storage_path = Path(path)
        storage_path.parent.mkdir(parents=True, exist_ok=True)

        now = datetime.now().isoformat()
        created_at = now
        if storage_path.exists():
            try:
                with open(storage_path, 'r', encoding='utf-8') as f:
                    created_at = json.load(f).get("metadata", {}).get("created_at") or now
            except (OSError, ValueError) as e:
                self.logger.warning(f"Could not read previous snapshot metadata: {e}")

        document = self.export_graph()
        document["metadata"] = {
            "version": SNAPSHOT_VERSION,
            "created_at": created_at,
            "updated_at": now,
        }
        with open(storage_path, 'w', encoding='utf-8') as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
        self.logger.info(f"Saved graph snapshot to {storage_path}")

    @classmethod
    def load_snapshot(cls, path: Union[str, Path]) -> "KnowledgeGraph":
        """Build a new graph from a JSON snapshot file."""
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
        graph = cls()
        graph.import_graph(document)
        graph.logger.info(f"Loaded graph snapshot from {path}")
        return graph
