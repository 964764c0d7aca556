from collections import deque
from typing import List, Dict, Any, Optional, Union
import json

import numpy as np

from ..config import settings
from ..types import Edge, Node, QueryHit, QueryRequest, QueryType, RelationshipType
from ..utils.logger import app_logger
from .similarity import SimilarityScorer


class QueryEngine:
    """Read-only typed queries over a :class:`KnowledgeGraph`.

    Every query returns an empty list for ids it cannot resolve.
    """

    def __init__(self, graph, similarity_threshold: Optional[float] = None,
                 max_visit_nodes: Optional[int] = None):
        self.graph = graph
        self.scorer = SimilarityScorer(graph)
        self.similarity_threshold = (
            settings.similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self.max_visit_nodes = settings.max_visit_nodes if max_visit_nodes is None else max_visit_nodes
        self.logger = app_logger.bind(component="query_engine")

    def query(self, request: Union[QueryRequest, Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Dispatch a query by type tag and return plain result dicts."""
        if not isinstance(request, QueryRequest):
            request = QueryRequest.from_dict(request)

        filters = request.filters
        limit = request.limit if request.limit is not None else settings.default_query_limit

        try:
            query_type = QueryType(request.type)
        except ValueError:
            self.logger.warning(f"Unknown query type {request.type!r}, falling back to search")
            query_type = QueryType.SEARCH

        if query_type == QueryType.FIND_SIMILAR:
            results = self.find_similar(filters.get("nodeId"), limit)
        elif query_type == QueryType.FIND_DEPENDENCIES:
            depth = filters.get("depth")
            results = self.find_dependencies(
                filters.get("nodeId"), settings.default_dependency_depth if depth is None else int(depth)
            )
        elif query_type == QueryType.FIND_USAGE:
            results = self.find_usage(filters.get("nodeId"), limit)
        elif query_type == QueryType.FIND_PATTERNS:
            results = self.find_patterns(filters.get("pattern") or "", limit)
        elif query_type == QueryType.PATH_BETWEEN:
            return self.path_between(filters.get("from"), filters.get("to"))
        else:
            results = self.search(filters, limit)

        return [hit.to_dict() for hit in results]

    def find_similar(self, node_id: Optional[str], limit: int = 20) -> List[QueryHit]:
        """Nodes of the same type scoring above the similarity threshold."""
        target = self.graph.get_node(node_id) if node_id else None
        if target is None:
            return []

        candidates: List[Node] = []
        scores: List[float] = []
        for node in self.graph.nodes():
            if node.id == target.id or node.type != target.type:
                continue
            score = self.scorer.similarity(target, node)
            if score > self.similarity_threshold:
                candidates.append(node)
                scores.append(score)

        if not candidates:
            return []

        top_indices = np.argsort(-np.asarray(scores), kind="stable")[:limit]
        return [QueryHit(node=candidates[i], score=float(scores[i])) for i in top_indices]

    def find_dependencies(self, node_id: Optional[str], max_depth: int = 2) -> List[QueryHit]:
        """Depth-first walk over outgoing ``DEPENDS_ON`` edges.

        Each edge found at depth ``0..max_depth`` is recorded once per
        expansion of its source. The walk keeps an explicit stack of edge
        iterators; only ``max_visit_nodes`` bounds the chain length.
        """
        if not node_id or not self.graph.has_node(node_id):
            return []
        if max_depth < 0 or self.max_visit_nodes < 1:
            return []

        visited = {node_id}
        dependencies: List[QueryHit] = []
        truncated = False
        stack = [(node_id, 0, self.graph.neighbors(node_id))]

        while stack:
            current_id, depth, edges = stack[-1]
            step = next(
                ((edge, other) for edge, other in edges
                 if edge.from_id == current_id and edge.type == RelationshipType.DEPENDS_ON),
                None,
            )
            if step is None:
                stack.pop()
                continue

            edge, other = step
            dep_node = self.graph.get_node(other)
            if dep_node is None:
                continue
            dependencies.append(QueryHit(node=dep_node, relationship=edge, depth=depth))

            if depth + 1 > max_depth or other in visited:
                continue
            if len(visited) >= self.max_visit_nodes:
                truncated = True
                continue
            visited.add(other)
            stack.append((other, depth + 1, self.graph.neighbors(other)))

        if truncated:
            self.logger.warning(f"Dependency walk from {node_id} hit the visit budget of {self.max_visit_nodes}")
        return dependencies

    def find_usage(self, node_id: Optional[str], limit: int = 20) -> List[QueryHit]:
        """Nodes with an edge pointing at ``node_id``."""
        if not node_id or not self.graph.has_node(node_id):
            return []

        usages: List[QueryHit] = []
        for edge, other in self.graph.neighbors(node_id):
            if edge.to_id != node_id:
                continue
            source = self.graph.get_node(edge.from_id)
            if source is not None:
                usages.append(QueryHit(node=source, relationship=edge, context=self.usage_context(edge)))
        return usages[:limit]

    def find_patterns(self, pattern_name: str, limit: int = 20) -> List[QueryHit]:
        """Implementations of a named concept, or a keyword match as fallback."""
        concept_id = self.graph.concept_id(pattern_name)
        if concept_id:
            return self.find_usage(concept_id, limit)

        needle = pattern_name.lower()
        matches: List[QueryHit] = []
        for node in self.graph.nodes():
            properties = json.dumps(node.properties, default=str, separators=(",", ":"))
            haystack = f"{node.name} {properties}".lower()
            if needle not in haystack:
                continue
            if len(matches) >= limit:
                break
            matches.append(QueryHit(node=node, score=1.0))
        return matches

    def path_between(self, from_id: Optional[str], to_id: Optional[str]) -> List[Dict[str, Any]]:
        """Shortest path over the undirected view of the graph."""
        if not from_id or not to_id:
            return []
        if not self.graph.has_node(from_id) or not self.graph.has_node(to_id):
            return []

        parents: Dict[str, Optional[str]] = {from_id: None}
        queue = deque([from_id])
        while queue:
            current_id = queue.popleft()
            if current_id == to_id:
                return self._format_path(self._unwind(parents, to_id))
            if len(parents) >= self.max_visit_nodes:
                self.logger.warning(f"Path search from {from_id} hit the visit budget")
                break
            for _edge, other in self.graph.neighbors(current_id):
                if other not in parents:
                    parents[other] = current_id
                    queue.append(other)

        return []

    def search(self, filters: Optional[Dict[str, Any]] = None, limit: int = 20) -> List[QueryHit]:
        """Linear scan filtered by ``type`` and case-insensitive ``name``."""
        filters = filters or {}
        node_type = filters.get("type")
        name = (filters.get("name") or "").lower()

        results: List[QueryHit] = []
        for node in self.graph.nodes():
            if node_type and node.type.value != node_type:
                continue
            if name and name not in node.name.lower():
                continue
            if len(results) >= limit:
                break
            results.append(QueryHit(node=node, score=1.0))
        return results

    @staticmethod
    def usage_context(edge: Edge) -> Dict[str, Any]:
        return {
            "relationship": edge.type.value,
            "strength": edge.strength,
            "properties": edge.properties,
        }

    @staticmethod
    def _unwind(parents: Dict[str, Optional[str]], end: str) -> List[str]:
        path = [end]
        while parents[path[-1]] is not None:
            path.append(parents[path[-1]])
        path.reverse()
        return path

    def _format_path(self, path: List[str]) -> List[Dict[str, Any]]:
        formatted = []
        for nid in path:
            node = self.graph.get_node(nid)
            if node is not None:
                formatted.append({"id": nid, "name": node.name, "type": node.type.value})
        return formatted
