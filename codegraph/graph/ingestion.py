from typing import List, Dict, Any, Optional, Iterable

from ..errors import MissingNodeError
from ..types import AnalysisRecord, IngestionResult, Node, NodeType, RelationshipType
from ..utils.identity import node_id
from ..utils.logger import app_logger


def calculate_complexity(functions: List[Any], classes: List[Any], imports: List[Any]) -> int:
    """Weighted count of a file's structural facts."""
    return 1 + 2 * len(functions) + 3 * len(classes) + len(imports)


def extract_package_name(import_path: str, language: Optional[str] = None) -> str:
    """Top level package an import string refers to."""
    if import_path.startswith("."):
        return "local"
    segments = import_path.split("/")
    if import_path.startswith("@") and len(segments) > 1:
        return "/".join(segments[:2])
    head = segments[0]
    if language == "python":
        head = head.split(".")[0]
    return head


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _fact_name(fact: Any) -> Optional[str]:
    if isinstance(fact, str):
        return fact or None
    if isinstance(fact, dict):
        name = fact.get("name")
        return str(name) if name else None
    return None


def _normalize_record(record: Any) -> Dict[str, Any]:
    """Flatten a record into ``path, language, size, functions, classes, imports``.

    Fact lists may sit at the top level or under ``components``.
    """
    if isinstance(record, AnalysisRecord):
        record = record.to_dict()
    if not isinstance(record, dict):
        return {}
    components = record.get("components") or {}
    facts = {}
    for key in ("functions", "classes", "imports"):
        facts[key] = _as_list(record.get(key, components.get(key)))
    return {
        "path": record.get("path"),
        "language": record.get("language") or "text",
        "size": record.get("size", components.get("size", 0)) or 0,
        **facts,
    }


class GraphIngestor:
    """Turns per-file structural facts into nodes and relationships."""

    def __init__(self, graph):
        self.graph = graph
        self.logger = app_logger.bind(component="ingestion")

    def ingest(self, records: Iterable[Any]) -> IngestionResult:
        """Ingest every record, never failing on partial input."""
        result = IngestionResult()
        for record in records:
            self.ingest_record(record, result)
        self.logger.info(
            f"Ingested {result.files_processed} files: {result.nodes_created} new nodes, "
            f"{result.edges_created} new relationships, {result.skipped_facts} skipped facts"
        )
        return result

    def ingest_record(self, record: Any, result: Optional[IngestionResult] = None) -> IngestionResult:
        """Ingest a single file's facts into the graph."""
        if result is None:
            result = IngestionResult()

        data = _normalize_record(record)
        path = data.get("path")
        if not path:
            self.logger.warning(f"Skipping analysis record without a path: {record!r}")
            result.failed_files.append(str(record))
            return result

        nodes_before, edges_before = self.graph.node_count, self.graph.edge_count
        file_node = self.add_file_node(data)

        for func in data["functions"]:
            name = _fact_name(func)
            if not name:
                self.logger.debug(f"Skipping unnamed function in {path}")
                result.skipped_facts += 1
                continue
            func_node = self.add_function_node(func, name, path)
            self._link(result, func_node.id, file_node.id, RelationshipType.PART_OF)

        for cls in data["classes"]:
            name = _fact_name(cls)
            if not name:
                self.logger.debug(f"Skipping unnamed class in {path}")
                result.skipped_facts += 1
                continue
            class_node = self.add_class_node(cls, name, path)
            self._link(result, class_node.id, file_node.id, RelationshipType.PART_OF)

        for import_path in data["imports"]:
            if not isinstance(import_path, str) or not import_path:
                result.skipped_facts += 1
                continue
            dep_node = self.find_or_create_dependency_node(import_path, data["language"])
            self._link(result, file_node.id, dep_node.id, RelationshipType.DEPENDS_ON)

        # The graph only grows, so size deltas count what this record created
        result.nodes_created += self.graph.node_count - nodes_before
        result.edges_created += self.graph.edge_count - edges_before
        result.files_processed += 1
        self.logger.debug(
            f"Analyzed {path}: {len(data['functions'])} functions, {len(data['classes'])} classes"
        )
        return result

    # Node creation helpers

    def add_file_node(self, data: Dict[str, Any]) -> Node:
        return self.graph.add_node(node_id(NodeType.FILE, data["path"]), {
            "type": NodeType.FILE,
            "name": data["path"],
            "properties": {
                "language": data["language"],
                "size": data["size"],
                "complexity": calculate_complexity(data["functions"], data["classes"], data["imports"]),
            },
        })

    def add_function_node(self, func: Any, name: str, file_path: str) -> Node:
        func = func if isinstance(func, dict) else {}
        return self.graph.add_node(node_id(NodeType.FUNCTION, f"{file_path}:{name}"), {
            "type": NodeType.FUNCTION,
            "name": name,
            "properties": {
                "file": file_path,
                "parameters": _as_list(func.get("params", func.get("parameters"))),
                "complexity": func.get("complexity") or 1,
            },
        })

    def add_class_node(self, cls: Any, name: str, file_path: str) -> Node:
        cls = cls if isinstance(cls, dict) else {}
        return self.graph.add_node(node_id(NodeType.CLASS, f"{file_path}:{name}"), {
            "type": NodeType.CLASS,
            "name": name,
            "properties": {
                "file": file_path,
                "methods": _as_list(cls.get("methods")),
                "inheritance": _as_list(cls.get("inheritance")),
            },
        })

    def find_or_create_dependency_node(self, import_path: str, language: Optional[str] = None) -> Node:
        dep_id = node_id(NodeType.DEPENDENCY, import_path)
        existing = self.graph.get_node(dep_id)
        if existing is not None:
            return existing
        return self.graph.add_node(dep_id, {
            "type": NodeType.DEPENDENCY,
            "name": import_path,
            "properties": {
                "external": not import_path.startswith("."),
                "package": extract_package_name(import_path, language),
            },
        })

    def _link(self, result: IngestionResult, from_id: str, to_id: str,
              relationship_type: RelationshipType):
        try:
            self.graph.add_relationship(from_id, to_id, relationship_type)
        except MissingNodeError as e:
            self.logger.warning(f"Skipping relationship {relationship_type.value}: {e}")
            result.skipped_facts += 1
