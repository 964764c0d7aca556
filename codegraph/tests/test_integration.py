import json
from pathlib import Path

from main import main
from codegraph.graph import KnowledgeGraph, QueryEngine
from codegraph.processor.structure_extractor import StructureExtractor
from codegraph.scanner.local_codebase_scanner import LocalCodebaseScanner
from codegraph.types import NodeType
from codegraph.utils.identity import node_id


class TestIntegration:
    """End-to-end integration tests."""

    def test_full_pipeline_scan_to_query(self, temp_codebase: Path, tmp_path: Path, assert_connection_invariant):
        """Test complete pipeline from scanning to a query on a reloaded snapshot."""
        scanner = LocalCodebaseScanner(str(temp_codebase))
        loaded_files = scanner.load_files_content(scanner.scan_directory())
        assert len(loaded_files) == 3

        records = StructureExtractor().extract_all(loaded_files)
        graph = KnowledgeGraph()
        result = graph.build_from_codebase(records)

        assert result.files_processed == 3
        assert result.failed_files == []
        assert_connection_invariant(graph)

        snapshot = tmp_path / "graph.json"
        graph.save_snapshot(snapshot)
        engine = QueryEngine(KnowledgeGraph.load_snapshot(snapshot))

        hits = engine.find_patterns("repository")
        names = {hit.node.name for hit in hits}
        assert "UserRepository" in names

        lodash = node_id(NodeType.DEPENDENCY, "lodash")
        users = {hit.node.name for hit in engine.find_usage(lodash)}
        assert users == {"src/user_repository.js", "src/db.js"}

    def test_methods_feed_pattern_detection(self, temp_codebase: Path):
        graph = KnowledgeGraph()
        graph.build_from_directory(str(temp_codebase))

        repo_class = node_id(NodeType.CLASS, "src/user_repository.js:UserRepository")
        method_names = [m["name"] for m in graph.get_node(repo_class).properties["methods"]]
        assert method_names == ["findById", "save"]
        assert graph.concept_id("repository") is not None
        assert graph.concept_id("service") is not None


class TestCommandLine:
    """Test the command line entry point."""

    def test_build_then_stats(self, temp_codebase: Path, tmp_path: Path, capsys):
        snapshot = str(tmp_path / "graph.json")

        assert main(["--snapshot", snapshot, "build", str(temp_codebase), "--no-patterns"]) == 0
        built = json.loads(capsys.readouterr().out)
        assert built["ingestion"]["files_processed"] == 3
        assert built["stats"]["concepts"] == 0

        assert main(["--snapshot", snapshot, "stats"]) == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats == built["stats"]

    def test_query_command(self, temp_codebase: Path, tmp_path: Path, capsys):
        snapshot = str(tmp_path / "graph.json")
        main(["--snapshot", snapshot, "build", str(temp_codebase)])
        capsys.readouterr()

        assert main(["--snapshot", snapshot, "query", "search", "--node-type", "class"]) == 0
        results = json.loads(capsys.readouterr().out)
        assert {r["node"]["name"] for r in results} == {"UserRepository", "UserService"}

    def test_path_query_command(self, temp_codebase: Path, tmp_path: Path, capsys):
        snapshot = str(tmp_path / "graph.json")
        main(["--snapshot", snapshot, "build", str(temp_codebase), "--no-patterns"])
        capsys.readouterr()

        start = node_id(NodeType.CLASS, "src/user_repository.js:UserRepository")
        end = node_id(NodeType.DEPENDENCY, "lodash")
        assert main(["--snapshot", snapshot, "query", "pathBetween", "--from", start, "--to", end]) == 0
        path = json.loads(capsys.readouterr().out)
        assert [step["name"] for step in path] == ["UserRepository", "src/user_repository.js", "lodash"]

    def test_missing_snapshot_fails(self, tmp_path: Path):
        assert main(["--snapshot", str(tmp_path / "missing.json"), "stats"]) == 1
