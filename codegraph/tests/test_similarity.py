import pytest

from codegraph.graph import KnowledgeGraph, SimilarityScorer
from codegraph.graph.similarity import (
    edit_distance,
    string_similarity,
    properties_similarity,
    naming_style,
)


class TestStringMetrics:
    """Test edit distance and name similarity."""

    @pytest.mark.parametrize("a,b,expected", [
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("abc", "", 3),
        ("abc", "abc", 0),
        ("getUser", "getUsers", 1),
    ])
    def test_edit_distance(self, a, b, expected):
        assert edit_distance(a, b) == expected

    def test_string_similarity(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("abc", "abc") == 1.0
        assert string_similarity("abc", "xyz") == 0.0
        assert string_similarity("getUser", "getUsers") == pytest.approx(7 / 8)

    def test_properties_similarity(self):
        assert properties_similarity({}, {}) == 1.0
        assert properties_similarity({"a": 1}, {}) == 0.0
        assert properties_similarity({"a": 1, "b": 2}, {"a": 3}) == 0.5
        assert properties_similarity({"a": 1}, {"a": "different value"}) == 1.0


class TestNamingStyle:
    """Test naming convention classification."""

    @pytest.mark.parametrize("name,style", [
        ("UserRepository", "PascalCase"),
        ("ABC", "PascalCase"),
        ("findById", "camelCase"),
        ("foo", "camelCase"),
        ("find_by_id", "snake_case"),
        ("MAX_SIZE", "CONSTANT_CASE"),
        ("my-component", "kebab-case"),
        ("src/a.js", "mixed"),
        ("", "mixed"),
    ])
    def test_naming_style(self, name, style):
        assert naming_style(name) == style


class TestSimilarityScorer:
    """Test the composite node similarity."""

    def setup_method(self):
        self.graph = KnowledgeGraph()
        self.graph.build_from_codebase([
            {"path": "users.js", "functions": [
                {"name": "getUser", "params": ["id"]},
                {"name": "getUsers"},
                {"name": "deleteAccount"},
            ]},
        ], detect_patterns=False)
        self.scorer = SimilarityScorer(self.graph)
        self.nodes = {node.name: node for node in self.graph.nodes()}

    def test_self_similarity(self):
        node = self.nodes["getUser"]
        assert self.scorer.similarity(node, node) == pytest.approx(1.0)

    def test_symmetry(self):
        a, b = self.nodes["getUser"], self.nodes["deleteAccount"]
        assert self.scorer.similarity(a, b) == pytest.approx(self.scorer.similarity(b, a))

    def test_different_types_score_zero(self):
        assert self.scorer.similarity(self.nodes["getUser"], self.nodes["users.js"]) == 0.0

    def test_close_names_score_higher(self):
        target = self.nodes["getUser"]
        close = self.scorer.similarity(target, self.nodes["getUsers"])
        far = self.scorer.similarity(target, self.nodes["deleteAccount"])

        assert close == pytest.approx(0.4 * 7 / 8 + 0.3 + 0.3)
        assert far < close

    def test_score_range(self):
        nodes = list(self.nodes.values())
        for a in nodes:
            for b in nodes:
                assert 0.0 <= self.scorer.similarity(a, b) <= 1.0

    def test_connection_similarity_without_edges(self):
        graph = KnowledgeGraph()
        a = graph.add_node("a", {"type": "concept", "name": "x"})
        b = graph.add_node("b", {"type": "concept", "name": "y"})

        assert SimilarityScorer(graph).connection_similarity(a, b) == 0.0
