import pytest
import tempfile
from pathlib import Path
from typing import Generator, Dict, Any, List, Callable
import sys

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from codegraph.graph import KnowledgeGraph
from codegraph.types import NodeType


@pytest.fixture
def graph() -> KnowledgeGraph:
    """Create an empty knowledge graph."""
    return KnowledgeGraph()


@pytest.fixture
def two_file_records() -> List[Dict[str, Any]]:
    """a.js defines foo and imports ./b; b.js defines bar."""
    return [
        {
            "path": "a.js",
            "language": "javascript",
            "functions": [{"name": "foo"}],
            "classes": [],
            "imports": ["./b"],
        },
        {
            "path": "b.js",
            "language": "javascript",
            "functions": [{"name": "bar"}],
        },
    ]


@pytest.fixture
def repository_records() -> List[Dict[str, Any]]:
    """A small codebase with a repository, a service and an event bus."""
    return [
        {
            "path": "src/data.js",
            "language": "javascript",
            "classes": [
                {"name": "UserRepository", "methods": [{"name": "findById"}, {"name": "save"}]},
                {"name": "EventBus", "methods": ["subscribe", "emit"]},
                {"name": "ConnectionPool", "methods": [{"name": "getInstance"}]},
            ],
            "functions": [{"name": "createUser", "params": ["name"]}],
            "imports": ["lodash", "./config"],
        },
        {
            "path": "src/logic.js",
            "language": "javascript",
            "classes": [{"name": "UserService", "methods": [{"name": "register"}]}],
            "imports": ["lodash/fp", "./data"],
        },
        {
            "path": "src/app.js",
            "language": "javascript",
            "functions": [{"name": "main"}],
            "imports": ["lodash", "express"],
        },
    ]


@pytest.fixture
def assert_connection_invariant() -> Callable[[KnowledgeGraph], None]:
    """Check every node's connections equal the edges touching it."""
    def check(kg: KnowledgeGraph):
        expected: Dict[str, set] = {node.id: set() for node in kg.nodes()}
        for edge in kg.edges():
            expected[edge.from_id].add(edge.id)
            expected[edge.to_id].add(edge.id)
        for node in kg.nodes():
            assert isinstance(node.connections, set)
            assert node.connections == expected[node.id], f"connections drifted for {node.name}"
    return check


@pytest.fixture
def add_nodes(graph: KnowledgeGraph) -> Callable[..., List[str]]:
    """Add bare nodes of one type by name and return their ids."""
    def add(*names: str, node_type: str = "file") -> List[str]:
        ids = []
        for name in names:
            graph.add_node(f"{node_type}:{name}", {"type": node_type, "name": name})
            ids.append(f"{node_type}:{name}")
        return ids
    return add


@pytest.fixture
def temp_codebase() -> Generator[Path, None, None]:
    """Create temporary codebase for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)

        (temp_path / "src").mkdir()
        (temp_path / "src" / "user_repository.js").write_text("""
const db = require('./db');
import _ from 'lodash';

class UserRepository extends BaseRepository {
    constructor(connection) {
        super(connection);
    }

    findById(id) {
        if (!id) {
            return null;
        }
        return db.get(id);
    }

    save(user) {
        return db.put(user);
    }
}

function createRepository() {
    return new UserRepository(db);
}
""")
        (temp_path / "src" / "db.js").write_text("""
import _ from 'lodash';

const connect = async (url) => {
    return url;
};
""")
        (temp_path / "service.py").write_text("""
import os
from .models import User


class UserService(BaseService):
    def __init__(self, repo):
        self.repo = repo

    def get_user(self, user_id):
        return self.repo.find(user_id)


def main():
    return UserService(None)
""")
        (temp_path / "README.md").write_text("# Test Project\n")

        ignored = temp_path / "node_modules" / "lodash"
        ignored.mkdir(parents=True)
        (ignored / "index.js").write_text("module.exports = {};\n")

        hidden = temp_path / ".cache"
        hidden.mkdir()
        (hidden / "tmp.js").write_text("function hidden() {}\n")

        yield temp_path


@pytest.fixture
def file_id():
    """Id helper for file nodes created by ingestion."""
    from codegraph.utils.identity import node_id

    def make(path: str) -> str:
        return node_id(NodeType.FILE, path)
    return make
