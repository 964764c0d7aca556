#!/usr/bin/env python3
"""
Test runner script for the code knowledge graph.

Usage:
    python codegraph/tests/run_tests.py [options]

Options:
    --env-only          Only run environment tests
    --graph-only        Only run graph store, ingestion and snapshot tests
    --patterns-only     Only run pattern detection and similarity tests
    --query-only        Only run query engine tests
    --integration-only  Only run scanner, extractor and end-to-end tests
    --verbose           Verbose output
"""

import sys
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

TEST_DIR = "codegraph/tests"

TEST_GROUPS = {
    "env": ["test_requirements.py"],
    "graph": ["test_identity.py", "test_knowledge_graph.py", "test_ingestion.py", "test_snapshot.py"],
    "patterns": ["test_pattern_detector.py", "test_similarity.py"],
    "query": ["test_query_engine.py"],
    "integration": ["test_local_codebase_scanner.py", "test_structure_extractor.py", "test_integration.py"],
}


def run_tests(args):
    """Run tests based on arguments."""
    import pytest

    selected = [group for group in TEST_GROUPS if getattr(args, f"{group}_only")]
    groups = selected or list(TEST_GROUPS)
    pytest_args = [f"{TEST_DIR}/{name}" for group in groups for name in TEST_GROUPS[group]]

    if args.verbose:
        pytest_args.append("-v")
        pytest_args.append("-s")

    pytest_args.extend([
        "--tb=short",  # Shorter traceback format
        "--durations=10",  # Show 10 slowest tests
    ])

    print("Running tests with arguments:", pytest_args)
    print("=" * 60)

    exit_code = pytest.main(pytest_args)

    print("=" * 60)
    if exit_code == 0:
        print("✓ All tests passed!")
    else:
        print(f"✗ Tests failed with exit code: {exit_code}")

    return exit_code


def check_environment():
    """Check if the environment is ready for testing."""
    print("Checking environment...")

    if not Path(TEST_DIR).exists():
        print(f"Error: {TEST_DIR} directory not found. Please run from project root.")
        return False

    critical_files = [
        "codegraph/config.py",
        "codegraph/types.py",
        "codegraph/graph/knowledge_graph.py",
        "codegraph/graph/query_engine.py",
    ]

    missing_files = [f for f in critical_files if not Path(f).exists()]
    if missing_files:
        print(f"Error: Missing critical files: {missing_files}")
        return False

    print("✓ Environment check passed")
    return True


def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="Run tests for the code knowledge graph")

    parser.add_argument("--env-only", action="store_true",
                        help="Only run environment verification tests")
    parser.add_argument("--graph-only", action="store_true",
                        help="Only run graph store, ingestion and snapshot tests")
    parser.add_argument("--patterns-only", action="store_true",
                        help="Only run pattern detection and similarity tests")
    parser.add_argument("--query-only", action="store_true",
                        help="Only run query engine tests")
    parser.add_argument("--integration-only", action="store_true",
                        help="Only run scanner, extractor and end-to-end tests")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose output")

    args = parser.parse_args()

    if not check_environment():
        sys.exit(1)

    sys.exit(run_tests(args))


if __name__ == "__main__":
    main()
