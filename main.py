#!/usr/bin/env python3
"""
Code Relationship Knowledge Graph - command line entry point

Builds a knowledge graph from a local codebase, stores it as a JSON snapshot
and answers queries against a stored snapshot.

Usage:
    python main.py build path/to/project --snapshot graph_data.json
    python main.py stats --snapshot graph_data.json
    python main.py query findPatterns --pattern repository
    python main.py query pathBetween --from <id> --to <id>
"""

import argparse
import json
import sys

from codegraph.config import settings
from codegraph.errors import KnowledgeGraphError
from codegraph.graph import KnowledgeGraph, QueryEngine
from codegraph.types import QueryType
from codegraph.utils.logger import app_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Code Relationship Knowledge Graph")
    parser.add_argument("--snapshot", default=settings.graph_snapshot_path, help="Graph snapshot file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build a graph from a directory")
    build.add_argument("directory", help="Root of the codebase to analyze")
    build.add_argument("--no-patterns", action="store_true", help="Skip pattern discovery")

    subparsers.add_parser("stats", help="Print statistics of a stored graph")

    query = subparsers.add_parser("query", help="Query a stored graph")
    query.add_argument("type", help="Query type: " + ", ".join(t.value for t in QueryType))
    query.add_argument("--node-id", dest="nodeId", help="Target node id")
    query.add_argument("--depth", type=int, help="Maximum dependency depth")
    query.add_argument("--pattern", help="Pattern or concept name")
    query.add_argument("--from", dest="from_id", help="Path start node id")
    query.add_argument("--to", dest="to_id", help="Path end node id")
    query.add_argument("--name", help="Name substring filter")
    query.add_argument("--node-type", dest="node_type", help="Node type filter")
    query.add_argument("--limit", type=int, default=settings.default_query_limit, help="Maximum results")

    return parser


def query_filters(args: argparse.Namespace) -> dict:
    filters = {
        "nodeId": args.nodeId,
        "depth": args.depth,
        "pattern": args.pattern,
        "from": args.from_id,
        "to": args.to_id,
        "name": args.name,
        "type": args.node_type,
    }
    return {key: value for key, value in filters.items() if value is not None}


def main(argv=None):
    """Main entry point for the command line interface."""
    args = build_parser().parse_args(argv)

    try:
        if args.command == "build":
            graph = KnowledgeGraph()
            result = graph.build_from_directory(args.directory, detect_patterns=not args.no_patterns)
            graph.save_snapshot(args.snapshot)
            output = {"ingestion": result.to_dict(), "stats": graph.stats().to_dict()}
        elif args.command == "stats":
            output = KnowledgeGraph.load_snapshot(args.snapshot).stats().to_dict()
        else:
            engine = QueryEngine(KnowledgeGraph.load_snapshot(args.snapshot))
            output = engine.query({"type": args.type, "filters": query_filters(args), "limit": args.limit})
    except (OSError, ValueError, KnowledgeGraphError) as e:
        app_logger.error(f"{args.command} failed: {e}")
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
