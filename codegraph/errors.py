"""Error hierarchy for the knowledge graph.

The graph store raises; the ingestion pipeline catches per fact and keeps
going; the query engine never raises for ids it cannot resolve.
"""

from typing import Iterable, Sequence


class KnowledgeGraphError(Exception):
    """Base error for the knowledge graph."""

    pass


class MissingNodeError(KnowledgeGraphError):
    """A relationship referenced a node id that was never added.

    Attributes:
        node_ids: The endpoint ids that are not registered

    Fatal to the single call only. Callers building a graph should skip the
    fact and continue.
    """

    def __init__(self, node_ids: Sequence[str]) -> None:
        self.node_ids = list(node_ids)
        super().__init__(
            f"Both nodes must exist before creating relationship; missing: {', '.join(self.node_ids)}"
        )


class InvalidTypeError(KnowledgeGraphError, ValueError):
    """A node or relationship type outside the known enumeration.

    Attributes:
        kind: "node" or "relationship"
        value: The rejected type value
        allowed: The accepted values
    """

    def __init__(self, kind: str, value: object, allowed: Iterable[str]) -> None:
        self.kind = kind
        self.value = value
        self.allowed = sorted(allowed)
        super().__init__(
            f"Unknown {kind} type {value!r}; expected one of {', '.join(self.allowed)}"
        )
