"""Deterministic, content addressed identifiers for nodes and edges."""

import hashlib
from enum import Enum
from typing import Union

ID_LENGTH = 16


def _token(value: Union[str, Enum]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:ID_LENGTH]


def node_id(node_type: Union[str, Enum], identifier: str) -> str:
    """Id for the entity ``identifier`` of kind ``node_type``."""
    return _digest(f"{_token(node_type)}:{identifier}")


def edge_id(from_id: str, to_id: str, relationship_type: Union[str, Enum]) -> str:
    """Id for the ``relationship_type`` edge from ``from_id`` to ``to_id``."""
    return _digest(f"{from_id}->{to_id}:{_token(relationship_type)}")
