"""Case knowledge graph: models and the in-memory store.

Public re-exports so callers can write::

    from solaris.graph import GraphStore, GraphNode, NodeType
"""

from solaris.graph.models import (
    GRAPH_COLORS,
    GraphFragment,
    GraphLink,
    GraphNode,
    IngestResult,
    NodeType,
    Position,
    Provenance,
)
from solaris.graph.store import GraphStore, new_manual_node

__all__ = [
    "GRAPH_COLORS",
    "GraphFragment",
    "GraphLink",
    "GraphNode",
    "GraphStore",
    "IngestResult",
    "NodeType",
    "Position",
    "Provenance",
    "new_manual_node",
]
