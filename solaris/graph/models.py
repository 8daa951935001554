"""Dataclass models for the case knowledge graph.

Links always reference their endpoints by node id.  A renderer that needs
node objects resolves ids at its own boundary and never writes the resolved
form back into these records.
"""

from __future__ import annotations

import copy
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from time import time
from typing import Any, Optional


GRAPH_COLORS: dict[str, str] = {
    "default": "#94a3b8",
    "conflict": "#f43f5e",
    "verified": "#10b981",
    "entity": "#06b6d4",
    "event": "#f59e0b",
    "selected": "#e879f9",
    "suggestion": "#facc15",
    "dimmed": "#334155",
}


class NodeType(str, Enum):
    ENTITY = "ENTITY"
    EVENT = "EVENT"
    CONFLICT = "CONFLICT"
    DISCREPANCY = "DISCREPANCY"


class Provenance(str, Enum):
    """Lineage markers stored under ``properties["source"]``."""

    AI_CHAT_APPROVED = "AI_CHAT_APPROVED"
    SMART_CREATE = "SMART_CREATE"
    MANUAL = "MANUAL"


def make_node_id(prefix: str, suffix: Optional[str] = None) -> str:
    """Return ``<prefix>-<ms timestamp>-<suffix>``.

    The suffix defaults to five random base-36 characters.
    """
    if suffix is None:
        alphabet = string.ascii_lowercase + string.digits
        suffix = "".join(secrets.choice(alphabet) for _ in range(5))
    return f"{prefix}-{int(time() * 1000)}-{suffix}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass
class GraphNode:
    id: str
    label: str
    type: NodeType = NodeType.ENTITY
    properties: dict[str, Any] = field(default_factory=dict)
    position: Optional[Position] = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    @property
    def source_file(self) -> Optional[str]:
        value = self.properties.get("source_file")
        return str(value) if value else None

    @property
    def attached_files(self) -> list[str]:
        value = self.properties.get("attached_files")
        return list(value) if isinstance(value, (list, tuple, set)) else []

    @property
    def timestamp(self) -> Optional[str]:
        value = self.properties.get("timestamp")
        return str(value) if value else None

    def copy(self) -> GraphNode:
        """Deep copy, so edits to the copy never reach the stored node."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "properties": copy.deepcopy(self.properties),
        }
        if self.position is not None:
            data["x"] = self.position.x
            data["y"] = self.position.y
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphNode:
        position = None
        if data.get("x") is not None or data.get("y") is not None:
            position = Position(float(data.get("x") or 0), float(data.get("y") or 0))
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            type=NodeType(data.get("type", NodeType.ENTITY.value)),
            properties=dict(data.get("properties") or {}),
            position=position,
        )


@dataclass
class GraphLink:
    source: str
    target: str
    label: str
    properties: dict[str, Any] = field(default_factory=dict)

    def pair_key(self) -> tuple[str, str]:
        return (self.source, self.target)

    def labelled_key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.label)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "properties": copy.deepcopy(self.properties),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphLink:
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            label=str(data.get("label", "")),
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class GraphFragment:
    """Nodes and links returned by one analysis pass, before merging."""

    nodes: list[GraphNode] = field(default_factory=list)
    links: list[GraphLink] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphFragment:
        return cls(
            nodes=[GraphNode.from_dict(n) for n in data.get("nodes", [])],
            links=[GraphLink.from_dict(link) for link in data.get("links", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }


@dataclass
class IngestResult:
    nodes_added: int = 0
    nodes_skipped: int = 0
    links_added: int = 0
    links_skipped: int = 0
