"""Read-only views derived from the graph: the timeline and node colours.

Both consult the file-association resolver on every call; neither writes to
the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from solaris.evidence.models import EvidenceFile
from solaris.evidence.resolver import matches_file
from solaris.graph.models import GRAPH_COLORS, GraphNode, NodeType

_CONFLICT_TYPES = frozenset({NodeType.CONFLICT, NodeType.DISCREPANCY})


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime; ``None`` if it cannot be read."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _selected_file(
    files: Iterable[EvidenceFile], selected_file_id: Optional[str]
) -> Optional[EvidenceFile]:
    if not selected_file_id:
        return None
    return next((f for f in files if f.id == selected_file_id), None)


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

@dataclass
class TimelineEvent:
    node: GraphNode
    when: datetime
    highlighted: bool
    conflict: bool

    def to_dict(self) -> dict:
        return {
            "id": self.node.id,
            "label": self.node.label,
            "type": self.node.type.value,
            "timestamp": self.node.timestamp,
            "date": self.when.isoformat(),
            "source_file": self.node.source_file,
            "highlighted": self.highlighted,
            "conflict": self.conflict,
        }


def timeline(
    nodes: Iterable[GraphNode],
    files: Iterable[EvidenceFile],
    selected_file_id: Optional[str] = None,
    highlighted_node_id: Optional[str] = None,
) -> list[tuple[str, list[TimelineEvent]]]:
    """Group timestamped nodes by month, oldest first.

    Returns:
        ``[("March 2024", [event, ...]), ...]`` in chronological order.
        Nodes without a parseable ``timestamp`` are left out.
    """
    selected = _selected_file(list(files), selected_file_id)

    events: list[TimelineEvent] = []
    for node in nodes:
        if not node.timestamp:
            continue
        when = parse_timestamp(node.timestamp)
        if when is None:
            continue
        file_hit = selected is not None and matches_file(node, selected)
        events.append(
            TimelineEvent(
                node=node,
                when=when,
                highlighted=node.id == highlighted_node_id or file_hit,
                conflict=node.type in _CONFLICT_TYPES,
            )
        )

    # Naive and aware datetimes do not compare; sort on the naive wall time.
    events.sort(key=lambda e: e.when.replace(tzinfo=None))

    groups: list[tuple[str, list[TimelineEvent]]] = []
    for event in events:
        key = event.when.strftime("%B %Y")
        if groups and groups[-1][0] == key:
            groups[-1][1].append(event)
        else:
            groups.append((key, [event]))
    return groups


# ---------------------------------------------------------------------------
# Node colour
# ---------------------------------------------------------------------------

def node_color(
    node: GraphNode,
    files: Iterable[EvidenceFile],
    selected_file_id: Optional[str] = None,
    highlighted_node_id: Optional[str] = None,
) -> str:
    """Colour a renderer should paint *node* with.

    Priority: custom colour, then dimming when a node or file selection
    excludes this node, then the selection colour, then the type colour.
    """
    custom = node.properties.get("custom_color")
    if custom:
        return str(custom)

    selected = _selected_file(files, selected_file_id)
    file_hit = selected is not None and matches_file(node, selected)
    id_hit = highlighted_node_id == node.id

    if highlighted_node_id and not id_hit and not file_hit:
        return GRAPH_COLORS["dimmed"]
    if selected_file_id and not file_hit and not id_hit:
        return GRAPH_COLORS["dimmed"]
    if id_hit or file_hit:
        return GRAPH_COLORS["selected"]
    if node.type in _CONFLICT_TYPES:
        return GRAPH_COLORS["conflict"]
    if node.type is NodeType.EVENT:
        return GRAPH_COLORS["event"]
    return GRAPH_COLORS["entity"]
