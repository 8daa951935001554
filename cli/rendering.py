"""Utilities for rendering the case graph, timeline and chat in the CLI."""

from __future__ import annotations

from typing import Iterable

from solaris.chat.models import ChatMessage, Role, ToolStatus
from solaris.evidence.models import EvidenceFile
from solaris.graph.models import GraphLink, GraphNode, NodeType
from solaris.graph.views import TimelineEvent


def render_tree(nodes: Iterable[GraphNode], links: Iterable[GraphLink]) -> str:
    """Render the graph as ASCII trees following outgoing links.

    Roots are nodes with no incoming link (plus any node only reachable
    through a cycle).  A node already printed is shown once more as a
    reference and not expanded again.

    Returns:
        String representation of the forest, or a notice if it is empty.
    """
    node_list = list(nodes)
    if not node_list:
        return "(graph is empty)"
    node_map = {n.id: n for n in node_list}

    adj: dict[str, list[tuple[str, str]]] = {}
    has_parent: set[str] = set()
    for link in links:
        adj.setdefault(link.source, []).append((link.target, link.label))
        has_parent.add(link.target)

    lines: list[str] = []
    visited: set[str] = set()

    def _title(node_id: str) -> str:
        node = node_map.get(node_id)
        if node is None:
            return f"Unknown({node_id})"
        return f"{_get_icon(node.type)} {node.label}"

    def _render_node(node_id: str, relation: str, prefix: str, is_last: bool, is_root: bool) -> None:
        if is_root:
            lines.append(_title(node_id))
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            suffix = " (see above)" if node_id in visited else ""
            lines.append(f"{prefix}{connector}[{relation}] {_title(node_id)}{suffix}")
            child_prefix = prefix + ("    " if is_last else "│   ")
            if suffix:
                return

        visited.add(node_id)
        children = adj.get(node_id, [])
        for i, (child_id, rel) in enumerate(children):
            _render_node(child_id, rel, child_prefix, i == len(children) - 1, False)

    for node in node_list:
        if node.id not in has_parent and node.id not in visited:
            _render_node(node.id, "", "", True, True)
    for node in node_list:
        if node.id not in visited:
            _render_node(node.id, "", "", True, True)

    return "\n".join(lines)


def render_timeline(groups: list[tuple[str, list[TimelineEvent]]]) -> str:
    if not groups:
        return "(no timestamped events)"
    lines: list[str] = []
    for month, events in groups:
        lines.append(month)
        for event in events:
            flag = " ⚠" if event.conflict else ""
            lines.append(f"  {event.when.date().isoformat()}  {event.node.label}{flag}")
    return "\n".join(lines)


def render_files(files: Iterable[EvidenceFile]) -> str:
    return "\n".join(
        f"  {f.id}  [{f.media_kind.value}] {f.name}  ({f.status.value})" for f in files
    )


def render_message(message: ChatMessage) -> str:
    """One chat message as printed by the REPL."""
    speaker = "you" if message.role is Role.USER else "assistant"
    if message.tool_call is None:
        return f"{speaker}> {message.text}"
    args = message.tool_call.args
    status = message.tool_status or ToolStatus.PENDING
    return (
        f"{speaker}> {message.text} {args.get('label', '?')} "
        f"[{args.get('type', '?')}]  ({status.value}, id={message.id})"
    )


def _get_icon(node_type: NodeType) -> str:
    icons = {
        NodeType.ENTITY: "👤",
        NodeType.EVENT: "📅",
        NodeType.CONFLICT: "⚠️",
        NodeType.DISCREPANCY: "❗",
    }
    return icons.get(node_type, "📦")
