"""Input validation for manual graph edits.

Blank property keys, link targets and link labels are rejected (or dropped)
here, before anything reaches :class:`~solaris.graph.store.GraphStore`.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from solaris.graph.models import GraphNode, NodeType


def apply_property_edits(
    node: GraphNode,
    pairs: Iterable[tuple[str, Any]],
    label: Optional[str] = None,
    node_type: Optional[NodeType] = None,
    attached_files: Optional[Iterable[str]] = None,
) -> GraphNode:
    """Return a copy of *node* whose properties are rebuilt from *pairs*.

    Pairs with a blank key are dropped.  ``source_file`` is carried over
    unless the edit supplies a new value for it.  ``attached_files`` is
    replaced when *attached_files* is given and carried over otherwise;
    detaching an inferred file goes through
    :func:`~solaris.evidence.resolver.detach_file`.
    """
    properties: dict[str, Any] = {}
    for key, value in pairs:
        key = key.strip()
        if key:
            properties[key] = value

    original = node.properties
    if attached_files is not None:
        properties["attached_files"] = list(dict.fromkeys(attached_files))
    elif "attached_files" in original:
        properties["attached_files"] = list(original["attached_files"])
    if original.get("source_file") and not properties.get("source_file"):
        properties["source_file"] = original["source_file"]

    updated = node.copy()
    updated.properties = properties
    if label is not None:
        if not label.strip():
            raise ValueError("Node label must not be empty.")
        updated.label = label
    if node_type is not None:
        updated.type = node_type
    return updated


def validate_link_input(target: str, label: str) -> tuple[str, str]:
    """Strip and check the target id and label of a new link.

    Raises:
        ValueError: If either value is blank.
    """
    target = (target or "").strip()
    label = (label or "").strip()
    if not target:
        raise ValueError("Link target must not be empty.")
    if not label:
        raise ValueError("Link label must not be empty.")
    return target, label
