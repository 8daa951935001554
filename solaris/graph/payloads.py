"""Pydantic validation for fragment JSON coming from outside the process.

Both the analyzer reply and ``POST /graph/ingest`` bodies go through
:class:`FragmentPayload`; an unknown node type or a link whose endpoint is
not among the fragment's nodes rejects the whole fragment.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from solaris.graph.models import GraphFragment, GraphLink, GraphNode, NodeType, Position


class NodePayload(BaseModel):
    id: str
    label: str
    type: NodeType = NodeType.ENTITY
    properties: dict[str, Any] = Field(default_factory=dict)
    x: float | None = None
    y: float | None = None


class LinkPayload(BaseModel):
    source: str
    target: str
    label: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)


class FragmentPayload(BaseModel):
    nodes: list[NodePayload] = Field(default_factory=list)
    links: list[LinkPayload] = Field(default_factory=list)

    @model_validator(mode="after")
    def _links_reference_nodes(self) -> FragmentPayload:
        ids = {node.id for node in self.nodes}
        for link in self.links:
            for endpoint in (link.source, link.target):
                if endpoint not in ids:
                    raise ValueError(f"link endpoint {endpoint!r} is not a node in this fragment")
        return self

    def to_fragment(self) -> GraphFragment:
        nodes = []
        for node in self.nodes:
            position = None
            if node.x is not None or node.y is not None:
                position = Position(node.x or 0.0, node.y or 0.0)
            nodes.append(
                GraphNode(
                    id=node.id,
                    label=node.label,
                    type=node.type,
                    properties=dict(node.properties),
                    position=position,
                )
            )
        links = [
            GraphLink(link.source, link.target, link.label, dict(link.properties))
            for link in self.links
        ]
        return GraphFragment(nodes=nodes, links=links)
