"""Graph endpoints: read, manual edits, fragment ingestion and timeline.

Routes
------
GET    /graph                  All nodes (with display colour) and links
POST   /graph/nodes            Create a manual node near the layout centroid
GET    /graph/nodes/{node_id}  Node, its evidence files and its links
PUT    /graph/nodes/{node_id}  Replace label/type/properties (and attached files)
POST   /graph/nodes/{node_id}/files/{file_id}    Attach an evidence file
DELETE /graph/nodes/{node_id}/files/{file_id}    Detach an evidence file
DELETE /graph/nodes/{node_id}  Delete a node and every link touching it
POST   /graph/links            Add a link between two existing nodes
DELETE /graph/links            Remove the link at ``?index=``
POST   /graph/ingest           Merge a fragment (first writer wins)
GET    /graph/timeline         Timestamped nodes grouped by month
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from solaris.errors import DuplicateNodeError, EvidenceNotFoundError, NodeNotFoundError
from solaris.graph.editing import apply_property_edits, validate_link_input
from solaris.graph.models import NodeType
from solaris.graph.payloads import FragmentPayload
from solaris.graph.store import new_manual_node
from solaris.graph.views import node_color, timeline

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class NodeCreate(BaseModel):
    label: str = "New Node"
    type: NodeType = NodeType.ENTITY
    properties: dict[str, Any] = Field(default_factory=dict)


class PropertyPair(BaseModel):
    key: str
    value: Any = None


class NodeUpdate(BaseModel):
    label: Optional[str] = None
    type: Optional[NodeType] = None
    properties: Optional[list[PropertyPair]] = None
    attached_files: Optional[list[str]] = None


class LinkCreate(BaseModel):
    source: str
    target: str
    label: str
    properties: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _case(request: Request):  # type: ignore[no-untyped-def]
    return request.app.state.case


def _node_response(case, node, file_id: Optional[str] = None, node_id: Optional[str] = None) -> dict[str, Any]:  # type: ignore[no-untyped-def]
    data = node.to_dict()
    data["color"] = node_color(node, case.registry.files(), file_id, node_id)
    return data


def _get_or_404(case, node_id: str):  # type: ignore[no-untyped-def]
    node = case.store.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id!r}")
    return node


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("")
def get_graph(
    request: Request, file_id: Optional[str] = None, node_id: Optional[str] = None
) -> dict[str, Any]:
    """Return every node and link; colours honour an optional selection."""
    case = _case(request)
    return {
        "nodes": [_node_response(case, n, file_id, node_id) for n in case.store.nodes],
        "links": [link.to_dict() for link in case.store.links],
    }


@router.post("/nodes", status_code=201)
def create_node(body: NodeCreate, request: Request) -> dict[str, Any]:
    case = _case(request)
    if not body.label.strip():
        raise HTTPException(status_code=422, detail="Node label must not be empty.")
    node = new_manual_node(body.label.strip(), body.type, body.properties)
    try:
        stored = case.store.create_node(node)
    except DuplicateNodeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _node_response(case, stored)


@router.get("/nodes/{node_id}")
def get_node(node_id: str, request: Request) -> dict[str, Any]:
    """Inspector view: the node, its associated evidence and its connections.

    ``links`` are the outgoing links with their index for ``DELETE /graph/links``;
    ``incoming`` lists the links pointing at the node.
    """
    case = _case(request)
    node = _get_or_404(case, node_id)
    file_ids = case.file_ids_for(node_id)
    links = case.store.links
    return {
        "node": _node_response(case, node),
        "files": [f.summary() for f in case.registry.files() if f.id in file_ids],
        "links": [
            {"index": index, **link.to_dict()}
            for index, link in enumerate(links)
            if link.source == node_id
        ],
        "incoming": [
            link.to_dict() for link in case.store.links_for(node_id) if link.source != node_id
        ],
    }


@router.put("/nodes/{node_id}")
def update_node(node_id: str, body: NodeUpdate, request: Request) -> dict[str, Any]:
    case = _case(request)
    node = _get_or_404(case, node_id)
    pairs = (
        [(p.key, p.value) for p in body.properties]
        if body.properties is not None
        else list(node.properties.items())
    )
    try:
        updated = apply_property_edits(
            node,
            pairs,
            label=body.label,
            node_type=body.type,
            attached_files=body.attached_files,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    case.store.update_node(updated)
    return _node_response(case, case.store.get_node(node_id))


@router.post("/nodes/{node_id}/files/{file_id}")
def attach_file(node_id: str, file_id: str, request: Request) -> dict[str, Any]:
    """Explicitly associate an evidence file with a node."""
    case = _case(request)
    try:
        updated = case.attach_file(node_id, file_id)
    except (NodeNotFoundError, EvidenceNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _node_response(case, updated)


@router.delete("/nodes/{node_id}/files/{file_id}")
def detach_file(node_id: str, file_id: str, request: Request) -> dict[str, Any]:
    """Drop the association, whether explicit or inferred from ``source_file``."""
    case = _case(request)
    try:
        updated = case.detach_file(node_id, file_id)
    except (NodeNotFoundError, EvidenceNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _node_response(case, updated)


@router.delete("/nodes/{node_id}")
def delete_node(node_id: str, request: Request) -> Response:
    """Delete a node and cascade to its links."""
    if not _case(request).store.delete_node(node_id):
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id!r}")
    return Response(status_code=204)


@router.post("/links", status_code=201)
def create_link(body: LinkCreate, request: Request) -> dict[str, Any]:
    case = _case(request)
    try:
        target, label = validate_link_input(body.target, body.label)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        link = case.store.add_link(body.source.strip(), target, label, body.properties)
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return link.to_dict()


@router.delete("/links")
def delete_link(index: int, request: Request) -> Response:
    """Remove the link at *index* in ``GET /graph`` order."""
    store = _case(request).store
    links = store.links
    if not 0 <= index < len(links):
        raise HTTPException(status_code=404, detail=f"No link at index {index}")
    store.remove_link(links[index])
    return Response(status_code=204)


@router.post("/ingest")
def ingest(body: FragmentPayload, request: Request) -> dict[str, int]:
    """Merge a fragment; nodes and links already present are skipped."""
    result = _case(request).store.ingest_batch(body.to_fragment())
    return {
        "nodes_added": result.nodes_added,
        "nodes_skipped": result.nodes_skipped,
        "links_added": result.links_added,
        "links_skipped": result.links_skipped,
    }


@router.get("/timeline")
def get_timeline(
    request: Request, file_id: Optional[str] = None, node_id: Optional[str] = None
) -> list[dict[str, Any]]:
    case = _case(request)
    groups = timeline(case.store.nodes, case.registry.files(), file_id, node_id)
    return [
        {"month": month, "events": [event.to_dict() for event in events]}
        for month, events in groups
    ]
