"""In-memory graph store for one case.

``GraphStore`` is the single piece of shared mutable state.  It is created
once per case and handed by reference to every consumer (HTTP routers, the
chat session, the CLI); nothing mutates nodes or links except the methods
below, and each of them finishes before returning, so under asyncio no two
mutations ever interleave.

Merge semantics
---------------
``ingest_batch`` is first-writer-wins:

* a node is skipped if its id is already stored (or appeared earlier in the
  same fragment);
* a link is skipped if a link with the same dedup key exists.  The key is
  ``(source, target)`` by default, so two differently-labelled relations
  between the same pair collapse to the first one.  Set
  ``LINK_DEDUP_INCLUDES_LABEL=true`` to key on ``(source, target, label)``.

Manual ``add_link`` never deduplicates.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Optional

from solaris.config import settings
from solaris.errors import DuplicateNodeError, NodeNotFoundError
from solaris.graph.models import (
    GraphFragment,
    GraphLink,
    GraphNode,
    IngestResult,
    NodeType,
    Position,
    Provenance,
    make_node_id,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


class GraphStore:
    """Authoritative mapping of nodes and links, in insertion order."""

    def __init__(
        self,
        link_dedup_includes_label: Optional[bool] = None,
        placement_radius: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._links: list[GraphLink] = []
        self._dedup_label = (
            settings.link_dedup_includes_label
            if link_dedup_includes_label is None
            else link_dedup_includes_label
        )
        self._radius = (
            settings.placement_radius if placement_radius is None else placement_radius
        )
        self._rng = rng or random.Random()
        self.version = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def nodes(self) -> tuple[GraphNode, ...]:
        return tuple(self._nodes.values())

    @property
    def links(self) -> tuple[GraphLink, ...]:
        return tuple(self._links)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """Return the stored node or ``None``."""
        return self._nodes.get(node_id)

    def outgoing_links(self, node_id: str) -> list[GraphLink]:
        """Links whose source is *node_id* (the inspector's connection list)."""
        return [link for link in self._links if link.source == node_id]

    def links_for(self, node_id: str) -> list[GraphLink]:
        """Links where *node_id* is the source **or** the target."""
        return [link for link in self._links if link.touches(node_id)]

    def to_dict(self) -> dict[str, Any]:
        """Export every node and link for rendering and export."""
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "links": [link.to_dict() for link in self._links],
        }

    # ------------------------------------------------------------------
    # Merge ingestion
    # ------------------------------------------------------------------

    def _link_key(self, link: GraphLink) -> tuple[str, ...]:
        return link.labelled_key() if self._dedup_label else link.pair_key()

    def ingest_batch(self, fragment: GraphFragment) -> IngestResult:
        """Merge an analyzer fragment, skipping anything already present.

        Ingesting the same fragment twice leaves the store exactly as after
        the first call.
        """
        result = IngestResult()

        seen_ids = set(self._nodes)
        accepted_nodes: list[GraphNode] = []
        for node in fragment.nodes:
            if node.id in seen_ids:
                result.nodes_skipped += 1
                continue
            seen_ids.add(node.id)
            accepted_nodes.append(node.copy())

        seen_keys = {self._link_key(link) for link in self._links}
        accepted_links: list[GraphLink] = []
        for link in fragment.links:
            key = self._link_key(link)
            if key in seen_keys:
                result.links_skipped += 1
                continue
            seen_keys.add(key)
            accepted_links.append(
                GraphLink(link.source, link.target, link.label, dict(link.properties))
            )

        for node in accepted_nodes:
            self._nodes[node.id] = node
        self._links.extend(accepted_links)

        result.nodes_added = len(accepted_nodes)
        result.links_added = len(accepted_links)
        if accepted_nodes or accepted_links:
            self.version += 1
        logger.info(
            "Ingested fragment: +%d nodes (%d dup), +%d links (%d dup)",
            result.nodes_added,
            result.nodes_skipped,
            result.links_added,
            result.links_skipped,
        )
        return result

    # ------------------------------------------------------------------
    # Node CRUD
    # ------------------------------------------------------------------

    def _initial_position(self) -> Position:
        if not self._nodes:
            return Position(0.0, 0.0)
        count = len(self._nodes)
        sum_x = sum((n.position.x if n.position else 0.0) for n in self._nodes.values())
        sum_y = sum((n.position.y if n.position else 0.0) for n in self._nodes.values())
        angle = self._rng.random() * math.pi * 2
        return Position(
            sum_x / count + math.cos(angle) * self._radius,
            sum_y / count + math.sin(angle) * self._radius,
        )

    def create_node(self, node: GraphNode) -> GraphNode:
        """Insert *node* near the centroid of the current layout.

        Any position on the incoming node is replaced.  The stored copy is
        returned.

        Raises:
            DuplicateNodeError: If the id is already stored.
        """
        if node.id in self._nodes:
            raise DuplicateNodeError(node.id)
        stored = node.copy()
        stored.position = self._initial_position()
        self._nodes[stored.id] = stored
        self.version += 1
        logger.debug("Created node %s (%s)", stored.id, stored.label)
        return stored

    def update_node(self, node: GraphNode) -> bool:
        """Replace the node with the same id.  No-op if it is not stored.

        Returns:
            ``True`` if a node was replaced.
        """
        if node.id not in self._nodes:
            logger.debug("update_node ignored unknown id %s", node.id)
            return False
        self._nodes[node.id] = node.copy()
        self.version += 1
        return True

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and every link touching it.

        This is a no-op if the node does not exist.
        """
        if node_id not in self._nodes:
            return False
        remaining = [link for link in self._links if not link.touches(node_id)]
        removed_links = len(self._links) - len(remaining)
        del self._nodes[node_id]
        self._links = remaining
        self.version += 1
        logger.debug("Deleted node %s and %d link(s)", node_id, removed_links)
        return True

    # ------------------------------------------------------------------
    # Link CRUD
    # ------------------------------------------------------------------

    def add_link(
        self,
        source: str,
        target: str,
        label: str,
        properties: Optional[dict[str, Any]] = None,
    ) -> GraphLink:
        """Append a directed link.  Duplicates are allowed.

        Raises:
            NodeNotFoundError: If either endpoint is not stored.
        """
        for endpoint in (source, target):
            if endpoint not in self._nodes:
                raise NodeNotFoundError(endpoint)
        link = GraphLink(source, target, label, dict(properties or {}))
        self._links.append(link)
        self.version += 1
        return link

    def remove_link(self, link: GraphLink) -> bool:
        """Remove exactly this link instance.

        Structurally equal copies stay in place; only the object identical to
        *link* is removed.
        """
        for index, existing in enumerate(self._links):
            if existing is link:
                del self._links[index]
                self.version += 1
                return True
        return False


# ---------------------------------------------------------------------------
# Node factories for the three non-analyzer lineages
# ---------------------------------------------------------------------------

def new_manual_node(
    label: str = "New Node",
    node_type: NodeType = NodeType.ENTITY,
    properties: Optional[dict[str, Any]] = None,
) -> GraphNode:
    """Template for a node created by hand in the UI or CLI."""
    props: dict[str, Any] = {
        "created_at": utc_now_iso(),
        "note": "Manually created",
        "source": Provenance.MANUAL.value,
    }
    props.update(properties or {})
    return GraphNode(
        id=make_node_id("manual"),
        label=label,
        type=node_type,
        properties=props,
    )


