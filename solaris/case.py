"""Case session: evidence upload, analysis and merge into one graph.

A ``CaseSession`` owns the evidence registry and the graph store for a case
and is the object every surface (HTTP app, CLI) holds on to.  The store is
handed to chat sessions by reference; nothing keeps a module-level copy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from solaris.ai.agent import ConversationalAgent
from solaris.ai.analyzer import EvidenceAnalyzer, LLMEvidenceAnalyzer
from solaris.chat.session import ChatSession
from solaris.errors import AnalyzerError, EvidenceNotFoundError, NodeNotFoundError
from solaris.evidence.models import EvidenceFile, EvidenceUpload, FileStatus
from solaris.evidence.registry import EvidenceRegistry
from solaris.evidence.resolver import AssociationCache, attach_file, detach_file
from solaris.graph.models import GraphNode, IngestResult
from solaris.graph.store import GraphStore

logger = logging.getLogger(__name__)

INGEST_FAILED_TEXT = "Failed to process evidence."


@dataclass
class IngestionOutcome:
    files: list[EvidenceFile] = field(default_factory=list)
    result: Optional[IngestResult] = None
    ok: bool = True
    message: str = ""

    def to_dict(self) -> dict:
        data: dict = {
            "ok": self.ok,
            "message": self.message,
            "files": [f.summary() for f in self.files],
        }
        if self.result is not None:
            data["result"] = {
                "nodes_added": self.result.nodes_added,
                "nodes_skipped": self.result.nodes_skipped,
                "links_added": self.result.links_added,
                "links_skipped": self.result.links_skipped,
            }
        return data


class CaseSession:
    def __init__(
        self,
        analyzer: Optional[EvidenceAnalyzer] = None,
        store: Optional[GraphStore] = None,
        registry: Optional[EvidenceRegistry] = None,
    ) -> None:
        self.analyzer = analyzer or LLMEvidenceAnalyzer()
        self.store = store or GraphStore()
        self.registry = registry or EvidenceRegistry()
        self.associations = AssociationCache()
        self.chat: Optional[ChatSession] = None
        self.disposed = False

    async def add_evidence(self, uploads: Iterable[EvidenceUpload]) -> IngestionOutcome:
        """Register a batch of uploads, analyze it and merge the fragment.

        An analyzer failure marks every file of the batch ``error`` and
        leaves the graph untouched.
        """
        files = self.registry.register(uploads, status=FileStatus.PROCESSING)
        if not files:
            return IngestionOutcome(message="No files uploaded.")
        ids = [f.id for f in files]

        try:
            fragment = await self.analyzer.analyze(files)
        except AnalyzerError:
            logger.exception("Analysis failed for %d file(s)", len(files))
            if not self.disposed:
                self.registry.mark_error(ids)
            return IngestionOutcome(files=files, ok=False, message=INGEST_FAILED_TEXT)

        if self.disposed:
            logger.debug("Case disposed during analysis; fragment dropped")
            return IngestionOutcome(files=files, ok=False, message="Case closed.")

        result = self.store.ingest_batch(fragment)
        self.registry.mark_processed(ids)
        return IngestionOutcome(
            files=files,
            result=result,
            message=f"Added {result.nodes_added} node(s) and {result.links_added} link(s).",
        )

    def file_ids_for(self, node_id: str) -> frozenset[str]:
        """Evidence file ids associated with a stored node."""
        node = self.store.get_node(node_id)
        if node is None:
            self.associations.discard(node_id)
            return frozenset()
        return self.associations.resolve(node, self.registry)

    def _node_and_file(self, node_id: str, file_id: str) -> tuple[GraphNode, EvidenceFile]:
        node = self.store.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        file = self.registry.get(file_id)
        if file is None:
            raise EvidenceNotFoundError(file_id)
        return node, file

    def attach_file(self, node_id: str, file_id: str) -> GraphNode:
        """Explicitly associate an evidence file with a node.

        Raises:
            NodeNotFoundError: If the node is not stored.
            EvidenceNotFoundError: If the file is not registered.
        """
        node, file = self._node_and_file(node_id, file_id)
        updated = attach_file(node, file.id)
        self.store.update_node(updated)
        return updated

    def detach_file(self, node_id: str, file_id: str) -> GraphNode:
        """Remove every association between a node and an evidence file.

        Drops the file from ``attached_files`` and clears a ``source_file``
        that names it.

        Raises:
            NodeNotFoundError: If the node is not stored.
            EvidenceNotFoundError: If the file is not registered.
        """
        node, file = self._node_and_file(node_id, file_id)
        updated = detach_file(node, file)
        self.store.update_node(updated)
        return updated

    def open_chat(self, agent_factory: Callable[[], ConversationalAgent]) -> ChatSession:
        """Replace the current chat (if any) with a fresh one."""
        if self.chat is not None:
            self.chat.dispose()
        self.chat = ChatSession(self.store, agent_factory())
        return self.chat

    def dispose(self) -> None:
        self.disposed = True
        if self.chat is not None:
            self.chat.dispose()
