"""Smart-create: a reviewed batch of node suggestions from the assistant.

The user reviews the whole batch, deselects what they do not want, and
confirms.  Only confirmed, selected suggestions reach the graph, and only at
confirmation time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from solaris.ai.agent import AgentReply, ConversationalAgent
from solaris.ai.parsing import loads_model_json
from solaris.ai.prompts import (
    AGENT_ERROR_TEXT,
    SUGGESTION_PARSE_ERROR_TEXT,
    suggestion_prompt,
    suggestions_summary,
)
from solaris.chat.models import ChatLog, ChatMessage
from solaris.errors import AgentError, DuplicateNodeError, SuggestionBatchError
from solaris.graph.models import (
    GRAPH_COLORS,
    GraphNode,
    NodeType,
    Provenance,
    make_node_id,
    utc_now_iso,
)
from solaris.graph.store import GraphStore

logger = logging.getLogger(__name__)


class NodeSuggestion(BaseModel):
    label: str
    type: NodeType
    reason: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


_SUGGESTIONS = TypeAdapter(list[NodeSuggestion])


@dataclass
class SuggestionBatch:
    suggestions: list[NodeSuggestion]
    selected: set[int] = field(default_factory=set)

    @classmethod
    def all_selected(cls, suggestions: list[NodeSuggestion]) -> SuggestionBatch:
        return cls(suggestions=suggestions, selected=set(range(len(suggestions))))

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.model_dump(mode="json") for s in self.suggestions],
            "selected": sorted(self.selected),
        }


def parse_suggestions(text: str) -> list[NodeSuggestion]:
    """Validate a model reply as a JSON array of suggestions.

    Raises:
        ValueError: If the text is not a valid, non-empty suggestion array.
    """
    try:
        items = _SUGGESTIONS.validate_python(loads_model_json(text))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Unusable suggestion list: {exc}") from exc
    if not items:
        raise ValueError("Suggestion list is empty")
    return items


class SuggestionReconciler:
    def __init__(
        self,
        store: GraphStore,
        agent: ConversationalAgent,
        log: ChatLog,
        on_proposals: Optional[Callable[[AgentReply], list[ChatMessage]]] = None,
    ) -> None:
        self.store = store
        self.agent = agent
        self.log = log
        # Receives tool calls that arrive with a suggestion reply.
        self.on_proposals = on_proposals
        self.batch: Optional[SuggestionBatch] = None
        self.requesting = False

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    async def request_suggestions(self) -> Optional[SuggestionBatch]:
        """Ask the assistant for missing nodes and open a review batch.

        Returns:
            The new batch (every item selected), or ``None`` if the reply
            could not be used; a chat message explains the failure.

        Raises:
            SuggestionBatchError: If a batch is already under review or
                another request is still waiting for the assistant.
        """
        if self.batch is not None:
            raise SuggestionBatchError("A suggestion batch is already under review")
        if self.requesting:
            raise SuggestionBatchError("A suggestion request is already in progress")

        self.requesting = True
        try:
            reply = await self.agent.send_message(suggestion_prompt())
        except AgentError:
            logger.exception("Suggestion request failed")
            self.log.say(AGENT_ERROR_TEXT)
            return None
        finally:
            self.requesting = False

        if reply.tool_calls:
            if self.on_proposals is not None:
                self.on_proposals(AgentReply(tool_calls=reply.tool_calls))
            else:
                logger.warning("Dropping %d tool call(s) from suggestion reply", len(reply.tool_calls))

        try:
            suggestions = parse_suggestions(reply.text)
        except ValueError as exc:
            logger.warning("Discarding suggestion reply: %s", exc)
            self.log.say(SUGGESTION_PARSE_ERROR_TEXT)
            return None

        self.batch = SuggestionBatch.all_selected(suggestions)
        logger.info("Opened suggestion batch with %d item(s)", len(suggestions))
        return self.batch

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def _require_batch(self) -> SuggestionBatch:
        if self.batch is None:
            raise SuggestionBatchError("No suggestion batch is under review")
        return self.batch

    def toggle(self, index: int) -> bool:
        """Flip selection of *index*; returns whether it is now selected."""
        batch = self._require_batch()
        if not 0 <= index < len(batch.suggestions):
            raise IndexError(f"Suggestion index out of range: {index}")
        if index in batch.selected:
            batch.selected.discard(index)
            return False
        batch.selected.add(index)
        return True

    def select(self, indices: Iterable[int]) -> None:
        """Replace the selection with *indices*."""
        batch = self._require_batch()
        chosen = set(indices)
        for index in chosen:
            if not 0 <= index < len(batch.suggestions):
                raise IndexError(f"Suggestion index out of range: {index}")
        batch.selected = chosen

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def confirm(self, selected: Optional[Iterable[int]] = None) -> list[GraphNode]:
        """Create one node per selected suggestion, in index order.

        Args:
            selected: Replace the batch selection before confirming.

        Returns:
            The nodes as stored.

        Raises:
            DuplicateNodeError: If a generated id is already stored.  Nothing
                is created and the batch stays open.
        """
        if selected is not None:
            self.select(selected)
        batch = self._require_batch()

        nodes: list[GraphNode] = []
        for index in sorted(batch.selected):
            suggestion = batch.suggestions[index]
            nodes.append(GraphNode(
                id=make_node_id("smart", str(index)),
                label=suggestion.label,
                type=suggestion.type,
                properties={
                    "description": suggestion.reason,
                    "source": Provenance.SMART_CREATE.value,
                    "custom_color": GRAPH_COLORS["suggestion"],
                    "created_at": utc_now_iso(),
                },
            ))
        for node in nodes:
            if node.id in self.store:
                raise DuplicateNodeError(node.id)

        created = [self.store.create_node(node) for node in nodes]

        self.log.say(suggestions_summary(len(created)))
        self.batch = None
        logger.info("Confirmed %d suggestion(s)", len(created))
        return created

    def cancel(self) -> None:
        """Discard the batch without touching the graph."""
        self.batch = None
