"""Conversational agent behind the chat panel.

The agent only ever *proposes* ``create_node`` calls; it has no access to the
graph store.  :class:`LangGraphAgent` keeps the conversation in a LangGraph
``MemorySaver`` checkpoint, one ``thread_id`` per agent instance.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, START, MessagesState, StateGraph

from solaris.ai.analyzer import evidence_blocks
from solaris.ai.llm import get_chat_model, message_text
from solaris.ai.prompts import (
    AWAITING_RESULT,
    CHAT_SYSTEM_INSTRUCTION,
    EVIDENCE_SEED_ACK,
    EVIDENCE_SEED_TEXT,
    LATE_RESULT_TEXT,
)
from solaris.ai.tools import CREATE_NODE_TOOL
from solaris.chat.models import ToolCall
from solaris.errors import AgentError
from solaris.evidence.models import EvidenceFile

logger = logging.getLogger(__name__)


@dataclass
class AgentReply:
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


class ConversationalAgent(Protocol):
    async def start(self, files: Sequence[EvidenceFile]) -> None: ...

    async def send_message(self, text: str) -> AgentReply: ...

    async def send_function_result(
        self, call_id: str, name: str, response: dict[str, Any]
    ) -> AgentReply: ...


# ---------------------------------------------------------------------------
# LangGraph implementation
# ---------------------------------------------------------------------------

def answered_history(messages: Sequence[Any]) -> list[Any]:
    """Return *messages* with every tool call answered in place.

    Providers require each assistant tool call to be followed directly by its
    tool result.  A proposal the user has not decided yet gets a placeholder
    result; a decision that arrives after the conversation moved on is
    replayed as a user note instead.  The checkpoint itself is not changed.
    """
    from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

    def late(result: Any) -> Any:
        return HumanMessage(
            content=LATE_RESULT_TEXT.format(call_id=result.tool_call_id, result=message_text(result))
        )

    answered: list[Any] = []
    index = 0
    while index < len(messages):
        message = messages[index]
        index += 1
        if isinstance(message, ToolMessage):
            answered.append(late(message))
            continue
        answered.append(message)
        calls = [c for c in getattr(message, "tool_calls", None) or [] if c.get("id")]
        if not isinstance(message, AIMessage) or not calls:
            continue

        results: dict[str, Any] = {}
        while index < len(messages) and isinstance(messages[index], ToolMessage):
            results[messages[index].tool_call_id] = messages[index]
            index += 1
        for call in calls:
            result = results.pop(call["id"], None)
            if result is None:
                result = ToolMessage(
                    content=json.dumps({"result": AWAITING_RESULT}),
                    tool_call_id=call["id"],
                    name=call.get("name"),
                )
            answered.append(result)
        answered.extend(late(extra) for extra in results.values())
    return answered


def build_agent_graph(llm: Any, seed: list[Any]):
    """Compile the single-node chat graph.

    Args:
        llm: A LangChain chat model; it is bound to the ``create_node`` tool.
        seed: Messages replayed ahead of the checkpointed history on every
            turn (the evidence hand-off and its acknowledgement). The list is
            read at call time, so it can be filled after compiling.

    Returns:
        A compiled graph with an in-memory checkpointer.
    """
    from langchain_core.messages import SystemMessage

    model = llm.bind_tools([CREATE_NODE_TOOL])

    async def assistant(state: MessagesState) -> dict:
        prompt = [
            SystemMessage(content=CHAT_SYSTEM_INSTRUCTION),
            *seed,
            *answered_history(state["messages"]),
        ]
        response = await model.ainvoke(prompt)
        return {"messages": [response]}

    graph = StateGraph(MessagesState)
    graph.add_node("assistant", assistant)
    graph.add_edge(START, "assistant")
    graph.add_edge("assistant", END)
    return graph.compile(checkpointer=MemorySaver())


def _reply_from(message: Any) -> AgentReply:
    calls = []
    for raw in getattr(message, "tool_calls", None) or []:
        calls.append(
            ToolCall(
                id=raw.get("id") or f"call-{uuid.uuid4().hex[:12]}",
                name=raw.get("name", ""),
                args=dict(raw.get("args") or {}),
            )
        )
    return AgentReply(text=message_text(message), tool_calls=calls)


class LangGraphAgent:
    """Default :class:`ConversationalAgent` backed by a LangGraph checkpoint."""

    def __init__(self, llm: Optional[Any] = None, thread_id: Optional[str] = None) -> None:
        self._llm = llm
        self._seed: list[Any] = []
        self._graph = None
        self.thread_id = thread_id or str(uuid.uuid4())

    def _compiled(self):
        if self._graph is None:
            self._graph = build_agent_graph(self._llm or get_chat_model(), self._seed)
        return self._graph

    async def start(self, files: Sequence[EvidenceFile]) -> None:
        """Hand every evidence file to the model before the first question."""
        from langchain_core.messages import AIMessage, HumanMessage

        content: list[dict[str, Any]] = [{"type": "text", "text": EVIDENCE_SEED_TEXT}]
        try:
            for file in files:
                content.extend(evidence_blocks(file))
        except Exception as exc:  # noqa: BLE001
            raise AgentError(f"Could not prepare evidence for the assistant: {exc}") from exc
        self._seed[:] = [HumanMessage(content=content), AIMessage(content=EVIDENCE_SEED_ACK)]
        self._compiled()
        logger.info("Assistant thread %s seeded with %d file(s)", self.thread_id, len(files))

    async def _run(self, message: Any) -> AgentReply:
        config = {"configurable": {"thread_id": self.thread_id}}
        try:
            result = await self._compiled().ainvoke({"messages": [message]}, config=config)
        except Exception as exc:  # noqa: BLE001
            raise AgentError(f"Assistant request failed: {exc}") from exc
        messages = result.get("messages") or []
        if not messages:
            raise AgentError("Assistant returned no messages")
        return _reply_from(messages[-1])

    async def send_message(self, text: str) -> AgentReply:
        from langchain_core.messages import HumanMessage

        return await self._run(HumanMessage(content=text))

    async def send_function_result(
        self, call_id: str, name: str, response: dict[str, Any]
    ) -> AgentReply:
        from langchain_core.messages import ToolMessage

        return await self._run(
            ToolMessage(content=json.dumps(response), tool_call_id=call_id, name=name)
        )
