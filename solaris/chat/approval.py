"""Approval-gated mutation: assistant proposals wait for the user.

Each ``create_node`` call in an agent reply becomes one pending chat message.
Deciding it is a single commit point: the status moves out of ``PENDING``
and (on approval) the node is created before the agent hears about the
decision.  Whatever happens during that round trip, the decision stands.
"""

from __future__ import annotations

import logging

from solaris.ai.agent import AgentReply, ConversationalAgent
from solaris.ai.prompts import APPROVED_RESULT, REJECTED_RESULT, TOOL_PROPOSAL_TEXT
from solaris.ai.tools import CREATE_NODE, parse_create_node_args
from solaris.chat.models import ChatLog, ChatMessage, ToolStatus
from solaris.errors import AgentError, InvalidTransitionError
from solaris.graph.models import GRAPH_COLORS, GraphNode, Provenance, make_node_id
from solaris.graph.store import GraphStore

logger = logging.getLogger(__name__)

Decision = tuple[ToolStatus, list[ChatMessage]]


class ApprovalProtocol:
    def __init__(self, store: GraphStore, agent: ConversationalAgent, log: ChatLog) -> None:
        self.store = store
        self.agent = agent
        self.log = log

    def receive(self, reply: AgentReply) -> list[ChatMessage]:
        """Append an agent reply to the log.

        The reply text (if any) becomes a model message, followed by one
        pending proposal per ``create_node`` call.

        Returns:
            The messages appended, in order.
        """
        appended: list[ChatMessage] = []
        if reply.text.strip():
            appended.append(self.log.say(reply.text))
        for call in reply.tool_calls:
            if call.name != CREATE_NODE:
                logger.warning("Ignoring unsupported tool call %r", call.name)
                continue
            appended.append(self.log.append(ChatMessage.tool_proposal(call, TOOL_PROPOSAL_TEXT)))
        return appended

    def _pending(self, message_id: str) -> ChatMessage:
        message = self.log.get(message_id)
        if not message.is_pending:
            raise InvalidTransitionError(
                f"Message {message_id!r} is not awaiting a decision"
            )
        return message

    async def approve(self, message_id: str) -> Decision:
        """Approve a pending proposal and create the node it describes.

        Raises:
            MessageNotFoundError: If no message has *message_id*.
            InvalidTransitionError: If the message is not pending.
            InvalidToolArgumentsError: If the proposed arguments are unusable;
                the message stays pending.
        """
        message = self._pending(message_id)
        call = message.tool_call
        args = parse_create_node_args(call.args)  # type: ignore[union-attr]

        properties = {
            "source": Provenance.AI_CHAT_APPROVED.value,
            "custom_color": GRAPH_COLORS["selected"],
        }
        if args.description:
            properties["description"] = args.description
        if args.timestamp:
            properties["timestamp"] = args.timestamp
        node = GraphNode(
            id=make_node_id("ai"),
            label=args.label,
            type=args.type,
            properties=properties,
        )

        message.resolve(ToolStatus.SUCCESS)
        self.store.create_node(node)
        logger.info("Approved proposal %s; created node %s", message_id, node.id)

        follow_ups = await self._report(call.id, call.name, APPROVED_RESULT)  # type: ignore[union-attr]
        return ToolStatus.SUCCESS, follow_ups

    async def reject(self, message_id: str) -> Decision:
        """Reject a pending proposal.  The graph is not touched.

        Raises:
            MessageNotFoundError: If no message has *message_id*.
            InvalidTransitionError: If the message is not pending.
        """
        message = self._pending(message_id)
        call = message.tool_call
        message.resolve(ToolStatus.REJECTED)
        logger.info("Rejected proposal %s", message_id)

        follow_ups = await self._report(call.id, call.name, REJECTED_RESULT)  # type: ignore[union-attr]
        return ToolStatus.REJECTED, follow_ups

    async def _report(self, call_id: str, name: str, result: str) -> list[ChatMessage]:
        """Tell the agent about a decision and log what it says back.

        The follow-up goes through ``receive``, so a new tool call in it
        becomes another pending proposal.
        """
        try:
            reply = await self.agent.send_function_result(call_id, name, {"result": result})
        except AgentError:
            logger.exception("Dropped agent follow-up for tool call %s", call_id)
            return []
        return self.receive(reply)
