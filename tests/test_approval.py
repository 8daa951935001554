"""Tests for approval-gated node proposals.

Async paths are driven with ``asyncio.run``; the agent is ``FakeAgent``.
"""

from __future__ import annotations

import asyncio

import pytest

from solaris.ai.agent import AgentReply
from solaris.chat.approval import ApprovalProtocol
from solaris.chat.models import ChatMessage, Role, ToolCall, ToolStatus
from solaris.errors import (
    AgentError,
    InvalidToolArgumentsError,
    InvalidTransitionError,
    MessageNotFoundError,
)


@pytest.fixture()
def protocol(store, agent, log) -> ApprovalProtocol:
    return ApprovalProtocol(store, agent, log)


def proposal(label="Luna Holdings", node_type="ENTITY", call_id="call-1", **extra) -> AgentReply:
    """Agent reply carrying one ``create_node`` call."""
    args = {"label": label, "type": node_type, **extra}
    return AgentReply(tool_calls=[ToolCall(id=call_id, name="create_node", args=args)])


def _pending_id(protocol: ApprovalProtocol, reply: AgentReply) -> str:
    protocol.receive(reply)
    return protocol.log.pending()[-1].id


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TestToolStatus:
    def test_pending_moves_to_terminal(self):
        assert ToolStatus.PENDING.transition(ToolStatus.SUCCESS) is ToolStatus.SUCCESS
        assert ToolStatus.PENDING.transition(ToolStatus.REJECTED) is ToolStatus.REJECTED

    @pytest.mark.parametrize("start", [ToolStatus.SUCCESS, ToolStatus.REJECTED])
    def test_terminal_states_are_final(self, start):
        for target in ToolStatus:
            with pytest.raises(InvalidTransitionError):
                start.transition(target)

    def test_tool_call_requires_status(self):
        with pytest.raises(ValueError):
            ChatMessage("m", Role.MODEL, "x", None, tool_call=ToolCall("c", "create_node"))  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# receive
# ---------------------------------------------------------------------------

class TestReceive:
    def test_text_then_one_proposal_per_call(self, protocol):
        reply = AgentReply(
            text="Two entities are missing.",
            tool_calls=[
                ToolCall("c1", "create_node", {"label": "A", "type": "ENTITY"}),
                ToolCall("c2", "create_node", {"label": "B", "type": "EVENT"}),
            ],
        )
        appended = protocol.receive(reply)
        assert [m.tool_status for m in appended] == [None, ToolStatus.PENDING, ToolStatus.PENDING]
        assert appended[1].text == "I suggest adding this to the graph:"

    def test_unknown_tool_ignored(self, protocol):
        reply = AgentReply(tool_calls=[ToolCall("c1", "delete_everything", {})])
        assert protocol.receive(reply) == []

    def test_receive_does_not_touch_graph(self, protocol, store):
        protocol.receive(proposal())
        assert len(store) == 0


# ---------------------------------------------------------------------------
# approve / reject
# ---------------------------------------------------------------------------

class TestApprove:
    def test_creates_node_with_lineage(self, protocol, store, agent):
        agent.replies.append(AgentReply(text="Added Luna Holdings."))
        message_id = _pending_id(
            protocol, proposal(description="Shell company", timestamp="2024-01-05")
        )

        status, follow_ups = asyncio.run(protocol.approve(message_id))

        assert status is ToolStatus.SUCCESS
        (node,) = store.nodes
        assert node.id.startswith("ai-")
        assert node.label == "Luna Holdings"
        assert node.properties["source"] == "AI_CHAT_APPROVED"
        assert node.properties["custom_color"] == "#e879f9"
        assert node.properties["description"] == "Shell company"
        assert node.timestamp == "2024-01-05"
        assert agent.function_results == [
            ("call-1", "create_node", {"result": "User approved. Node created successfully."})
        ]
        assert [m.text for m in follow_ups] == ["Added Luna Holdings."]
        assert protocol.log.messages()[-1] is follow_ups[0]

    def test_second_approve_is_refused(self, protocol, store):
        message_id = _pending_id(protocol, proposal())
        asyncio.run(protocol.approve(message_id))
        with pytest.raises(InvalidTransitionError):
            asyncio.run(protocol.approve(message_id))
        with pytest.raises(InvalidTransitionError):
            asyncio.run(protocol.reject(message_id))
        assert len(store) == 1

    def test_agent_failure_keeps_node(self, protocol, store, agent):
        agent.replies.append(AgentError("offline"))
        message_id = _pending_id(protocol, proposal())
        log_size = len(protocol.log)

        status, follow_ups = asyncio.run(protocol.approve(message_id))

        assert status is ToolStatus.SUCCESS
        assert follow_ups == []
        assert len(store) == 1
        assert len(protocol.log) == log_size
        assert protocol.log.get(message_id).tool_status is ToolStatus.SUCCESS

    def test_invalid_args_leave_message_pending(self, protocol, store, agent):
        message_id = _pending_id(protocol, proposal(label="  "))
        with pytest.raises(InvalidToolArgumentsError):
            asyncio.run(protocol.approve(message_id))
        assert protocol.log.get(message_id).is_pending
        assert len(store) == 0
        assert agent.function_results == []

    def test_unknown_type_rejected(self, protocol):
        message_id = _pending_id(protocol, proposal(node_type="PERSON"))
        with pytest.raises(InvalidToolArgumentsError):
            asyncio.run(protocol.approve(message_id))

    def test_lowercase_type_accepted(self, protocol, store):
        message_id = _pending_id(protocol, proposal(node_type="event"))
        asyncio.run(protocol.approve(message_id))
        assert store.nodes[0].type.value == "EVENT"

    def test_unknown_message(self, protocol):
        with pytest.raises(MessageNotFoundError):
            asyncio.run(protocol.approve("nope"))

    def test_plain_message_cannot_be_approved(self, protocol):
        message = protocol.log.say("hello")
        with pytest.raises(InvalidTransitionError):
            asyncio.run(protocol.approve(message.id))


class TestReject:
    def test_reject_sends_result_without_mutation(self, protocol, store, agent):
        agent.replies.append(AgentReply(text="Understood."))
        message_id = _pending_id(protocol, proposal())

        status, follow_ups = asyncio.run(protocol.reject(message_id))

        assert status is ToolStatus.REJECTED
        assert len(store) == 0
        assert agent.function_results[0][2] == {"result": "User rejected the proposal."}
        assert [m.text for m in follow_ups] == ["Understood."]
        with pytest.raises(InvalidTransitionError):
            asyncio.run(protocol.approve(message_id))

    def test_reject_with_empty_follow_up(self, protocol):
        message_id = _pending_id(protocol, proposal())
        _, follow_ups = asyncio.run(protocol.reject(message_id))
        assert follow_ups == []


class TestFollowUp:
    def test_follow_up_proposal_becomes_pending(self, protocol, store, agent):
        agent.replies.append(
            AgentReply(
                text="Also add the meeting.",
                tool_calls=[ToolCall("call-2", "create_node", {"label": "Board meeting", "type": "EVENT"})],
            )
        )
        message_id = _pending_id(protocol, proposal())

        _, follow_ups = asyncio.run(protocol.approve(message_id))

        assert [m.tool_status for m in follow_ups] == [None, ToolStatus.PENDING]
        (pending,) = protocol.log.pending()
        assert pending.tool_call.id == "call-2"
        assert len(store) == 1

        asyncio.run(protocol.reject(pending.id))
        assert agent.function_results[-1][0] == "call-2"
        assert protocol.log.pending() == []
