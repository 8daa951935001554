"""Tests for the LLM analyzer, the LangGraph agent and their parsing helpers.

Mocking strategy
----------------
* Chat model: a small scripted stand-in with ``bind_tools`` and an async
  ``ainvoke`` that returns real ``AIMessage`` objects, so the LangGraph
  graph runs end-to-end without a provider.
* PDF text: ``solaris.ai.analyzer.PdfReader`` is patched where needed.
"""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from solaris.ai.agent import LangGraphAgent
from solaris.ai.analyzer import LLMEvidenceAnalyzer, evidence_blocks, parse_fragment
from solaris.ai.parsing import strip_code_fences
from solaris.ai.tools import parse_create_node_args
from solaris.errors import AgentError, AnalyzerError, InvalidToolArgumentsError
from solaris.evidence.models import EvidenceFile, MediaKind
from solaris.graph.models import NodeType

FRAGMENT = {
    "nodes": [
        {"id": "n1", "type": "ENTITY", "label": "Mark", "properties": {"source_file": "Audio.mp3"}},
        {"id": "n2", "type": "EVENT", "label": "Transfer", "properties": {"timestamp": "2024-03-12"}},
    ],
    "links": [{"source": "n1", "target": "n2", "label": "SENT", "properties": {"confidence": 0.9}}],
}


class ScriptedModel:
    """Chat-model stand-in replaying queued ``AIMessage`` replies."""

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.prompts: list[list] = []
        self.tools: list = []

    def bind_tools(self, tools):
        self.tools = list(tools)
        return self

    async def ainvoke(self, messages):
        self.prompts.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _file(name="Audio.mp3", kind=MediaKind.AUDIO, mime="audio/mpeg", content=b"ID3") -> EvidenceFile:
    return EvidenceFile(id="f1", name=name, media_kind=kind, color="#22d3ee", mime_type=mime, content=content)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

class TestParsing:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_parse_fragment(self):
        fragment = parse_fragment("```json\n" + json.dumps(FRAGMENT) + "\n```")
        assert [n.id for n in fragment.nodes] == ["n1", "n2"]
        assert fragment.nodes[1].type is NodeType.EVENT
        assert fragment.links[0].properties == {"confidence": 0.9}

    def test_dangling_link_rejects_fragment(self):
        bad = dict(FRAGMENT, links=[{"source": "n1", "target": "n9", "label": "X"}])
        with pytest.raises(AnalyzerError):
            parse_fragment(json.dumps(bad))

    def test_unknown_type_rejects_fragment(self):
        bad = {"nodes": [{"id": "n1", "type": "PERSON", "label": "X"}], "links": []}
        with pytest.raises(AnalyzerError):
            parse_fragment(json.dumps(bad))

    def test_not_json(self):
        with pytest.raises(AnalyzerError):
            parse_fragment("The evidence shows a transfer.")

    def test_create_node_args(self):
        args = parse_create_node_args({"label": " Luna ", "type": "entity"})
        assert (args.label, args.type) == ("Luna", NodeType.ENTITY)
        with pytest.raises(InvalidToolArgumentsError):
            parse_create_node_args({"type": "ENTITY"})


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------

class TestEvidenceBlocks:
    def test_audio_block(self):
        header, body = evidence_blocks(_file())
        assert "Audio.mp3" in header["text"]
        assert body["type"] == "audio"
        assert body["mime_type"] == "audio/mpeg"

    def test_image_is_data_url(self):
        _, body = evidence_blocks(_file("shot.png", MediaKind.IMAGE, "image/png", b"\x89PNG"))
        assert body["image_url"]["url"].startswith("data:image/png;base64,")

    def test_pdf_is_extracted_text(self):
        page = SimpleNamespace(extract_text=lambda: "Transaction ID #9928")
        with patch("solaris.ai.analyzer.PdfReader", return_value=SimpleNamespace(pages=[page])):
            _, body = evidence_blocks(_file("Bank.pdf", MediaKind.PDF, "application/pdf", b"%PDF"))
        assert body["type"] == "text"
        assert "[Page 1]" in body["text"]
        assert "#9928" in body["text"]

    def test_empty_file_rejected(self):
        with pytest.raises(AnalyzerError):
            evidence_blocks(_file(content=b""))


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class TestAnalyzer:
    def test_returns_validated_fragment(self):
        model = ScriptedModel(AIMessage(content=json.dumps(FRAGMENT)))
        fragment = asyncio.run(LLMEvidenceAnalyzer(model).analyze([_file()]))
        assert len(fragment.nodes) == 2
        system, human = model.prompts[0]
        assert isinstance(system, SystemMessage)
        assert isinstance(human, HumanMessage)
        assert human.content[-1]["text"].startswith("Analyze the attached evidence files.")

    def test_transport_failure(self):
        model = ScriptedModel(ConnectionError("refused"))
        with pytest.raises(AnalyzerError):
            asyncio.run(LLMEvidenceAnalyzer(model).analyze([_file()]))

    def test_empty_reply(self):
        model = ScriptedModel(AIMessage(content="  "))
        with pytest.raises(AnalyzerError):
            asyncio.run(LLMEvidenceAnalyzer(model).analyze([_file()]))


# ---------------------------------------------------------------------------
# LangGraph agent
# ---------------------------------------------------------------------------

class TestLangGraphAgent:
    def test_text_reply(self):
        model = ScriptedModel(AIMessage(content="Mark sent the transfer at [01:23]."))
        agent = LangGraphAgent(llm=model)

        async def _run():
            await agent.start([_file()])
            return await agent.send_message("Who sent the money?")

        reply = asyncio.run(_run())
        assert reply.text == "Mark sent the transfer at [01:23]."
        assert reply.tool_calls == []
        assert model.tools[0]["function"]["name"] == "create_node"

        prompt = model.prompts[0]
        assert isinstance(prompt[0], SystemMessage)
        assert "Audio.mp3" in json.dumps(prompt[1].content)
        assert prompt[-1].content == "Who sent the money?"

    def test_tool_call_round_trip(self):
        model = ScriptedModel(
            AIMessage(
                content="",
                tool_calls=[{"name": "create_node", "args": {"label": "Luna", "type": "ENTITY"}, "id": "call-7"}],
            ),
            AIMessage(content="Luna Holdings has been added."),
        )
        agent = LangGraphAgent(llm=model)

        async def _run():
            await agent.start([])
            first = await agent.send_message("Add Luna Holdings")
            second = await agent.send_function_result(
                "call-7", "create_node", {"result": "User approved. Node created successfully."}
            )
            return first, second

        first, second = asyncio.run(_run())
        assert first.tool_calls[0].id == "call-7"
        assert first.tool_calls[0].args == {"label": "Luna", "type": "ENTITY"}
        assert second.text == "Luna Holdings has been added."

        tool_message = model.prompts[1][-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.tool_call_id == "call-7"
        # History carries the user turn and the proposal from the first round.
        assert any(isinstance(m, HumanMessage) and m.content == "Add Luna Holdings" for m in model.prompts[1])

    def test_failure_raises_agent_error(self):
        agent = LangGraphAgent(llm=ScriptedModel(RuntimeError("boom")))
        with pytest.raises(AgentError):
            asyncio.run(agent.send_message("hello"))

    def test_separate_threads_do_not_share_history(self):
        model = ScriptedModel(AIMessage(content="one"), AIMessage(content="two"))
        a = LangGraphAgent(llm=model)
        b = LangGraphAgent(llm=model)
        asyncio.run(a.send_message("first"))
        asyncio.run(b.send_message("second"))
        assert all(
            not (isinstance(m, HumanMessage) and m.content == "first") for m in model.prompts[1]
        )

    def test_undecided_proposal_is_answered_in_prompt(self):
        model = ScriptedModel(
            AIMessage(
                content="",
                tool_calls=[{"name": "create_node", "args": {"label": "Luna", "type": "ENTITY"}, "id": "call-7"}],
            ),
            AIMessage(content="Mark sent it."),
            AIMessage(content="Noted, Luna is in the graph."),
        )
        agent = LangGraphAgent(llm=model)

        async def _run():
            await agent.send_message("Add Luna Holdings")
            await agent.send_message("Who sent the money?")
            return await agent.send_function_result(
                "call-7", "create_node", {"result": "User approved. Node created successfully."}
            )

        reply = asyncio.run(_run())
        assert reply.text == "Noted, Luna is in the graph."

        second = model.prompts[1]
        call_at = next(i for i, m in enumerate(second) if isinstance(m, AIMessage) and m.tool_calls)
        placeholder = second[call_at + 1]
        assert isinstance(placeholder, ToolMessage)
        assert placeholder.tool_call_id == "call-7"
        assert "Awaiting user decision." in placeholder.content
        assert second[call_at + 2].content == "Who sent the money?"

        third = model.prompts[2]
        assert [m.tool_call_id for m in third if isinstance(m, ToolMessage)] == ["call-7"]
        assert isinstance(third[-1], HumanMessage)
        assert "call-7" in third[-1].content
        assert "User approved." in third[-1].content
