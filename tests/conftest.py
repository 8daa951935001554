"""Shared fixtures: in-memory collaborators and a small case graph.

No test talks to a model provider.  ``FakeAgent`` and ``FakeAnalyzer``
satisfy the agent/analyzer protocols and replay queued replies; queue an
exception instance to make the next call fail.
"""

from __future__ import annotations

import random

import pytest

from solaris.ai.agent import AgentReply
from solaris.chat.models import ChatLog
from solaris.config import settings
from solaris.evidence.models import EvidenceUpload
from solaris.evidence.registry import EvidenceRegistry
from solaris.graph.models import GraphFragment, GraphLink, GraphNode, NodeType
from solaris.graph.store import GraphStore


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeAgent:
    def __init__(self) -> None:
        self.replies: list = []
        self.messages: list[str] = []
        self.function_results: list[tuple[str, str, dict]] = []
        self.started_with: list | None = None

    def _next(self) -> AgentReply:
        if not self.replies:
            return AgentReply()
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def start(self, files) -> None:
        self.started_with = list(files)

    async def send_message(self, text: str) -> AgentReply:
        self.messages.append(text)
        return self._next()

    async def send_function_result(self, call_id: str, name: str, response: dict) -> AgentReply:
        self.function_results.append((call_id, name, response))
        return self._next()


class FakeAnalyzer:
    def __init__(self) -> None:
        self.results: list = []
        self.calls: list[list] = []

    async def analyze(self, files) -> GraphFragment:
        self.calls.append(list(files))
        if not self.results:
            return GraphFragment()
        item = self.results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def workspace(tmp_path, monkeypatch):
    """Point the workspace (account DB, CLI context) at a temp dir."""
    monkeypatch.setattr(settings, "workspace_dir", tmp_path)
    return tmp_path


@pytest.fixture()
def store() -> GraphStore:
    return GraphStore(link_dedup_includes_label=False, placement_radius=50, rng=random.Random(7))


@pytest.fixture()
def agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture()
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture()
def log() -> ChatLog:
    return ChatLog()


@pytest.fixture()
def registry() -> EvidenceRegistry:
    reg = EvidenceRegistry()
    reg.register(
        [
            EvidenceUpload("Bank_Transfer.pdf", "application/pdf", b"%PDF-1.4"),
            EvidenceUpload("Audio.mp3", "audio/mpeg", b"ID3"),
            EvidenceUpload("screenshot.png", "image/png", b"\x89PNG"),
        ]
    )
    return reg


@pytest.fixture()
def fragment() -> GraphFragment:
    """Three nodes (one conflict) and two links, as an analyzer would return."""
    return GraphFragment(
        nodes=[
            GraphNode("mark", "Mark", NodeType.ENTITY, {"source_file": "Audio.mp3"}),
            GraphNode(
                "transfer",
                "Transfer $50k",
                NodeType.EVENT,
                {"source_file": "Bank_Transfer.pdf, Page 1", "timestamp": "2024-03-12"},
            ),
            GraphNode(
                "disc",
                "DISCREPANCY",
                NodeType.DISCREPANCY,
                {"timestamp": "2024-02-01", "description": "Dates differ"},
            ),
        ],
        links=[
            GraphLink("mark", "transfer", "SENT", {"confidence": 0.9}),
            GraphLink("disc", "transfer", "CONTRADICTS"),
        ],
    )
