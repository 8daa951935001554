"""One conversation with the assistant about a case.

``ChatSession`` owns the message log and wires the agent to the approval
protocol and the suggestion reconciler.  It shares the case's graph store by
reference.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from solaris.ai.agent import ConversationalAgent
from solaris.ai.prompts import AGENT_ERROR_TEXT, ASSISTANT_GREETING
from solaris.chat.approval import ApprovalProtocol
from solaris.chat.models import ChatLog, ChatMessage, Role
from solaris.chat.suggestions import SuggestionReconciler
from solaris.errors import AgentError
from solaris.evidence.models import EvidenceFile
from solaris.graph.store import GraphStore

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(self, store: GraphStore, agent: ConversationalAgent) -> None:
        self.store = store
        self.agent = agent
        self.log = ChatLog()
        self.approval = ApprovalProtocol(store, agent, self.log)
        self.suggestions = SuggestionReconciler(
            store, agent, self.log, on_proposals=self.approval.receive
        )
        self.started = False
        self.disposed = False

    async def start(self, files: Sequence[EvidenceFile]) -> Optional[ChatMessage]:
        """Seed the agent with the evidence and greet the user.

        Returns:
            The greeting (or error) message, or ``None`` if the session was
            disposed while the agent was being seeded.
        """
        try:
            await self.agent.start(files)
        except AgentError:
            logger.exception("Could not start the assistant")
            if self.disposed:
                return None
            return self.log.say(AGENT_ERROR_TEXT)
        if self.disposed:
            logger.debug("Session disposed during start; greeting dropped")
            return None
        self.started = True
        return self.log.say(ASSISTANT_GREETING)

    async def send(self, text: str) -> list[ChatMessage]:
        """Send a user message and log the assistant's reply.

        Returns:
            Messages appended for the reply (text and any proposals).

        Raises:
            ValueError: If *text* is blank.
        """
        if not text or not text.strip():
            raise ValueError("Message text must not be empty")
        if self.disposed:
            raise RuntimeError("Chat session has been disposed")

        self.log.append(ChatMessage.text_message(Role.USER, text.strip()))
        try:
            reply = await self.agent.send_message(text.strip())
        except AgentError:
            logger.exception("Assistant request failed")
            if self.disposed:
                return []
            return [self.log.say(AGENT_ERROR_TEXT)]

        if self.disposed:
            logger.debug("Session disposed while awaiting reply; reply dropped")
            return []
        return self.approval.receive(reply)

    def dispose(self) -> None:
        self.disposed = True
