"""Chat log records and the tool-call approval state machine.

A message that carries a tool call is always created ``PENDING`` through
:meth:`ChatMessage.tool_proposal`; it moves exactly once, to ``SUCCESS`` or
``REJECTED``, through :meth:`ChatMessage.resolve`.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from time import time
from typing import Any, Iterator, Optional

from solaris.errors import InvalidTransitionError, MessageNotFoundError


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class ToolStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ToolStatus.PENDING

    def transition(self, target: ToolStatus) -> ToolStatus:
        """Return *target* if ``self -> target`` is a legal move.

        Raises:
            InvalidTransitionError: For any move other than
                ``PENDING -> SUCCESS`` or ``PENDING -> REJECTED``.
        """
        if self is ToolStatus.PENDING and target.is_terminal:
            return target
        raise InvalidTransitionError(
            f"Tool call already {self.value}; cannot move to {target.value}"
        )


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": dict(self.args)}


def _message_id(tag: str = "") -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(5))
    stamp = str(int(time() * 1000))
    return f"{tag}-{stamp}-{suffix}" if tag else f"{stamp}-{suffix}"


@dataclass
class ChatMessage:
    id: str
    role: Role
    text: str
    timestamp: datetime
    tool_call: Optional[ToolCall] = None
    tool_status: Optional[ToolStatus] = None

    def __post_init__(self) -> None:
        if (self.tool_call is None) != (self.tool_status is None):
            raise ValueError("tool_call and tool_status must be set together")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def text_message(cls, role: Role, text: str, message_id: Optional[str] = None) -> ChatMessage:
        return cls(
            id=message_id or _message_id(),
            role=role,
            text=text,
            timestamp=datetime.now(timezone.utc),
        )

    @classmethod
    def tool_proposal(cls, call: ToolCall, text: str) -> ChatMessage:
        return cls(
            id=_message_id("tool"),
            role=Role.MODEL,
            text=text,
            timestamp=datetime.now(timezone.utc),
            tool_call=call,
            tool_status=ToolStatus.PENDING,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    @property
    def is_pending(self) -> bool:
        return self.tool_status is ToolStatus.PENDING

    def resolve(self, target: ToolStatus) -> None:
        if self.tool_status is None:
            raise InvalidTransitionError(f"Message {self.id!r} carries no tool call")
        self.tool_status = self.tool_status.transition(target)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.tool_call is not None:
            data["tool_call"] = self.tool_call.to_dict()
            data["tool_status"] = self.tool_status.value  # type: ignore[union-attr]
        return data


class ChatLog:
    """Append-only, session-scoped message log."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        return message

    def say(self, text: str, role: Role = Role.MODEL) -> ChatMessage:
        """Append a plain text message."""
        return self.append(ChatMessage.text_message(role, text))

    def get(self, message_id: str) -> ChatMessage:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise MessageNotFoundError(f"Message not found: {message_id!r}")

    def pending(self) -> list[ChatMessage]:
        return [m for m in self._messages if m.is_pending]

    def messages(self) -> list[ChatMessage]:
        return list(self._messages)
