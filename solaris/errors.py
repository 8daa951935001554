"""Exception hierarchy for the Solaris backend.

Store-level errors propagate to callers; analyzer and agent errors are caught
where the call is made and turned into a status or a chat message.
"""

from __future__ import annotations


class SolarisError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Graph store
# ---------------------------------------------------------------------------

class NodeNotFoundError(SolarisError, LookupError):
    """A link endpoint (or another referenced node) does not exist."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id


class DuplicateNodeError(SolarisError):
    """``create_node`` was given an id that is already in the store."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node already exists: {node_id!r}")
        self.node_id = node_id


# ---------------------------------------------------------------------------
# Evidence registry
# ---------------------------------------------------------------------------

class InvalidStatusTransition(SolarisError):
    """An evidence file was moved to a status it cannot reach."""


class EvidenceNotFoundError(SolarisError, LookupError):
    """No registered evidence file carries the requested id."""

    def __init__(self, file_id: str) -> None:
        super().__init__(f"Evidence file not found: {file_id!r}")
        self.file_id = file_id


# ---------------------------------------------------------------------------
# Chat / approval
# ---------------------------------------------------------------------------

class MessageNotFoundError(SolarisError, LookupError):
    """No chat message carries the requested id."""


class InvalidTransitionError(SolarisError):
    """A tool-call message was approved or rejected more than once."""


class InvalidToolArgumentsError(SolarisError):
    """A proposed ``create_node`` call lacks a label or has an unknown type."""


class SuggestionBatchError(SolarisError):
    """A suggestion batch operation was called in the wrong state."""


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------

class AnalyzerError(SolarisError):
    """The evidence analyzer was unreachable or returned an unusable fragment."""


class AgentError(SolarisError):
    """A conversational-agent round trip failed."""


# ---------------------------------------------------------------------------
# Local account store
# ---------------------------------------------------------------------------

class AuthError(SolarisError):
    """Sign-up or sign-in was refused."""
