"""Capability schema the assistant may propose, and its argument model.

The assistant is bound to ``create_node`` but never executes it; a proposal
becomes a pending chat message that waits for the user.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ValidationError, field_validator

from solaris.errors import InvalidToolArgumentsError
from solaris.graph.models import NodeType

CREATE_NODE = "create_node"

CREATE_NODE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": CREATE_NODE,
        "description": (
            "Create a new node/entity in the knowledge graph. Use this when the "
            "user explicitly asks to add information or when you identify a "
            "missing critical entity."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "label": {
                    "type": "string",
                    "description": "Short name of the entity (e.g., 'John Doe', 'Contract B')",
                },
                "type": {
                    "type": "string",
                    "description": "One of: ENTITY, EVENT, CONFLICT, DISCREPANCY",
                },
                "description": {
                    "type": "string",
                    "description": "Context or details about this node",
                },
                "timestamp": {
                    "type": "string",
                    "description": "ISO Date string if applicable",
                },
            },
            "required": ["label", "type"],
        },
    },
}


class CreateNodeArgs(BaseModel):
    label: str
    type: NodeType
    description: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("label must not be empty")
        return value.strip()

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


def parse_create_node_args(args: dict[str, Any]) -> CreateNodeArgs:
    """Validate proposed ``create_node`` arguments.

    Raises:
        InvalidToolArgumentsError: If the label is missing/blank or the type
            is not a known node type.
    """
    try:
        return CreateNodeArgs.model_validate(args)
    except ValidationError as exc:
        raise InvalidToolArgumentsError(str(exc)) from exc
