"""Assistant chat endpoints.

Routes
------
POST   /chat/start                          Open a chat seeded with all evidence
GET    /chat/messages                       Message log
POST   /chat/messages                       Send a user message
POST   /chat/messages/{message_id}/approve  Approve a pending node proposal
POST   /chat/messages/{message_id}/reject   Reject a pending node proposal
POST   /chat/suggestions                    Ask for a smart-create batch
POST   /chat/suggestions/toggle/{index}     Flip one suggestion's selection
POST   /chat/suggestions/confirm            Create the selected suggestions
POST   /chat/suggestions/cancel             Discard the batch
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from solaris.chat.session import ChatSession
from solaris.errors import (
    DuplicateNodeError,
    InvalidToolArgumentsError,
    InvalidTransitionError,
    MessageNotFoundError,
    SuggestionBatchError,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class MessageCreate(BaseModel):
    text: str


class ConfirmRequest(BaseModel):
    selected: Optional[list[int]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _chat(request: Request) -> ChatSession:
    chat = request.app.state.case.chat
    if chat is None or chat.disposed:
        raise HTTPException(status_code=409, detail="Chat has not been started.")
    return chat


def _decision(status, follow_ups) -> dict[str, Any]:  # type: ignore[no-untyped-def]
    return {
        "status": status.value,
        "follow_ups": [m.to_dict() for m in follow_ups],
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/start", status_code=201)
async def start(request: Request) -> list[dict[str, Any]]:
    """Start a new chat; any previous chat for the case is disposed."""
    case = request.app.state.case
    chat = case.open_chat(request.app.state.agent_factory)
    await chat.start(case.registry.files())
    return [m.to_dict() for m in chat.log.messages()]


@router.get("/messages")
def list_messages(request: Request) -> list[dict[str, Any]]:
    return [m.to_dict() for m in _chat(request).log.messages()]


@router.post("/messages")
async def send_message(body: MessageCreate, request: Request) -> list[dict[str, Any]]:
    """Send a message; returns the assistant messages it produced."""
    chat = _chat(request)
    try:
        replies = await chat.send(body.text)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [m.to_dict() for m in replies]


@router.post("/messages/{message_id}/approve")
async def approve(message_id: str, request: Request) -> dict[str, Any]:
    chat = _chat(request)
    try:
        status, follow_ups = await chat.approval.approve(message_id)
    except MessageNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except InvalidToolArgumentsError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _decision(status, follow_ups)


@router.post("/messages/{message_id}/reject")
async def reject(message_id: str, request: Request) -> dict[str, Any]:
    chat = _chat(request)
    try:
        status, follow_ups = await chat.approval.reject(message_id)
    except MessageNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _decision(status, follow_ups)


@router.post("/suggestions")
async def request_suggestions(request: Request) -> dict[str, Any]:
    """Open a suggestion batch, or report why none could be produced."""
    chat = _chat(request)
    try:
        batch = await chat.suggestions.request_suggestions()
    except SuggestionBatchError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if batch is None:
        messages = chat.log.messages()
        return {"batch": None, "message": messages[-1].to_dict() if messages else None}
    return {"batch": batch.to_dict(), "message": None}


@router.post("/suggestions/toggle/{index}")
def toggle_suggestion(index: int, request: Request) -> dict[str, Any]:
    chat = _chat(request)
    try:
        chat.suggestions.toggle(index)
    except SuggestionBatchError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return chat.suggestions.batch.to_dict()  # type: ignore[union-attr]


@router.post("/suggestions/confirm")
def confirm_suggestions(request: Request, body: Optional[ConfirmRequest] = None) -> list[dict[str, Any]]:
    chat = _chat(request)
    try:
        created = chat.suggestions.confirm(body.selected if body else None)
    except (SuggestionBatchError, DuplicateNodeError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except IndexError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return [node.to_dict() for node in created]


@router.post("/suggestions/cancel")
def cancel_suggestions(request: Request) -> Response:
    _chat(request).suggestions.cancel()
    return Response(status_code=204)
