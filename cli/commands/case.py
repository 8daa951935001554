"""Case commands: analyze evidence files and chat about them."""

from __future__ import annotations

import asyncio
import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer

from cli.context import load_context, require_user, save_context
from cli.rendering import render_files, render_message, render_timeline, render_tree
from solaris.ai.agent import LangGraphAgent
from solaris.ai.analyzer import LLMEvidenceAnalyzer
from solaris.case import CaseSession
from solaris.chat.session import ChatSession
from solaris.errors import (
    DuplicateNodeError,
    EvidenceNotFoundError,
    InvalidToolArgumentsError,
    InvalidTransitionError,
    MessageNotFoundError,
    NodeNotFoundError,
    SuggestionBatchError,
)
from solaris.evidence.models import EvidenceUpload
from solaris.graph.views import timeline


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_uploads(paths: list[Path]) -> list[EvidenceUpload]:
    uploads = []
    for path in paths:
        if not path.is_file():
            typer.echo(f"❌ File not found: {path}")
            raise typer.Exit(code=1)
        mime, _ = mimetypes.guess_type(path.name)
        uploads.append(
            EvidenceUpload(
                name=path.name,
                mime_type=mime or "application/octet-stream",
                content=path.read_bytes(),
            )
        )
    return uploads


def _resolve_paths(files: Optional[list[Path]]) -> list[Path]:
    if files:
        return files
    remembered = [Path(p) for p in load_context().last_files]
    if not remembered:
        typer.echo("❌ No evidence files given and none remembered from a previous analysis.")
        raise typer.Exit(code=1)
    return remembered


async def _load_case(paths: list[Path]) -> CaseSession:
    case = CaseSession(analyzer=LLMEvidenceAnalyzer())
    typer.echo(f"Analyzing {len(paths)} file(s) …")
    outcome = await case.add_evidence(_read_uploads(paths))
    if not outcome.ok:
        typer.echo(f"❌ {outcome.message}")
        typer.echo(render_files(case.registry.files()))
        raise typer.Exit(code=1)
    typer.echo(f"✅ {outcome.message}")
    return case


def _remember(paths: list[Path], export: Optional[Path] = None) -> None:
    ctx = load_context()
    ctx.last_files = [str(p.resolve()) for p in paths]
    if export is not None:
        ctx.last_export = str(export)
    save_context(ctx)


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------

@require_user
def analyze(
    files: list[Path] = typer.Argument(..., help="Evidence files (audio, image, PDF, video)."),
    export: Optional[Path] = typer.Option(None, "--export", help="Write the graph JSON here."),
    show_timeline: bool = typer.Option(False, "--timeline", help="Also print the timeline."),
) -> None:
    """Extract a knowledge graph from the evidence and print it."""
    case = asyncio.run(_load_case(files))

    typer.echo(render_files(case.registry.files()))
    typer.echo("")
    typer.echo(render_tree(case.store.nodes, case.store.links))
    if show_timeline:
        typer.echo("")
        typer.echo(render_timeline(timeline(case.store.nodes, case.registry.files())))

    if export is not None:
        export.write_text(json.dumps(case.store.to_dict(), indent=2), encoding="utf-8")
        typer.echo(f"📄 Graph exported to {export}")
    _remember(files, export)


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------

def _latest_pending(chat: ChatSession, message_id: str) -> Optional[str]:
    if message_id:
        return message_id
    pending = chat.log.pending()
    return pending[-1].id if pending else None


async def _decide(chat: ChatSession, command: str, message_id: str) -> None:
    target = _latest_pending(chat, message_id)
    if target is None:
        typer.echo("No pending proposal.")
        return
    try:
        if command == "/approve":
            status, follow_ups = await chat.approval.approve(target)
        else:
            status, follow_ups = await chat.approval.reject(target)
    except (MessageNotFoundError, InvalidTransitionError, InvalidToolArgumentsError) as exc:
        typer.echo(f"❌ {exc}")
        return
    typer.echo(f"Proposal {status.value}.")
    for message in follow_ups:
        typer.echo(render_message(message))


async def _suggest(chat: ChatSession) -> None:
    seen = len(chat.log)
    try:
        batch = await chat.suggestions.request_suggestions()
    except SuggestionBatchError as exc:
        typer.echo(f"❌ {exc}")
        return
    if batch is None:
        typer.echo(render_message(chat.log.messages()[-1]))
        return
    for message in chat.log.messages()[seen:]:
        if message.is_pending:
            typer.echo(render_message(message))

    for index, suggestion in enumerate(batch.suggestions, start=1):
        typer.echo(f"  {index}. [{suggestion.type.value}] {suggestion.label}: {suggestion.reason}")
    answer = typer.prompt(
        "Keep which? (e.g. 1,3; blank keeps all; 'none' cancels)", default="", show_default=False
    ).strip()
    if answer.lower() == "none":
        chat.suggestions.cancel()
        typer.echo("Suggestions discarded.")
        return

    try:
        selected = [int(part) - 1 for part in answer.split(",") if part.strip()] if answer else None
        created = chat.suggestions.confirm(selected)
    except (ValueError, IndexError) as exc:
        chat.suggestions.cancel()
        typer.echo(f"❌ Invalid selection: {exc}")
        return
    except DuplicateNodeError as exc:
        chat.suggestions.cancel()
        typer.echo(f"❌ {exc}")
        return
    typer.echo(f"✅ {chat.log.messages()[-1].text}")
    for node in created:
        typer.echo(f"  + {node.label} ({node.id})")


def _associate(case: CaseSession, command: str, arg: str) -> None:
    parts = arg.split()
    if len(parts) != 2:
        typer.echo(f"Usage: {command} <node_id> <file_id>")
        return
    node_id, file_id = parts
    try:
        if command == "/attach":
            case.attach_file(node_id, file_id)
        else:
            case.detach_file(node_id, file_id)
    except (NodeNotFoundError, EvidenceNotFoundError) as exc:
        typer.echo(f"❌ {exc}")
        return
    names = [f.name for f in case.registry.files() if f.id in case.file_ids_for(node_id)]
    typer.echo(f"✅ {node_id}: {', '.join(names) or '(no evidence files)'}")


async def _repl(case: CaseSession) -> None:
    chat = case.open_chat(LangGraphAgent)
    greeting = await chat.start(case.registry.files())
    if greeting is not None:
        typer.echo(render_message(greeting))
    typer.echo(
        "Commands: /approve [id], /reject [id], /suggest, /graph, /files, "
        "/attach <node> <file>, /detach <node> <file>, /quit"
    )

    while True:
        line = typer.prompt("you", default="", show_default=False).strip()
        if not line:
            continue
        command, _, arg = line.partition(" ")
        if command == "/quit":
            break
        if command in ("/approve", "/reject"):
            await _decide(chat, command, arg.strip())
        elif command == "/suggest":
            await _suggest(chat)
        elif command == "/graph":
            typer.echo(render_tree(case.store.nodes, case.store.links))
        elif command == "/files":
            typer.echo(render_files(case.registry.files()))
        elif command in ("/attach", "/detach"):
            _associate(case, command, arg.strip())
        else:
            for message in await chat.send(line):
                typer.echo(render_message(message))
    case.dispose()


@require_user
def chat(
    files: Optional[list[Path]] = typer.Argument(
        None, help="Evidence files; defaults to the files of the last analysis."
    ),
) -> None:
    """Open an interactive session with the forensic assistant."""
    paths = _resolve_paths(files)

    async def _run() -> None:
        case = await _load_case(paths)
        await _repl(case)

    asyncio.run(_run())
    _remember(paths)
