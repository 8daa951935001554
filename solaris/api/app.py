"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, opens the account-store SQLite
connection (``request.app.state.db``) and creates the case session
(``request.app.state.case``).  On shutdown the case is disposed and the
connection closed.

Routers
-------
    /evidence  - upload and list evidence files
    /graph     - graph read/edit, fragment ingestion, timeline
    /chat      - assistant chat, proposal approval, smart-create suggestions
    /auth      - local account session
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from solaris.ai.agent import ConversationalAgent, LangGraphAgent
from solaris.ai.analyzer import EvidenceAnalyzer
from solaris.api.routers import auth as auth_router
from solaris.api.routers import chat as chat_router
from solaris.api.routers import evidence as evidence_router
from solaris.api.routers import graph as graph_router
from solaris.case import CaseSession
from solaris.config import settings
from solaris.db import get_connection, init_db
from solaris.log import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB and the case on startup; close both on shutdown."""
    configure_logging(settings.log_level)
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.case = CaseSession(analyzer=app.state.analyzer)
    try:
        yield
    finally:
        app.state.case.dispose()
        conn.close()


def create_app(
    analyzer: Optional[EvidenceAnalyzer] = None,
    agent_factory: Optional[Callable[[], ConversationalAgent]] = None,
) -> FastAPI:
    """Return a fully-configured FastAPI application instance.

    Args:
        analyzer: Evidence analyzer for the case; defaults to the LLM one.
        agent_factory: Builds the assistant for each ``/chat/start``.
    """
    app = FastAPI(
        title="Solaris Forensic API",
        description=(
            "Case workspace for forensic evidence: upload files, merge the "
            "extracted knowledge graph, edit it, and review assistant proposals."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.analyzer = analyzer
    app.state.agent_factory = agent_factory or LangGraphAgent

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(evidence_router.router, prefix="/evidence", tags=["evidence"])
    app.include_router(graph_router.router, prefix="/graph", tags=["graph"])
    app.include_router(chat_router.router, prefix="/chat", tags=["chat"])
    app.include_router(auth_router.router, prefix="/auth", tags=["auth"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn solaris.api.app:app --reload
app = create_app()
