"""Centralised settings for the Solaris Forensic backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / local account store
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SOLARIS_WORKSPACE", Path.home() / ".solaris_forensic")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite file backing the local account store."""
        return self.workspace_dir / "accounts.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    @property
    def cli_config_dir(self) -> Path:
        """Directory holding CLI state (last export path, preferences)."""
        return self.workspace_dir / "cli"

    # ------------------------------------------------------------------
    # Chat / analysis model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "ollama")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "gemma3:12b")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o")
    )
    analyzer_temperature: float = field(
        default_factory=lambda: float(os.environ.get("ANALYZER_TEMPERATURE", "0"))
    )

    # ------------------------------------------------------------------
    # Graph store
    # ------------------------------------------------------------------
    placement_radius: float = field(
        default_factory=lambda: float(os.environ.get("PLACEMENT_RADIUS", "50"))
    )
    link_dedup_includes_label: bool = field(
        default_factory=lambda: _env_bool("LINK_DEDUP_INCLUDES_LABEL")
    )

    # ------------------------------------------------------------------
    # Smart-create suggestions
    # ------------------------------------------------------------------
    suggestion_min: int = field(
        default_factory=lambda: int(os.environ.get("SUGGESTION_MIN", "3"))
    )
    suggestion_max: int = field(
        default_factory=lambda: int(os.environ.get("SUGGESTION_MAX", "5"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton; import this everywhere:
#   from solaris.config import settings
settings = Settings()
