"""Dataclass models for uploaded evidence files.

These are plain Python objects; the HTTP layer converts them to Pydantic
response bodies and never serialises ``content``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


FILE_COLORS: tuple[str, ...] = (
    "#22d3ee",  # cyan
    "#a78bfa",  # violet
    "#fbbf24",  # amber
    "#34d399",  # emerald
    "#f472b6",  # pink
)


class MediaKind(str, Enum):
    AUDIO = "audio"
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"

    @classmethod
    def from_mime(cls, mime_type: str) -> MediaKind:
        """Classify an upload by MIME type; unknown types count as video."""
        mime = (mime_type or "").lower()
        if mime.startswith("image"):
            return cls.IMAGE
        if mime.startswith("audio"):
            return cls.AUDIO
        if mime == "application/pdf":
            return cls.PDF
        return cls.VIDEO


class FileStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"


# Allowed forward moves; processed/error are terminal.
_TRANSITIONS: dict[FileStatus, frozenset[FileStatus]] = {
    FileStatus.IDLE: frozenset({FileStatus.PROCESSING}),
    FileStatus.PROCESSING: frozenset({FileStatus.PROCESSED, FileStatus.ERROR}),
    FileStatus.PROCESSED: frozenset(),
    FileStatus.ERROR: frozenset(),
}


def can_transition(current: FileStatus, target: FileStatus) -> bool:
    return target in _TRANSITIONS[current]


@dataclass
class EvidenceUpload:
    """Raw bytes handed in by an upload surface, before registration."""

    name: str
    mime_type: str
    content: bytes


@dataclass
class EvidenceFile:
    id: str
    name: str
    media_kind: MediaKind
    color: str
    mime_type: str = "application/octet-stream"
    status: FileStatus = FileStatus.IDLE
    content: bytes = field(default=b"", repr=False)

    def summary(self) -> dict[str, str]:
        """JSON-ready view without the file bytes."""
        return {
            "id": self.id,
            "name": self.name,
            "media_kind": self.media_kind.value,
            "status": self.status.value,
            "color": self.color,
            "mime_type": self.mime_type,
        }
