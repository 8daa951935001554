"""Evidence registry, the only owner of :class:`EvidenceFile` records.

Files are registered in upload batches.  Each file gets a colour from
:data:`FILE_COLORS`, continuing the cycle from the number of files already
registered, and a short random id.  Only upload and post-analysis status
updates write to the registry.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Iterable, Iterator, Optional

from solaris.errors import InvalidStatusTransition
from solaris.evidence.models import (
    FILE_COLORS,
    EvidenceFile,
    EvidenceUpload,
    FileStatus,
    MediaKind,
    can_transition,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_file_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


class EvidenceRegistry:
    """Ordered collection of uploaded evidence files for one case."""

    def __init__(self) -> None:
        self._files: dict[str, EvidenceFile] = {}
        # Bumped on every write so derived views (file associations) can
        # detect staleness.
        self.version = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[EvidenceFile]:
        return iter(list(self._files.values()))

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._files

    def get(self, file_id: str) -> Optional[EvidenceFile]:
        return self._files.get(file_id)

    def files(self) -> list[EvidenceFile]:
        """All files in registration order."""
        return list(self._files.values())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(
        self,
        uploads: Iterable[EvidenceUpload],
        status: FileStatus = FileStatus.IDLE,
    ) -> list[EvidenceFile]:
        """Register a batch of uploads and return the new records.

        Colours continue the palette cycle across batches: the ``i``-th file
        of a batch gets ``FILE_COLORS[(len(registry) + i) % 5]``.
        """
        offset = len(self._files)
        added: list[EvidenceFile] = []
        for i, upload in enumerate(uploads):
            file_id = _new_file_id()
            while file_id in self._files:
                file_id = _new_file_id()
            record = EvidenceFile(
                id=file_id,
                name=upload.name,
                media_kind=MediaKind.from_mime(upload.mime_type),
                color=FILE_COLORS[(offset + i) % len(FILE_COLORS)],
                mime_type=upload.mime_type or "application/octet-stream",
                status=status,
                content=upload.content,
            )
            added.append(record)

        for record in added:
            self._files[record.id] = record
        if added:
            self.version += 1
            logger.info("Registered %d evidence file(s)", len(added))
        return added

    def set_status(self, file_ids: Iterable[str], status: FileStatus) -> None:
        """Move every listed file to *status*.

        Raises:
            KeyError: If a file id is unknown.
            InvalidStatusTransition: If any file cannot reach *status*; no
                file is changed in that case.
        """
        records = [self._files[fid] for fid in file_ids]
        for record in records:
            if record.status is not status and not can_transition(record.status, status):
                raise InvalidStatusTransition(
                    f"Cannot move {record.name!r} from {record.status.value} to {status.value}"
                )
        for record in records:
            record.status = status
        if records:
            self.version += 1

    def mark_processing(self, file_ids: Iterable[str]) -> None:
        self.set_status(file_ids, FileStatus.PROCESSING)

    def mark_processed(self, file_ids: Iterable[str]) -> None:
        self.set_status(file_ids, FileStatus.PROCESSED)

    def mark_error(self, file_ids: Iterable[str]) -> None:
        self.set_status(file_ids, FileStatus.ERROR)
