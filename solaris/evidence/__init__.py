"""Evidence package: uploaded files and their association with graph nodes."""

from solaris.evidence.models import (
    FILE_COLORS,
    EvidenceFile,
    EvidenceUpload,
    FileStatus,
    MediaKind,
)
from solaris.evidence.registry import EvidenceRegistry
from solaris.evidence.resolver import AssociationCache, matches_file, resolve

__all__ = [
    "FILE_COLORS",
    "AssociationCache",
    "EvidenceFile",
    "EvidenceRegistry",
    "EvidenceUpload",
    "FileStatus",
    "MediaKind",
    "matches_file",
    "resolve",
]
