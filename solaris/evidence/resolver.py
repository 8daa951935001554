"""File-association resolver.

Works out which evidence files a graph node belongs to.  Two sources feed the
answer:

1. ``properties["attached_files"]``: explicit file ids set by the user.
2. ``properties["source_file"]``: free-text provenance written by the
   analyzer.  It is matched against file names by symmetric, case-insensitive
   containment, so ``"Bank_Transfer_Final.pdf"`` matches a file called
   ``"Bank_Transfer"`` and ``"audio"`` matches ``"Audio.mp3"``.  At most one
   file is inferred this way (the first match in registration order).

Association is always derived.  Nothing here writes to the graph store or
the registry; :func:`attach_file` and :func:`detach_file` return edited
copies for the caller to commit.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Optional

from solaris.evidence.models import EvidenceFile
from solaris.graph.models import GraphNode


def _normalise(value: str) -> str:
    return value.lower().strip()


def names_match(provenance: str, file_name: str) -> bool:
    """Symmetric containment test on normalised strings.

    Blank strings never match, otherwise an empty provenance would be
    "contained" in every file name.
    """
    src = _normalise(provenance)
    name = _normalise(file_name)
    if not src or not name:
        return False
    return name in src or src in name


def matches_file(node: GraphNode, file: EvidenceFile) -> bool:
    """Return ``True`` if *node* is associated with *file*."""
    if file.id in node.attached_files:
        return True
    provenance = node.source_file
    return bool(provenance) and names_match(provenance, file.name)


def infer_from_provenance(
    node: GraphNode, files: Iterable[EvidenceFile]
) -> Optional[str]:
    """Return the id of the first file matching ``source_file``, if any."""
    provenance = node.source_file
    if not provenance:
        return None
    for file in files:
        if names_match(provenance, file.name):
            return file.id
    return None


def resolve(node: GraphNode, files: Iterable[EvidenceFile]) -> set[str]:
    """Return the ids of every evidence file associated with *node*.

    Args:
        node: The node to inspect.
        files: Registry contents in registration order (an
            :class:`~solaris.evidence.registry.EvidenceRegistry` works).

    Returns:
        Explicit attachments plus at most one provenance match.  The set has
        no ordering guarantee.
    """
    result = set(node.attached_files)
    inferred = infer_from_provenance(node, files)
    if inferred is not None:
        result.add(inferred)
    return result


def attach_file(node: GraphNode, file_id: str) -> GraphNode:
    """Return a copy of *node* with *file_id* appended to ``attached_files``."""
    updated = node.copy()
    current = updated.attached_files
    if file_id not in current:
        current.append(file_id)
    updated.properties["attached_files"] = current
    return updated


def detach_file(node: GraphNode, file: EvidenceFile) -> GraphNode:
    """Return a copy of *node* no longer associated with *file*.

    Drops ``source_file`` when it matches the file name and removes the file
    id from ``attached_files``.
    """
    updated = node.copy()
    provenance = updated.source_file
    if provenance and names_match(provenance, file.name):
        updated.properties.pop("source_file", None)
    if "attached_files" in updated.properties:
        updated.properties["attached_files"] = [
            fid for fid in updated.attached_files if fid != file.id
        ]
    return updated


class AssociationCache:
    """Memoises :func:`resolve` with one entry per node.

    Each entry is stamped with the registry version and the node's
    ``source_file`` and ``attached_files``; a changed stamp replaces the
    entry, so the cache never holds more than one result per node.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Hashable, frozenset[str]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, node: GraphNode, registry) -> frozenset[str]:  # type: ignore[no-untyped-def]
        stamp = (registry.version, node.source_file, tuple(node.attached_files))
        entry = self._entries.get(node.id)
        if entry is not None and entry[0] == stamp:
            return entry[1]
        result = frozenset(resolve(node, registry.files()))
        self._entries[node.id] = (stamp, result)
        return result

    def discard(self, node_id: str) -> None:
        self._entries.pop(node_id, None)

    def clear(self) -> None:
        self._entries.clear()
