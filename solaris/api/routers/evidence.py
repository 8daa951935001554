"""Evidence upload endpoints.

Routes
------
POST   /evidence    Upload files (multipart); analyze and merge them
GET    /evidence    List registered files with their status and colour
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, File, HTTPException, Request, UploadFile

from solaris.evidence.models import EvidenceUpload

router = APIRouter()


@router.post("")
async def upload(request: Request, files: list[UploadFile] = File(...)) -> dict[str, Any]:
    """Register the uploaded files, run the analyzer and merge its fragment.

    An analyzer failure is reported in the body (``ok: false``) and leaves
    the files in ``error`` status.
    """
    case = request.app.state.case
    uploads = []
    for item in files:
        content = await item.read()
        if not content:
            raise HTTPException(status_code=422, detail=f"File is empty: {item.filename!r}")
        uploads.append(
            EvidenceUpload(
                name=item.filename or "upload",
                mime_type=item.content_type or "application/octet-stream",
                content=content,
            )
        )
    outcome = await case.add_evidence(uploads)
    return outcome.to_dict()


@router.get("")
def list_files(request: Request) -> list[dict[str, str]]:
    return [f.summary() for f in request.app.state.case.registry.files()]
