"""Evidence analyzer: files in, graph fragment out.

:class:`EvidenceAnalyzer` is the seam the case session depends on.
:class:`LLMEvidenceAnalyzer` sends every file in one multimodal request to
the configured chat model and validates the JSON it returns.
"""

from __future__ import annotations

import base64
import io
import json
import logging
from typing import Any, Optional, Protocol, Sequence

from pydantic import ValidationError
from pypdf import PdfReader

from solaris.ai.llm import get_chat_model, message_text
from solaris.ai.parsing import loads_model_json
from solaris.ai.prompts import ANALYSIS_PROMPT, SYSTEM_INSTRUCTION
from solaris.errors import AnalyzerError
from solaris.evidence.models import EvidenceFile, MediaKind
from solaris.graph.models import GraphFragment
from solaris.graph.payloads import FragmentPayload

logger = logging.getLogger(__name__)


class EvidenceAnalyzer(Protocol):
    async def analyze(self, files: Sequence[EvidenceFile]) -> GraphFragment:
        """Return the fragment extracted from *files*.

        Raises:
            AnalyzerError: On transport failure or an unusable reply.
        """
        ...


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------

def _pdf_text(file: EvidenceFile) -> str:
    reader = PdfReader(io.BytesIO(file.content))
    pages = []
    for number, page in enumerate(reader.pages, start=1):
        text = (page.extract_text() or "").strip()
        if text:
            pages.append(f"[Page {number}]\n{text}")
    return "\n\n".join(pages)


def evidence_blocks(file: EvidenceFile) -> list[dict[str, Any]]:
    """Return the LangChain content blocks describing one evidence file.

    Every file is preceded by a text block carrying its name so the model
    can ground ``source_file`` on it.

    Raises:
        AnalyzerError: If the file has no content.
    """
    if not file.content:
        raise AnalyzerError(f"File content is empty: {file.name}")

    header = {"type": "text", "text": f"Evidence file: {file.name} ({file.media_kind.value})"}
    encoded = base64.b64encode(file.content).decode("ascii")

    if file.media_kind is MediaKind.IMAGE:
        body: dict[str, Any] = {
            "type": "image_url",
            "image_url": {"url": f"data:{file.mime_type};base64,{encoded}"},
        }
    elif file.media_kind is MediaKind.PDF:
        try:
            text = _pdf_text(file)
        except Exception as exc:  # noqa: BLE001
            raise AnalyzerError(f"Could not read PDF {file.name}: {exc}") from exc
        body = {"type": "text", "text": text or "(no extractable text)"}
    elif file.media_kind is MediaKind.AUDIO:
        body = {
            "type": "audio",
            "source_type": "base64",
            "mime_type": file.mime_type,
            "data": encoded,
        }
    else:
        body = {
            "type": "file",
            "source_type": "base64",
            "mime_type": file.mime_type,
            "data": encoded,
        }
    return [header, body]


def parse_fragment(text: str) -> GraphFragment:
    """Parse and validate a model reply into a :class:`GraphFragment`.

    Raises:
        AnalyzerError: If the reply is not JSON or fails validation.
    """
    try:
        data = loads_model_json(text)
        return FragmentPayload.model_validate(data).to_fragment()
    except (json.JSONDecodeError, ValidationError) as exc:
        raise AnalyzerError(f"Analyzer returned an unusable fragment: {exc}") from exc


# ---------------------------------------------------------------------------
# LLM-backed analyzer
# ---------------------------------------------------------------------------

class LLMEvidenceAnalyzer:
    """Analyzer backed by the chat model from :func:`get_chat_model`."""

    def __init__(self, llm: Optional[Any] = None) -> None:
        self._llm = llm

    def _model(self) -> Any:
        if self._llm is None:
            self._llm = get_chat_model(json_mode=True)
        return self._llm

    async def analyze(self, files: Sequence[EvidenceFile]) -> GraphFragment:
        from langchain_core.messages import HumanMessage, SystemMessage

        content: list[dict[str, Any]] = []
        for file in files:
            content.extend(evidence_blocks(file))
        content.append({"type": "text", "text": ANALYSIS_PROMPT})

        logger.info("Analyzing %d evidence file(s)", len(files))
        try:
            response = await self._model().ainvoke(
                [SystemMessage(content=SYSTEM_INSTRUCTION), HumanMessage(content=content)]
            )
        except Exception as exc:  # noqa: BLE001
            raise AnalyzerError(f"Analyzer request failed: {exc}") from exc

        text = message_text(response)
        if not text.strip():
            raise AnalyzerError("No response from analyzer")
        fragment = parse_fragment(text)
        logger.info(
            "Analyzer returned %d node(s) and %d link(s)",
            len(fragment.nodes),
            len(fragment.links),
        )
        return fragment
