"""Helpers for reading JSON out of model replies."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences a model may wrap around JSON."""
    return _FENCE.sub("", text).strip()


def loads_model_json(text: str) -> Any:
    """Parse a model reply as JSON after stripping fences.

    Raises:
        json.JSONDecodeError: If the remaining text is not valid JSON.
    """
    return json.loads(strip_code_fences(text))
