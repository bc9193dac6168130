"""Pull the JSON document out of a model's free-text reply."""
from __future__ import annotations

import json
import re
from typing import Any

from medreport.app.core.errors import MalformedPayload

_FENCE_OPEN_RE = re.compile(r"^```[^\n]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```$")
_BACKTICKS_RE = re.compile(r"^`+|`+$")


def strip_fences(text: str) -> str:
    """Remove a surrounding ``` fenced block or inline backticks."""
    clean = (text or "").strip()

    if clean.startswith("```"):
        clean = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", clean, count=1), count=1).strip()

    if len(clean) > 1 and clean.startswith("`") and clean.endswith("`"):
        clean = _BACKTICKS_RE.sub("", clean).strip()

    return clean


def extract_json(text: str) -> Any:
    """Parse the JSON document embedded in ``text``.

    Raises:
        MalformedPayload: carrying the original ``text`` when parsing fails.
    """
    try:
        return json.loads(strip_fences(text))
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(text, reason=str(exc)) from exc
