# Fichier : app/utils/json_utils.py

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from app.core.exceptions import LLMResponseError

FENCE_LINE_RE = re.compile(r"^\s*```[\w-]*\s*$", re.MULTILINE)


class JsonExtractionError(str, enum.Enum):
    EMPTY = "empty"
    NO_JSON = "no_json"
    INVALID_JSON = "invalid_json"
    MISSING_ARRAY = "missing_array"


@dataclass(frozen=True)
class JsonExtraction:
    """Outcome of :func:`extract_json_object`: a parsed dict or a typed failure."""

    value: Optional[dict[str, Any]] = None
    error: Optional[JsonExtractionError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> dict[str, Any]:
        if self.error is not None:
            raise LLMResponseError(self.message, reason=self.error.value)
        return self.value or {}


def _failure(error: JsonExtractionError, message: str) -> JsonExtraction:
    return JsonExtraction(error=error, message=message)


def strip_code_fences(raw: str) -> str:
    """Supprime les fences ```lang et les backticks isolés en début/fin de ligne."""
    text = FENCE_LINE_RE.sub("", raw.strip())
    lines = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            stripped = stripped[3:]
        if stripped.endswith("```"):
            stripped = stripped[:-3]
        lines.append(stripped.strip("`"))
    return "\n".join(lines).strip()


def extract_json_object(raw: Optional[str], required_array: Optional[str] = None) -> JsonExtraction:
    """Pull the JSON object out of a model answer.

    The text between the first ``{`` and the last ``}`` is parsed once
    fences are removed. This is a heuristic: prose containing braces around
    the payload defeats it. When ``required_array`` is set the object must
    hold a non-empty list under that key.
    """

    if raw is None or not str(raw).strip():
        return _failure(JsonExtractionError.EMPTY, "Empty response from the AI model")

    text = strip_code_fences(str(raw))
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return _failure(JsonExtractionError.NO_JSON, "No JSON object found in the AI response")

    try:
        value = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        return _failure(JsonExtractionError.INVALID_JSON, f"Invalid JSON in the AI response: {exc.msg}")

    if not isinstance(value, dict):
        return _failure(JsonExtractionError.INVALID_JSON, "The AI response is not a JSON object")

    if required_array is not None:
        items = value.get(required_array)
        if not isinstance(items, list) or not items:
            return _failure(
                JsonExtractionError.MISSING_ARRAY,
                f"The AI response has no '{required_array}' entries",
            )

    return JsonExtraction(value=value)
