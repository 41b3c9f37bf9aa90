"""Decoding of the provider reply into a ``TranslationResult``."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from .models import TranslationResult

_FENCE_OPEN_RE = re.compile(r"```json\n?", re.IGNORECASE)
_FENCE_RE = re.compile(r"```\n?")


class EnvelopeError(ValueError):
    """The provider reply is not a usable translation envelope."""


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if "```" not in content:
        return content
    return _FENCE_RE.sub("", _FENCE_OPEN_RE.sub("", content)).strip()


def parse_translation_content(content: str) -> TranslationResult:
    """Parse a chat reply into a validated envelope.

    Replies are expected to be a JSON object with ``translation`` and ``alignments``;
    Markdown code fences around the object are tolerated.
    """

    cleaned = strip_code_fences(content or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise EnvelopeError(f"Provider reply is not valid JSON: {exc}") from exc
    return validate_envelope(data)


def validate_envelope(data: Any) -> TranslationResult:
    if not isinstance(data, dict):
        raise EnvelopeError("Invalid JSON structure - expected an object")
    if not data.get("translation") or "alignments" not in data:
        raise EnvelopeError("Invalid JSON structure - missing translation or alignments")
    try:
        return TranslationResult.model_validate(data)
    except ValidationError as exc:
        raise EnvelopeError(f"Invalid JSON structure - {exc.error_count()} invalid field(s)") from exc
