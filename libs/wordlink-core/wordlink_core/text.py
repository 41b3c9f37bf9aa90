"""Sentence segmentation and tokenization shared by every alignment stage."""

from __future__ import annotations

import re
from typing import List

PUNCTUATION = ".,!?;:\"'()[]{}"
SENTENCE_ENDINGS = ".!?"

_PUNCT_RE = re.compile(f"[{re.escape(PUNCTUATION)}]")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_BOUNDARY_RE = re.compile(f"(?<=[{re.escape(SENTENCE_ENDINGS)}])\\s+")


def tokenize(text: str) -> List[str]:
    """Return the normalized tokens of ``text``.

    Rules:
    - lowercase
    - strip the fixed punctuation set
    - split on runs of whitespace
    - drop empty tokens

    Whole sentences and phrase fragments go through this same function, so both sides of
    every phrase match are normalized identically.
    """

    no_punct = _PUNCT_RE.sub("", text.lower())
    return [token for token in _WHITESPACE_RE.split(no_punct) if token]


def split_into_sentences(text: str) -> List[str]:
    """Split a text block into sentences, keeping the terminator on the left piece.

    Never returns an empty list: when no piece survives trimming the trimmed input is
    returned as the only sentence.
    """

    trimmed = text.strip()
    sentences = [piece.strip() for piece in _SENTENCE_BOUNDARY_RE.split(trimmed)]
    sentences = [s for s in sentences if s]
    return sentences if sentences else [trimmed]
