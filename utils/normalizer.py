"""Helpers for normalising inbound chat text before it reaches the heuristics."""

from __future__ import annotations

import re

MAX_MESSAGE_CHARS = 4000

_NUL_PATTERN = re.compile("\u0000")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_text(text: str | None, *, max_length: int = MAX_MESSAGE_CHARS) -> str:
    """Drop NUL characters, collapse whitespace and cap the length."""
    if not text:
        return ""
    cleaned = _NUL_PATTERN.sub("", text)
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    # A cut can land right after a space.
    return cleaned[: max(0, max_length)].rstrip()


def is_normalized(text: str, *, max_length: int = MAX_MESSAGE_CHARS) -> bool:
    """Report whether the text already satisfies the normaliser's output shape."""
    return normalize_text(text, max_length=max_length) == text


__all__ = ["MAX_MESSAGE_CHARS", "normalize_text", "is_normalized"]
