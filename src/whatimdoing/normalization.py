"""Utilities to normalize user-typed activity labels."""

from __future__ import annotations

import re
from typing import Optional

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_activity_text(text: Optional[str], max_length: int) -> str:
    """Collapse whitespace and clip to the input length the views allow."""
    if not text:
        return ""
    normalized = _WHITESPACE_RUN.sub(" ", text).strip()
    if max_length > 0 and len(normalized) > max_length:
        normalized = normalized[:max_length].rstrip()
    return normalized


def matches_query(text: str, query: Optional[str]) -> bool:
    """Case-insensitive substring match; a blank query matches everything."""
    if not query or not query.strip():
        return True
    return query.strip().casefold() in text.casefold()
