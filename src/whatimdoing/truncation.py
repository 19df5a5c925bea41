"""Fit activity labels into a limited display width."""

from __future__ import annotations

import unicodedata
from typing import Protocol

ELLIPSIS = "…"


class FontMetrics(Protocol):
    def width(self, text: str) -> float: ...


class FixedWidthMetrics:
    """Every character advances by the same amount."""

    def __init__(self, char_width: float = 1.0) -> None:
        if char_width <= 0:
            raise ValueError("char_width must be positive")
        self.char_width = char_width

    def width(self, text: str) -> float:
        return len(text) * self.char_width


class TerminalMetrics:
    """Width in terminal cells: wide East Asian glyphs take two, marks none."""

    def width(self, text: str) -> float:
        cells = 0
        for char in text:
            if unicodedata.combining(char) or unicodedata.category(char) in ("Mn", "Me", "Cf"):
                continue
            cells += 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1
        return float(cells)


def fit(text: str, max_width: float, metrics: FontMetrics) -> str:
    """Shorten ``text`` until ``metrics`` says it fits in ``max_width``.

    Multi-word labels keep their leading words and the last word around an
    ellipsis ("reviewing the … PR"), dropping leading words until the result
    fits. Anything else is clipped character by character.
    """
    if metrics.width(text) <= max_width:
        return text

    words = text.split()
    if len(words) > 2:
        last_word = words[-1]
        for keep in range(len(words) - 2, 0, -1):
            candidate = f"{' '.join(words[:keep])} {ELLIPSIS} {last_word}"
            if metrics.width(candidate) <= max_width:
                return candidate

    return _fit_by_characters(text, max_width, metrics)


def _fit_by_characters(text: str, max_width: float, metrics: FontMetrics) -> str:
    truncated = text
    while truncated:
        truncated = truncated[:-1]
        candidate = truncated + ELLIPSIS
        if metrics.width(candidate) <= max_width:
            return candidate
    return ELLIPSIS


def truncate_by_count(text: str, max_length: int) -> str:
    """Clip ``text`` to ``max_length`` characters, the last being an ellipsis."""
    if len(text) <= max_length:
        return text
    if max_length <= 1:
        return ELLIPSIS
    return text[: max_length - 1] + ELLIPSIS
