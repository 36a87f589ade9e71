"""
School Stations - Normalization Helpers

Text cleanup for labels scraped from HTML tables:
- Name cleanup (drop suburb/postcode qualifiers)
- Join keys for matching against the reference file
- Rank parsing and banding for icon selection
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any

import pandas as pd

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]")
_RANK = re.compile(r"(\d+)")
_FOOTNOTE = re.compile(r"\[[^\]]*\]")


def strip_footnotes(text: str) -> str:
    """Remove wiki-style reference markers such as "[1]" or "[a]"."""
    return _WHITESPACE.sub(" ", _FOOTNOTE.sub("", text)).strip()


def clean_name(text: Any, separator: str = ",") -> str:
    """
    Strip trailing qualifiers from a free-text label.

    "Auburn High School, Hawthorn East, 3123" -> "Auburn High School"
    """
    if text is None or (not isinstance(text, str) and pd.isna(text)):
        return ""
    head = str(text).split(separator, 1)[0]
    return _WHITESPACE.sub(" ", head).strip()


def normalize_key(text: Any) -> str:
    """Build a case- and punctuation-insensitive join key from a label."""
    name = clean_name(text).casefold().replace("&", " and ")
    name = _NON_WORD.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


def parse_rank(value: Any) -> int | None:
    """
    Parse a rank cell such as "12", "=12" (tie) or "12th".

    Returns None for blank cells.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, int | float):
        return int(value)
    match = _RANK.search(str(value))
    if match is None:
        return None
    return int(match.group(1))


def rank_band(rank: int, band_size: int = 10) -> str:
    """
    Map a rank to its display band: ceil(rank / band_size) * band_size.

    rank_band(1) == "10", rank_band(11) == "20".
    """
    if band_size < 1:
        raise ValueError(f"band_size must be >= 1, got {band_size}")
    if rank < 1:
        raise ValueError(f"rank must be >= 1, got {rank}")
    return str(math.ceil(rank / band_size) * band_size)


def find_column(df: pd.DataFrame, candidates: Iterable[str]) -> str | None:
    """Return the first column of df matching a candidate name, ignoring case."""
    by_lower = {str(col).strip().lower(): col for col in df.columns}
    for candidate in candidates:
        col = by_lower.get(candidate.strip().lower())
        if col is not None:
            return col
    return None
