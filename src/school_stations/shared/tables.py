"""
School Stations - HTML Table Extraction

Parses the tables in a page and picks one of them. Selection is a
strategy so a page whose layout changes can switch from the "largest
table" heuristic to a CSS selector or a header match without touching
the ingesters.

Usage:
    from school_stations.shared.tables import select_largest_table

    table = select_largest_table(html)
    df = table.to_frame()
"""

from __future__ import annotations

import copy
import io
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import pandas as pd
from bs4 import BeautifulSoup, Tag

from school_stations.shared.errors import NoTableFound

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RawTable:
    """Rows of cell strings as they appeared in the document."""

    rows: tuple[tuple[str, ...], ...]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    @property
    def cell_count(self) -> int:
        return self.row_count * self.column_count

    def cell(self, row: int, col: int) -> str:
        """Cell text, "" for cells missing from a ragged row."""
        cells = self.rows[row]
        return cells[col] if col < len(cells) else ""

    def padded_rows(self) -> list[list[str]]:
        width = self.column_count
        return [list(row) + [""] * (width - len(row)) for row in self.rows]

    @property
    def header(self) -> list[str]:
        return self.padded_rows()[0] if self.rows else []

    def to_frame(self, header: bool = True) -> pd.DataFrame:
        """
        Convert to a DataFrame of strings.

        With header=True the first row becomes the column names; blank or
        repeated header cells are made unique ("col_3", "Line_2").
        """
        rows = self.padded_rows()
        if not header:
            return pd.DataFrame(rows, dtype="object")
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows[1:], columns=_unique_headers(rows[0]), dtype="object")


def _unique_headers(names: Sequence[str]) -> list[str]:
    seen: dict[str, int] = {}
    headers = []
    for i, name in enumerate(names):
        name = name or f"col_{i}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        headers.append(name)
    return headers


# =============================================================================
# Parsing
# =============================================================================


def _own_table(table: Tag) -> Tag:
    """
    Copy of table holding only its own rows.

    Nested tables are removed (they are separate candidates) and <th>
    cells become <td> so that every row, header included, reaches the
    grid as data.
    """
    own = copy.copy(table)
    nested = [t for t in own.find_all("table") if t.find_parent("table") is own]
    for inner in nested:
        inner.decompose()
    for section in own.find_all(["thead", "tbody", "tfoot"]):
        section.unwrap()
    for cell in own.find_all("th"):
        cell.name = "td"
    for br in own.find_all("br"):
        br.replace_with(" ")
    return own


def _cell_str(value: object) -> str:
    if pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _WHITESPACE.sub(" ", str(value)).strip()


def parse_table(table: Tag) -> RawTable:
    """
    Read one <table> element into a RawTable.

    pandas.read_html builds the grid, so colspan and rowspan are expanded
    by repeating the cell text and short rows are padded with "".
    """
    own = _own_table(table)
    if own.find("td") is None:
        return RawTable(rows=())

    try:
        frames = pd.read_html(
            io.StringIO(str(own)), header=None, keep_default_na=False, thousands=None
        )
    except ValueError as e:
        # read_html refuses tables with no text at all
        logger.debug(f"Skipping table without text: {e}")
        return RawTable(rows=())
    if not frames:
        return RawTable(rows=())

    rows = tuple(
        tuple(_cell_str(value) for value in row)
        for row in frames[0].itertuples(index=False, name=None)
    )
    return RawTable(rows=rows)


def parse_tables(html: str) -> list[RawTable]:
    """Parse every table with at least one cell, in document order."""
    soup = BeautifulSoup(html, "lxml")
    tables = [parse_table(t) for t in soup.find_all("table")]
    return [t for t in tables if t.cell_count > 0]


# =============================================================================
# Selection Strategies
# =============================================================================


class TableSelector(Protocol):
    """Picks one table out of an HTML document."""

    def select(self, html: str) -> RawTable: ...


class LargestTableSelector:
    """Pick the table with the most cells (rows x columns); ties go to the first."""

    def select(self, html: str) -> RawTable:
        best: RawTable | None = None
        candidates = parse_tables(html)
        for table in candidates:
            if best is None or table.cell_count > best.cell_count:
                best = table
        if best is None:
            raise NoTableFound()
        logger.debug(
            f"Selected {best.row_count}x{best.column_count} table of {len(candidates)} candidates"
        )
        return best


class CssTableSelector:
    """Pick the first table matching a CSS selector."""

    def __init__(self, selector: str):
        self.selector = selector

    def select(self, html: str) -> RawTable:
        soup = BeautifulSoup(html, "lxml")
        node = soup.select_one(self.selector)
        if node is not None and node.name != "table":
            node = node.find("table")
        if node is None:
            raise NoTableFound(detail=f"nothing matches '{self.selector}'")
        table = parse_table(node)
        if table.cell_count == 0:
            raise NoTableFound(detail=f"table at '{self.selector}' is empty")
        return table


class HeaderTableSelector:
    """Pick the first table whose header row contains all required headers."""

    def __init__(self, required_headers: Iterable[str]):
        self.required_headers = {h.strip().lower() for h in required_headers}

    def select(self, html: str) -> RawTable:
        for table in parse_tables(html):
            header = {cell.strip().lower() for cell in table.header}
            if self.required_headers.issubset(header):
                return table
        raise NoTableFound(detail=f"no table with headers {sorted(self.required_headers)}")


def select_largest_table(html: str) -> RawTable:
    """Return the largest table in html by cell count."""
    return LargestTableSelector().select(html)


def build_selector(spec: dict | str | None) -> TableSelector:
    """
    Build a selector from dataset configuration.

    Accepts "largest", {"css": "..."} or {"headers": [...]}.
    """
    if spec is None or spec == "largest":
        return LargestTableSelector()
    if isinstance(spec, dict):
        if "css" in spec:
            return CssTableSelector(spec["css"])
        if "headers" in spec:
            return HeaderTableSelector(spec["headers"])
    raise ValueError(f"Unknown table selector: {spec!r}")
