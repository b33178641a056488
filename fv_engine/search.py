"""In-memory row search over the visible, addressable columns."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Sequence

from rapidfuzz import fuzz

from fv_common.errors import StaleResultError
from fv_engine.cell_format import cell_to_text
from fv_engine.models import ColumnDescriptor, Row, RowView, column_key

_DIGITS_ONLY = re.compile(r"^\d+$")
SHORT_QUERY_LENGTH = 3


class SearchMode(str, Enum):
    """How a query is matched against rows."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    AUTO = "auto"


@dataclass(frozen=True)
class FuzzyOptions:
    """Tolerance for approximate matching.

    ``threshold`` runs from 0 (the query must appear verbatim) to 1 (anything
    matches). ``distance`` bounds how far into a row's text an approximate
    match may start; it is ignored while ``ignore_location`` is set.
    """

    threshold: float = 0.35
    distance: int = 120
    ignore_location: bool = True

    @property
    def score_cutoff(self) -> float:
        clamped = min(max(self.threshold, 0.0), 1.0)
        return (1.0 - clamped) * 100.0


def normalize_text(value: Any) -> str:
    """Case-fold, fold ё into е and strip diacritics."""
    text = str(value if value is not None else "")
    text = text.replace("ё", "е").replace("Ё", "Е").casefold()
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


@dataclass(frozen=True)
class IndexedRow:
    row: Row
    original_index: int
    cells: tuple[Any, ...]
    cell_texts: tuple[str, ...]
    blob: str


@dataclass(frozen=True)
class SearchIndex:
    """Per-row searchable projection, bound to the source it was built for."""

    entries: tuple[IndexedRow, ...]
    indices: tuple[int, ...]
    source_token: Hashable | None = None

    def all_rows(self) -> list[RowView]:
        return [RowView(entry.row, entry.original_index) for entry in self.entries]


def searchable_indices(
    columns: Sequence[ColumnDescriptor], value_index: dict[str, int] | Any
) -> tuple[int, ...]:
    """Value positions of the render-ordered columns, skipping unaddressable ones."""
    positions: list[int] = []
    for column in columns:
        position = value_index.get(column_key(column))
        if isinstance(position, int):
            positions.append(position)
    return tuple(positions)


def build_index(
    rows: Sequence[Row],
    columns: Sequence[ColumnDescriptor],
    value_index: dict[str, int] | Any,
    *,
    source_token: Hashable | None = None,
) -> SearchIndex:
    """Project every row onto the searchable columns. Synchronous and pure."""
    indices = searchable_indices(columns, value_index)
    entries: list[IndexedRow] = []
    for original_index, row in enumerate(rows):
        cells = tuple(row.value_at(position) for position in indices)
        cell_texts = tuple(normalize_text(cell_to_text(cell)) for cell in cells)
        blob = " ".join(text for text in cell_texts if text)
        entries.append(
            IndexedRow(
                row=row,
                original_index=original_index,
                cells=cells,
                cell_texts=cell_texts,
                blob=blob,
            )
        )
    return SearchIndex(entries=tuple(entries), indices=indices, source_token=source_token)


def _exact(index: SearchIndex, needle: str) -> list[IndexedRow]:
    return [
        entry
        for entry in index.entries
        if any(needle in text for text in entry.cell_texts if text)
    ]


def _fuzzy(index: SearchIndex, needle: str, options: FuzzyOptions) -> list[IndexedRow]:
    cutoff = options.score_cutoff
    matched: list[IndexedRow] = []
    for entry in index.entries:
        if not entry.blob:
            continue
        if cutoff <= 0:
            matched.append(entry)
            continue
        alignment = fuzz.partial_ratio_alignment(needle, entry.blob, score_cutoff=cutoff)
        if alignment is None:
            continue
        if not options.ignore_location and alignment.dest_start > options.distance:
            continue
        matched.append(entry)
    return matched


def _digits_prefix(index: SearchIndex, query: str) -> list[IndexedRow]:
    matched: list[IndexedRow] = []
    for entry in index.entries:
        for cell in entry.cells:
            if cell is None:
                continue
            if isinstance(cell, (int, float)) and not isinstance(cell, bool):
                if str(cell).startswith(query):
                    matched.append(entry)
                    break
                continue
            text = cell_to_text(cell).strip()
            if query in text:
                matched.append(entry)
                break
    return matched


def _auto(index: SearchIndex, query: str, needle: str, options: FuzzyOptions) -> list[IndexedRow]:
    if _DIGITS_ONLY.match(query):
        return _digits_prefix(index, query)
    exact = _exact(index, needle)
    if len(needle) <= SHORT_QUERY_LENGTH or exact:
        return exact
    return [entry for entry in _fuzzy(index, needle, options) if needle in entry.blob]


def search(
    index: SearchIndex,
    query: str,
    mode: SearchMode | str = SearchMode.EXACT,
    *,
    options: FuzzyOptions | None = None,
    expected_token: Hashable | None = None,
) -> list[RowView]:
    """Return matching rows, in original order, with their original positions.

    An empty or whitespace-only query returns every row. When
    ``expected_token`` is given and differs from the index's source token the
    index is stale and :class:`StaleResultError` is raised.
    """
    if expected_token is not None and index.source_token != expected_token:
        raise StaleResultError(
            "Search index was built for a different display",
            context={"index_token": index.source_token, "expected": expected_token},
        )

    raw = (query or "").strip()
    if not raw:
        return index.all_rows()

    needle = normalize_text(raw)
    options = options or FuzzyOptions()
    resolved = SearchMode(mode)
    if resolved is SearchMode.EXACT:
        matched = _exact(index, needle)
    elif resolved is SearchMode.FUZZY:
        matched = _fuzzy(index, needle, options)
    else:
        matched = _auto(index, raw, needle, options)
    return [RowView(entry.row, entry.original_index) for entry in matched]
