"""
Reference Resolver

Converts between A1-style cell notation and zero-based coordinates and
expands ranges such as ``A1:C5`` into their cell keys.

All functions are pure. Malformed input yields ``None`` or an empty list,
never an exception.
"""

import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

CELL_REFERENCE_PATTERN = re.compile(r'^([A-Z]+)([0-9]+)$')


class CellReference(NamedTuple):
    """Zero-based column and row of a cell."""
    col: int
    row: int


def letter_to_col(letters: str) -> int:
    """Convert column letters to a zero-based index (A->0, Z->25, AA->26)."""
    col = 0
    for char in letters:
        col = col * 26 + (ord(char) - 64)
    return col - 1


def format_column_label(index: int) -> str:
    """Convert a zero-based column index to letters (0->A, 25->Z, 26->AA)."""
    label = ""
    while index >= 0:
        label = chr(65 + (index % 26)) + label
        index = index // 26 - 1
    return label


def parse_cell_reference(ref: str) -> Optional[CellReference]:
    """Parse a reference like 'B2' into CellReference(col=1, row=1).

    Matching is case-insensitive. Strings that are not a reference return
    None so callers can treat them as literals.
    """
    if not isinstance(ref, str):
        return None

    match = CELL_REFERENCE_PATTERN.match(ref.upper())
    if not match:
        return None

    col_letters, row_digits = match.groups()
    return CellReference(letter_to_col(col_letters), int(row_digits) - 1)


def cell_key(col: int, row: int) -> str:
    """Build a cell key from zero-based coordinates."""
    return f"{format_column_label(col)}{row + 1}"


def _range_bounds(range_string: str) -> Optional[Tuple[CellReference, CellReference]]:
    """Return the normalized (top-left, bottom-right) corners of a range."""
    if not isinstance(range_string, str):
        return None

    parts = range_string.split(':')
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None

    start = parse_cell_reference(parts[0].strip())
    end = parse_cell_reference(parts[1].strip())
    if start is None or end is None:
        return None

    top_left = CellReference(min(start.col, end.col), min(start.row, end.row))
    bottom_right = CellReference(max(start.col, end.col), max(start.row, end.row))
    return top_left, bottom_right


def expand_range(range_string: str) -> List[str]:
    """Expand 'A1:B2' into ['A1', 'B1', 'A2', 'B2'].

    Rows are the outer loop and columns the inner one. Corners may be given
    in any order. Invalid ranges expand to an empty list.
    """
    bounds = _range_bounds(range_string)
    if bounds is None:
        return []

    top_left, bottom_right = bounds
    return [
        cell_key(col, row)
        for row in range(top_left.row, bottom_right.row + 1)
        for col in range(top_left.col, bottom_right.col + 1)
    ]


def range_shape(range_string: str) -> Optional[Tuple[int, int]]:
    """Return (rows, cols) of a range, or None if it is malformed."""
    bounds = _range_bounds(range_string)
    if bounds is None:
        return None

    top_left, bottom_right = bounds
    return (bottom_right.row - top_left.row + 1, bottom_right.col - top_left.col + 1)


def sort_cell_keys(keys: Iterable[str]) -> List[str]:
    """Order cell keys the way the grid shows them: row by row, left to right.

    Keys that are not references keep their relative order at the end.
    """
    keyed = []
    trailing = []
    for key in keys:
        ref = parse_cell_reference(key)
        if ref is None:
            trailing.append(key)
        else:
            keyed.append(((ref.row, ref.col), key))

    keyed.sort(key=lambda item: item[0])
    return [key for _, key in keyed] + trailing
