"""
Cell data and value coercion.

The cell store itself belongs to the host application; the engine reads it
through the CellData shape defined here and never mutates it.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

NUMBER_PREFIX = re.compile(r'^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))')
NUMBER_FULL = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$')
INTEGER_PREFIX = re.compile(r'^\s*([+-]?\d+)')


@dataclass
class CellData:
    """Raw content, formula and cached display value of one cell."""
    value: str = ""
    formula: Optional[str] = None
    display_value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'CellData':
        """Build a cell from a JSON payload ({value, formula, displayValue})."""
        if isinstance(data, CellData):
            return data
        if isinstance(data, str):
            return cls.from_input(data)
        if not isinstance(data, Mapping):
            raise TypeError(f"Cell data must be an object, got {type(data).__name__}")

        display_value = data.get('displayValue', data.get('display_value'))
        return cls(
            value='' if data.get('value') is None else str(data.get('value')),
            formula=data.get('formula') or None,
            display_value=None if display_value is None else str(display_value),
        )

    @classmethod
    def from_input(cls, raw: str) -> 'CellData':
        """Build a cell from content as typed: leading '=' makes it a formula."""
        raw = '' if raw is None else str(raw)
        if raw.startswith('='):
            return cls(value='', formula=raw)
        return cls(value=raw)

    def to_dict(self) -> Dict[str, Any]:
        data = {'value': self.value}
        if self.formula:
            data['formula'] = self.formula
        if self.display_value is not None:
            data['displayValue'] = self.display_value
        return data

    @property
    def rendered(self) -> str:
        """What the grid shows for this cell."""
        if self.formula:
            return self.display_value or ''
        return self.value or ''


def load_cell_store(payload: Any) -> Dict[str, CellData]:
    """Build a cell store from a JSON object keyed by cell id."""
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise TypeError("Cells must be an object keyed by cell id")
    return {str(key).upper(): CellData.from_dict(data) for key, data in payload.items()}


def parse_number(text: Any) -> Optional[float]:
    """Permissive float parsing: the longest numeric prefix wins.

    '12abc' -> 12.0, '  3.5' -> 3.5, 'abc' -> None, '' -> None.
    """
    if text is None:
        return None
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return float(text)

    match = NUMBER_PREFIX.match(str(text))
    if not match:
        return None
    return float(match.group(1).replace('Infinity', 'inf'))


def parse_integer(text: Any) -> Optional[int]:
    """Permissive integer parsing: '2.7' -> 2, 'x' -> None."""
    if isinstance(text, float):
        return None if math.isnan(text) or math.isinf(text) else int(text)
    if isinstance(text, int):
        return text

    match = INTEGER_PREFIX.match(str(text or ''))
    return int(match.group(1)) if match else None


def is_numeric_text(text: Any) -> bool:
    """True if the whole text is a number."""
    return isinstance(text, str) and bool(NUMBER_FULL.match(text))


def format_number(value: float) -> str:
    """Render a number: integral values without a fraction, others shortest repr."""
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))

    text = repr(value)
    if 'e' not in text:
        return text
    # exponent form only below 1e-6 or from 1e21 up, written as 1e-7 / 1e+21
    mantissa, exponent = text.split('e')
    exponent = int(exponent)
    if -7 < exponent < 21:
        return f"{Decimal(text):f}"
    return f"{mantissa}e{'+' if exponent > 0 else '-'}{abs(exponent)}"


def text_of(cell_id: str, cells: Mapping[str, CellData]) -> str:
    """Effective text of a cell: display value, then raw value, then ''."""
    cell = cells.get(cell_id)
    if cell is None:
        return ''
    if not isinstance(cell, CellData):
        cell = CellData.from_dict(cell)
    return cell.display_value or cell.value or ''


def number_of(cell_id: str, cells: Mapping[str, CellData]) -> float:
    """Numeric value of a cell; missing or unparseable content counts as 0."""
    number = parse_number(text_of(cell_id, cells))
    return 0.0 if number is None else number
