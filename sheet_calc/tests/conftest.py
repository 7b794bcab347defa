"""Pytest fixtures for the formula engine tests."""

from datetime import datetime

import pytest

from calc.cells import CellData
from calc.formula_engine import EvaluationContext


def build_cells(values):
    """Cell store from {key: raw}; formulas are given as (formula, display_value) tuples."""
    cells = {}
    for key, raw in values.items():
        if isinstance(raw, tuple):
            formula, display_value = raw
            cells[key] = CellData(value='', formula=formula, display_value=display_value)
        else:
            cells[key] = CellData(value=raw)
    return cells


@pytest.fixture
def make_cells():
    return build_cells


@pytest.fixture
def staff_cells():
    """Name/title lookup table in A1:B3."""
    return build_cells({
        'A1': 'Alice', 'B1': 'Engineer',
        'A2': 'Bob', 'B2': 'Manager',
        'A3': 'Carol', 'B3': 'Director',
    })


@pytest.fixture
def fixed_context():
    moment = datetime(2024, 3, 5, 14, 7, 9)
    return EvaluationContext(clock=lambda: moment)
