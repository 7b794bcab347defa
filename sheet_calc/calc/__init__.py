"""Spreadsheet formula engine."""

from .cells import CellData
from .formula_engine import EvaluationContext, evaluate_formula, extract_references
from .recalculation import DependencyGraph, apply_edit, cells_to_recalculate, recalculate, recalculate_dependents
from .references import CellReference, expand_range, format_column_label, parse_cell_reference

__all__ = [
    'CellData',
    'CellReference',
    'DependencyGraph',
    'EvaluationContext',
    'apply_edit',
    'cells_to_recalculate',
    'evaluate_formula',
    'expand_range',
    'extract_references',
    'format_column_label',
    'parse_cell_reference',
    'recalculate',
    'recalculate_dependents',
]
