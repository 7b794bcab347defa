"""
Function library.

Every supported function is a member of FunctionName and has one handler
registered in FUNCTIONS. Handlers take the evaluator and the unevaluated
argument nodes, and return the display string. Failures are raised as
FormulaError and rendered by the evaluator.
"""

import math
import operator
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum
from typing import Callable, Dict, List, Sequence

import numpy as np

from .cells import format_number, is_numeric_text, parse_integer, parse_number
from .errors import FormulaError
from .parser import Node, Range, Reference
from .references import expand_range, range_shape


class FunctionName(str, Enum):
    SUM = 'SUM'
    AVERAGE = 'AVERAGE'
    MIN = 'MIN'
    MAX = 'MAX'
    COUNT = 'COUNT'
    COUNTA = 'COUNTA'
    ROUND = 'ROUND'
    CONCAT = 'CONCAT'
    LEN = 'LEN'
    UPPER = 'UPPER'
    LOWER = 'LOWER'
    TODAY = 'TODAY'
    NOW = 'NOW'
    IF = 'IF'
    VLOOKUP = 'VLOOKUP'


Handler = Callable[..., str]

FUNCTIONS: Dict[FunctionName, Handler] = {}

COMPARISONS = {
    '>': operator.gt,
    '<': operator.lt,
    '>=': operator.ge,
    '<=': operator.le,
    '==': operator.eq,
    '=': operator.eq,
    '!=': operator.ne,
    '<>': operator.ne,
}

# wide enough to quantize any finite float to 100 places
ROUND_CONTEXT = Context(prec=1000)


def register(*names: FunctionName):
    """Register a handler for one or more function names."""
    def decorator(handler: Handler) -> Handler:
        for name in names:
            FUNCTIONS[name] = handler
        return handler
    return decorator


def _expect_args(name: FunctionName, args: Sequence[Node], count: int):
    if len(args) != count:
        raise FormulaError('VALUE', f"{name.value} expects {count} argument(s), got {len(args)}")


def _range_keys(name: FunctionName, args: Sequence[Node]) -> List[str]:
    """Cell keys of the single range argument of an aggregate."""
    _expect_args(name, args, 1)
    arg = args[0]
    if isinstance(arg, Range):
        return expand_range(arg.text)
    if isinstance(arg, Reference):
        return [arg.key]
    raise FormulaError('VALUE', f"{name.value} expects a range")


# Aggregates

@register(FunctionName.SUM, FunctionName.AVERAGE, FunctionName.MIN, FunctionName.MAX)
def numeric_aggregate(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    """SUM, AVERAGE, MIN and MAX over one range; non-numbers count as 0."""
    keys = _range_keys(name, args)
    values = np.array([evaluator.number_of(key) for key in keys], dtype=float)

    if name is FunctionName.SUM:
        return format_number(np.sum(values))
    if values.size == 0:
        return '0'
    if name is FunctionName.AVERAGE:
        return format_number(np.sum(values) / values.size)
    if name is FunctionName.MIN:
        return format_number(np.min(values))
    return format_number(np.max(values))


@register(FunctionName.COUNT, FunctionName.COUNTA)
def count(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    """COUNT counts numeric cells, COUNTA non-empty ones."""
    texts = [evaluator.text_of(key) for key in _range_keys(name, args)]
    if name is FunctionName.COUNT:
        return str(sum(1 for text in texts if text != '' and parse_number(text) is not None))
    return str(sum(1 for text in texts if text != ''))


# Math

@register(FunctionName.ROUND)
def round_(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    _expect_args(name, args, 2)
    value = evaluator.number_or_none(args[0])
    decimals = evaluator.number_or_none(args[1])
    if value is None or decimals is None or math.isnan(value) or math.isnan(decimals):
        raise FormulaError('VALUE', "ROUND arguments must be numbers")

    places = parse_integer(decimals)
    if places is None or places < 0 or places > 100:
        raise FormulaError('ERROR', f"ROUND cannot format to {decimals} places")
    if math.isinf(value):
        return format_number(value)

    # ties round away from zero
    rounded = Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP,
                                      context=ROUND_CONTEXT)
    return f"{rounded:f}"


# Text

@register(FunctionName.CONCAT)
def concat(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    return ''.join(evaluator.text(arg) for arg in args)


@register(FunctionName.LEN, FunctionName.UPPER, FunctionName.LOWER)
def text_transform(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    _expect_args(name, args, 1)
    text = evaluator.text(args[0])
    if name is FunctionName.LEN:
        return str(len(text))
    if name is FunctionName.UPPER:
        return text.upper()
    return text.lower()


# Date

@register(FunctionName.TODAY, FunctionName.NOW)
def today(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    _expect_args(name, args, 0)
    context = evaluator.context
    moment = context.clock()
    if name is FunctionName.TODAY:
        return moment.strftime(context.date_format)
    return moment.strftime(context.datetime_format)


# Logic

@register(FunctionName.IF)
def if_(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    """IF(condition, true_value, false_value)."""
    _expect_args(name, args, 3)
    condition, true_value, false_value = args

    # comparisons evaluate to 1 or 0
    result = evaluator.number(condition) != 0

    return evaluator.text(true_value if result else false_value)


# Lookup

@register(FunctionName.VLOOKUP)
def vlookup(evaluator, name: FunctionName, args: Sequence[Node]) -> str:
    """
    VLOOKUP(lookup_value, range, column_index, [range_lookup])

    Scans the first column of the range row by row. With range_lookup
    omitted or FALSE only an exact text match counts; with TRUE the first
    column is assumed sorted ascending and the last row whose key is not
    greater than lookup_value matches.
    """
    if len(args) not in (3, 4):
        raise FormulaError('VALUE', f"VLOOKUP expects 3 or 4 arguments, got {len(args)}")

    lookup_value = evaluator.text(args[0])
    table = args[1]
    if not isinstance(table, Range):
        raise FormulaError('NA', "VLOOKUP table must be a range")

    cells = expand_range(table.text)
    shape = range_shape(table.text)
    if not cells or shape is None:
        raise FormulaError('NA', f"Invalid range {table.text}")

    num_cols = shape[1]
    num_rows = len(cells) // num_cols

    column_index = evaluator.number_or_none(args[2])
    if column_index is None or math.isnan(column_index):
        raise FormulaError('VALUE', "VLOOKUP column index must be a number")
    column_index = int(column_index)
    if column_index < 1 or column_index > num_cols:
        raise FormulaError('REF', f"Column index {column_index} is outside the range")

    approximate = len(args) == 4 and evaluator.number(args[3]) != 0

    match_row = None
    if approximate:
        match_row = _approximate_row(evaluator, cells, num_rows, num_cols, lookup_value)
    else:
        for row in range(num_rows):
            if evaluator.text_of(cells[row * num_cols]) == lookup_value:
                match_row = row
                break

    if match_row is None:
        raise FormulaError('NA', f"{lookup_value!r} not found")
    return evaluator.text_of(cells[match_row * num_cols + column_index - 1])


def _approximate_row(evaluator, cells: List[str], num_rows: int, num_cols: int, lookup_value: str):
    """Last row of a sorted first column whose key does not exceed lookup_value."""
    numeric = is_numeric_text(lookup_value)
    target = float(lookup_value) if numeric else lookup_value.lower()

    match_row = None
    for row in range(num_rows):
        key = evaluator.text_of(cells[row * num_cols])
        if key == '' or is_numeric_text(key) != numeric:
            continue
        key_value = float(key) if numeric else key.lower()
        if key_value > target:
            break
        match_row = row
    return match_row
