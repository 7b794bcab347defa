"""
Formula Engine Module

Evaluates spreadsheet formulas against a read-only cell store:
- Aggregates over ranges (SUM, AVERAGE, MIN, MAX, COUNT, COUNTA)
- ROUND, text functions, TODAY/NOW, IF and VLOOKUP
- Cell references and arithmetic with standard precedence
- Spreadsheet-style error codes instead of exceptions

Each call is a pure function of the formula, the current cell and the
store snapshot.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Mapping, Optional, Set

from .cells import CellData, format_number, number_of, parse_number, text_of
from .errors import ErrorTranslator, FormulaError, FormulaSyntaxError
from .functions import COMPARISONS, FUNCTIONS, FunctionName
from .parser import (
    Binary, Call, Comparison, FormulaParser, Name, Node, Number, Range,
    Reference, String, Unary,
)

logger = logging.getLogger(__name__)

NON_ARITHMETIC = re.compile(r'[^0-9+\-*/().]')

BOOLEAN_NAMES = {'TRUE': 1.0, 'FALSE': 0.0}


@dataclass
class EvaluationContext:
    """Settings an evaluation depends on besides the cells themselves."""
    date_format: str = '%m/%d/%Y'
    datetime_format: str = '%m/%d/%Y, %I:%M:%S %p'
    clock: Callable[[], datetime] = field(default=datetime.now)


DEFAULT_CONTEXT = EvaluationContext()


class Evaluator:
    """Walks an expression tree for one formula cell."""

    def __init__(self, cells: Mapping[str, CellData], current_cell_id: str = "",
                 context: Optional[EvaluationContext] = None):
        self.cells = cells
        self.current_cell_id = current_cell_id
        self.context = context or DEFAULT_CONTEXT

    def text_of(self, cell_id: str) -> str:
        return text_of(cell_id, self.cells)

    def number_of(self, cell_id: str) -> float:
        return number_of(cell_id, self.cells)

    def display(self, node: Node) -> str:
        """Render the value of a whole formula."""
        if isinstance(node, Reference):
            return format_number(self.number_of(node.key))
        if isinstance(node, Name):
            if node.name in BOOLEAN_NAMES:
                return node.name
            raise FormulaError('NAME', f"Unknown name {node.name}")
        if isinstance(node, Number):
            return format_number(float(node.text))
        return self.text(node)

    def call(self, node: Call) -> str:
        try:
            name = FunctionName(node.name)
        except ValueError:
            raise FormulaError('NAME', f"Unknown function {node.name}")
        return FUNCTIONS[name](self, name, node.args)

    def text(self, node: Node) -> str:
        """Value of a node used as text."""
        if isinstance(node, String):
            return node.value
        if isinstance(node, Number):
            return node.text
        if isinstance(node, Reference):
            return self.text_of(node.key)
        if isinstance(node, Name):
            return node.name
        if isinstance(node, Call):
            return self.call(node)
        if isinstance(node, Comparison):
            return 'TRUE' if self.number(node) else 'FALSE'
        if isinstance(node, (Unary, Binary)):
            return format_number(self.number(node))
        raise FormulaError('VALUE', "A range cannot be used as a single value")

    def number(self, node: Node) -> float:
        """Value of a node used as a number."""
        if isinstance(node, Number):
            return float(node.text)
        if isinstance(node, Reference):
            return self.number_of(node.key)
        if isinstance(node, Unary):
            operand = self.number(node.operand)
            return -operand if node.op == '-' else operand
        if isinstance(node, Binary):
            return self._arithmetic(node)
        if isinstance(node, Comparison):
            return 1.0 if self._compare(node) else 0.0
        if isinstance(node, Name):
            if node.name in BOOLEAN_NAMES:
                return BOOLEAN_NAMES[node.name]
            raise FormulaError('NAME', f"Unknown name {node.name}")
        if isinstance(node, Range):
            raise FormulaError('VALUE', "A range cannot be used as a single value")

        # String literals and function results
        text = node.value if isinstance(node, String) else self.call(node)
        number = parse_number(text)
        if number is None:
            raise FormulaError('VALUE', f"{text!r} is not a number")
        return number

    def number_or_none(self, node: Node) -> Optional[float]:
        """Like number(), but None where the argument does not parse."""
        try:
            return self.number(node)
        except FormulaError as e:
            # a bare word is text here, not an unknown name
            if e.error_type == 'VALUE' or isinstance(node, Name):
                return None
            raise

    def comparable(self, node: Node) -> float:
        """Operand of a comparison: text that is not a number compares as NaN."""
        number = self.number_or_none(node)
        return math.nan if number is None else number

    def _arithmetic(self, node: Binary) -> float:
        left = self.number(node.left)
        right = self.number(node.right)
        if node.op == '+':
            return left + right
        if node.op == '-':
            return left - right
        if node.op == '*':
            return left * right
        return left / right

    def _compare(self, node: Comparison) -> bool:
        return COMPARISONS[node.op](self.comparable(node.left), self.comparable(node.right))


def _evaluate_sanitized(expression: str) -> str:
    """Arithmetic fallback: keep digits, operators, parentheses and dots only."""
    sanitized = NON_ARITHMETIC.sub('', expression)
    if not sanitized:
        return FormulaError.ERROR_CODES['NAME']
    node = FormulaParser.parse_expression(sanitized)
    return format_number(Evaluator({}).number(node))


def evaluate_formula(formula: str, current_cell_id: str, cells: Mapping[str, CellData],
                     context: Optional[EvaluationContext] = None) -> str:
    """
    Evaluate a formula and return what the cell should display.

    Text that does not start with '=' is returned unchanged. Failures are
    returned as error codes (#VALUE!, #N/A, #NAME?, #REF!, #ERROR!); this
    function does not raise.
    """
    if not isinstance(formula, str) or not formula.startswith('='):
        return formula

    expression = formula[1:].strip()

    try:
        try:
            node = FormulaParser.parse_expression(expression)
        except FormulaSyntaxError as e:
            logger.debug("Formula %s in %s did not parse (%s), using arithmetic fallback",
                         formula, current_cell_id, e)
            return _evaluate_sanitized(expression.upper())

        return Evaluator(cells, current_cell_id, context).display(node)

    except FormulaError as e:
        return e.error_code
    except Exception as e:
        logger.debug("Formula %s in %s failed: %s", formula, current_cell_id, e)
        return ErrorTranslator.error_code(e)


def extract_references(formula: str) -> Set[str]:
    """Cell keys a formula depends on."""
    return FormulaParser.extract_references(formula)
