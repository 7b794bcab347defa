"""
Spreadsheet error codes.

Errors raised while evaluating a formula are FormulaError instances; the
evaluator turns them into the display string of their error code, so they
never reach the caller as exceptions.
"""

from typing import Any, Dict, Optional


class FormulaError(Exception):
    """An evaluation failure that renders as a spreadsheet error code."""

    ERROR_CODES = {
        'VALUE': '#VALUE!',
        'NA': '#N/A',
        'NAME': '#NAME?',
        'REF': '#REF!',
        'DIV0': '#DIV/0!',
        'ERROR': '#ERROR!',
    }

    def __init__(self, error_type: str, message: str = "", details: Optional[str] = None):
        self.error_type = error_type
        self.error_code = self.ERROR_CODES.get(error_type, '#ERROR!')
        self.message = message
        self.details = details
        super().__init__(f"{self.error_code} {message}".strip())


class FormulaSyntaxError(ValueError):
    """The formula text could not be tokenized or parsed."""

    def __init__(self, message: str, position: int = -1):
        self.position = position
        super().__init__(message if position < 0 else f"{message} at position {position}")


def is_error_code(value: Any) -> bool:
    """True if value is one of the known error code strings."""
    return isinstance(value, str) and value in FormulaError.ERROR_CODES.values()


class ErrorTranslator:
    """Translates errors to spreadsheet-style error payloads."""

    @staticmethod
    def error_code(error: Exception) -> str:
        """Return the error code an exception is displayed as."""
        if isinstance(error, FormulaError):
            return error.error_code
        # Arithmetic faults, including division by zero, are not told apart.
        return FormulaError.ERROR_CODES['ERROR']

    @staticmethod
    def translate(error: Exception, context: str = "") -> Dict[str, Any]:
        """Translate an exception into a JSON-friendly error description."""
        if isinstance(error, FormulaError):
            return {
                'error_code': error.error_code,
                'message': error.message,
                'details': error.details,
                'context': context,
            }

        if isinstance(error, FormulaSyntaxError):
            return {'error_code': '#NAME?', 'message': 'Invalid formula', 'details': str(error), 'context': context}
        elif isinstance(error, ZeroDivisionError):
            return {'error_code': '#ERROR!', 'message': 'Division by zero', 'details': str(error), 'context': context}
        elif isinstance(error, (TypeError, ValueError)):
            return {'error_code': '#VALUE!', 'message': 'Value error', 'details': str(error), 'context': context}
        else:
            return {'error_code': '#ERROR!', 'message': 'Formula error', 'details': str(error), 'context': context}
