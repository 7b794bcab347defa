"""
Formula tokenizer and parser.

Turns the text after the leading '=' into an expression tree. Names and cell
references are uppercased; quoted string literals keep their case.

Grammar::

    formula    := comparison EOF
    comparison := additive (COMPARISON additive)?
    additive   := term (('+' | '-') term)*
    term       := unary (('*' | '/') unary)*
    unary      := ('+' | '-') unary | primary
    primary    := NUMBER | STRING | REFERENCE | RANGE
                | NAME '(' [comparison (',' comparison)*] ')'
                | NAME
                | '(' comparison ')'
"""

import re
from enum import Enum, auto
from typing import List, NamedTuple, Optional, Set, Tuple, Union

from .errors import FormulaSyntaxError
from .references import CELL_REFERENCE_PATTERN, expand_range


class TokenType(Enum):
    NUMBER = auto()
    STRING = auto()
    RANGE = auto()
    REFERENCE = auto()
    NAME = auto()
    OPERATOR = auto()
    COMPARISON = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()


class Token(NamedTuple):
    type: TokenType
    value: str
    start: int


# order matters: ranges before names, two-character comparisons before one
TOKEN_PATTERNS = [
    (None, re.compile(r'\s+')),
    (TokenType.STRING, re.compile(r'"(?:""|[^"])*"|\'[^\']*\'')),
    # any operand:operand pair; malformed corners expand to no cells
    (TokenType.RANGE, re.compile(r'[A-Za-z0-9]*\s*:\s*[A-Za-z0-9]*(?![A-Za-z0-9_.(])')),
    (TokenType.NUMBER, re.compile(r'(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')),
    (TokenType.NAME, re.compile(r'[A-Za-z_][A-Za-z0-9_.]*')),
    (TokenType.COMPARISON, re.compile(r'>=|<=|==|!=|<>|>|<|=')),
    (TokenType.OPERATOR, re.compile(r'[+\-*/]')),
    (TokenType.LPAREN, re.compile(r'\(')),
    (TokenType.RPAREN, re.compile(r'\)')),
    (TokenType.COMMA, re.compile(r',')),
]


def _unquote(literal: str) -> str:
    if literal.startswith('"'):
        return literal[1:-1].replace('""', '"')
    return literal[1:-1]


def tokenize(expression: str) -> List[Token]:
    """Split an expression into tokens; unknown characters raise FormulaSyntaxError."""
    tokens = []
    pos = 0
    length = len(expression)

    while pos < length:
        for token_type, pattern in TOKEN_PATTERNS:
            match = pattern.match(expression, pos)
            if match:
                break
        else:
            raise FormulaSyntaxError(f"Unexpected character {expression[pos]!r}", pos)

        text = match.group(0)
        if token_type is TokenType.STRING:
            tokens.append(Token(token_type, _unquote(text), pos))
        elif token_type is TokenType.RANGE:
            tokens.append(Token(token_type, re.sub(r'\s+', '', text).upper(), pos))
        elif token_type is TokenType.NAME:
            name = text.upper()
            rest = expression[match.end():].lstrip()
            if CELL_REFERENCE_PATTERN.match(name) and not rest.startswith('('):
                tokens.append(Token(TokenType.REFERENCE, name, pos))
            else:
                tokens.append(Token(TokenType.NAME, name, pos))
        elif token_type is not None:
            tokens.append(Token(token_type, text, pos))
        pos = match.end()

    return tokens


# Expression tree

class Number(NamedTuple):
    text: str


class String(NamedTuple):
    value: str


class Reference(NamedTuple):
    key: str


class Range(NamedTuple):
    text: str


class Name(NamedTuple):
    name: str


class Unary(NamedTuple):
    op: str
    operand: 'Node'


class Binary(NamedTuple):
    op: str
    left: 'Node'
    right: 'Node'


class Comparison(NamedTuple):
    op: str
    left: 'Node'
    right: 'Node'


class Call(NamedTuple):
    name: str
    args: Tuple['Node', ...]


Node = Union[Number, String, Reference, Range, Name, Unary, Binary, Comparison, Call]


class FormulaParser:
    """Recursive-descent parser over the token list of one expression."""

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    @classmethod
    def parse_expression(cls, expression: str) -> Node:
        """Parse expression text (without the leading '=') into a tree."""
        return cls(expression).parse()

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty formula")

        node = self._comparison()
        token = self._peek()
        if token is not None:
            raise FormulaSyntaxError(f"Unexpected {token.value!r}", token.start)
        return node

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula", len(self.expression))
        self.pos += 1
        return token

    def _accept(self, token_type: TokenType, *values: str) -> Optional[Token]:
        token = self._peek()
        if token is None or token.type is not token_type:
            return None
        if values and token.value not in values:
            return None
        self.pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        token = self._advance()
        if token.type is not token_type:
            raise FormulaSyntaxError(f"Expected {token_type.name}, got {token.value!r}", token.start)
        return token

    def _comparison(self) -> Node:
        left = self._additive()
        op = self._accept(TokenType.COMPARISON)
        if op is None:
            return left
        return Comparison(op.value, left, self._additive())

    def _additive(self) -> Node:
        node = self._term()
        while True:
            op = self._accept(TokenType.OPERATOR, '+', '-')
            if op is None:
                return node
            node = Binary(op.value, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            op = self._accept(TokenType.OPERATOR, '*', '/')
            if op is None:
                return node
            node = Binary(op.value, node, self._unary())

    def _unary(self) -> Node:
        op = self._accept(TokenType.OPERATOR, '+', '-')
        if op is not None:
            return Unary(op.value, self._unary())
        return self._primary()

    def _primary(self) -> Node:
        token = self._advance()

        if token.type is TokenType.NUMBER:
            return Number(token.value)
        if token.type is TokenType.STRING:
            return String(token.value)
        if token.type is TokenType.REFERENCE:
            return Reference(token.value)
        if token.type is TokenType.RANGE:
            return Range(token.value)
        if token.type is TokenType.NAME:
            if self._accept(TokenType.LPAREN):
                return Call(token.value, self._arguments())
            return Name(token.value)
        if token.type is TokenType.LPAREN:
            node = self._comparison()
            self._expect(TokenType.RPAREN)
            return node

        raise FormulaSyntaxError(f"Unexpected {token.value!r}", token.start)

    def _arguments(self) -> Tuple[Node, ...]:
        args = []
        if self._accept(TokenType.RPAREN):
            return tuple(args)

        while True:
            args.append(self._comparison())
            if self._accept(TokenType.COMMA):
                continue
            self._expect(TokenType.RPAREN)
            return tuple(args)

    @staticmethod
    def extract_references(formula: str) -> Set[str]:
        """Cell keys a formula reads, with ranges expanded."""
        if not formula or not formula.startswith('='):
            return set()

        try:
            tokens = tokenize(formula[1:])
        except FormulaSyntaxError:
            # the arithmetic fallback strips letters, so no cell is read
            return set()

        references = set()
        for token in tokens:
            if token.type is TokenType.REFERENCE:
                references.add(token.value)
            elif token.type is TokenType.RANGE:
                references.update(expand_range(token.value))
        return references
