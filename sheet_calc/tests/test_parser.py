"""Tests for the formula tokenizer and parser."""

import pytest

from calc.errors import FormulaSyntaxError
from calc.parser import (
    Binary, Call, Comparison, FormulaParser, Name, Number, Range, Reference,
    String, TokenType, Unary, tokenize,
)


def test_tokenize_classifies_references_and_names():
    tokens = tokenize('sum(a1:b2) + c3')
    assert [(t.type, t.value) for t in tokens] == [
        (TokenType.NAME, 'SUM'),
        (TokenType.LPAREN, '('),
        (TokenType.RANGE, 'A1:B2'),
        (TokenType.RPAREN, ')'),
        (TokenType.OPERATOR, '+'),
        (TokenType.REFERENCE, 'C3'),
    ]


def test_string_literals_keep_case_and_unescape_quotes():
    tokens = tokenize('"Say ""Hi""",\'x\'')
    assert tokens[0] == (TokenType.STRING, 'Say "Hi"', 0)
    assert tokens[2].value == 'x'


@pytest.mark.parametrize('expression, text', [
    ('SUM(1:3)', '1:3'),
    ('SUM(a1 : 1)', 'A1:1'),
    ('SUM(A1:)', 'A1:'),
    ('SUM(:B2)', ':B2'),
])
def test_malformed_ranges_are_still_range_tokens(expression, text):
    tokens = tokenize(expression)
    assert tokens[2] == (TokenType.RANGE, text, 4)


def test_function_name_that_looks_like_a_reference():
    tokens = tokenize('LOG10(2)')
    assert tokens[0].type is TokenType.NAME


def test_unknown_character_raises():
    with pytest.raises(FormulaSyntaxError):
        tokenize('1 @ 2')


def test_precedence():
    assert FormulaParser.parse_expression('1+2*3') == Binary(
        '+', Number('1'), Binary('*', Number('2'), Number('3')))


def test_parentheses_and_unary_minus():
    assert FormulaParser.parse_expression('-(1+2)') == Unary(
        '-', Binary('+', Number('1'), Number('2')))


def test_nested_call_arguments_split_on_top_level_commas():
    node = FormulaParser.parse_expression('IF(SUM(A1:A2)>1,"a,b",C1)')
    assert node == Call('IF', (
        Comparison('>', Call('SUM', (Range('A1:A2'),)), Number('1')),
        String('a,b'),
        Reference('C1'),
    ))


def test_bare_word_is_a_name():
    assert FormulaParser.parse_expression('false') == Name('FALSE')


def test_empty_call():
    assert FormulaParser.parse_expression('TODAY()') == Call('TODAY', ())


@pytest.mark.parametrize('expression', ['', '1+', '(1', '1 2', 'SUM(A1:A2', 'IF(,1)'])
def test_syntax_errors(expression):
    with pytest.raises(FormulaSyntaxError):
        FormulaParser.parse_expression(expression)


class TestExtractReferences:
    def test_references_and_ranges(self):
        refs = FormulaParser.extract_references('=SUM(A1:B2)+C3')
        assert refs == {'A1', 'B1', 'A2', 'B2', 'C3'}

    def test_string_literals_are_not_references(self):
        assert FormulaParser.extract_references('=VLOOKUP("A5",A1:A2,1)') == {'A1', 'A2'}

    def test_plain_values_have_no_references(self):
        assert FormulaParser.extract_references('A1') == set()
        assert FormulaParser.extract_references('') == set()
