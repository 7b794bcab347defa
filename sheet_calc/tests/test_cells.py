import math

import pytest

from calc.cells import (
    CellData, format_number, is_numeric_text, load_cell_store, number_of,
    parse_integer, parse_number, text_of,
)


class TestCellData:
    def test_from_dict_reads_camel_case_display_value(self):
        cell = CellData.from_dict({"value": "", "formula": "=1+1", "displayValue": "2"})
        assert cell == CellData(value="", formula="=1+1", display_value="2")

    def test_from_dict_fills_defaults(self):
        assert CellData.from_dict({}) == CellData()
        assert CellData.from_dict({"value": 5}).value == "5"

    def test_from_dict_rejects_other_types(self):
        with pytest.raises(TypeError):
            CellData.from_dict(["A1"])

    def test_from_input(self):
        assert CellData.from_input("=A1") == CellData(value="", formula="=A1")
        assert CellData.from_input("hello") == CellData(value="hello")

    def test_to_dict_round_trips_payload_keys(self):
        cell = CellData(value="", formula="=1", display_value="1")
        assert cell.to_dict() == {"value": "", "formula": "=1", "displayValue": "1"}
        assert CellData(value="x").to_dict() == {"value": "x"}

    def test_rendered(self):
        assert CellData(value="x").rendered == "x"
        assert CellData(value="x", formula="=1").rendered == ""


def test_load_cell_store_uppercases_keys():
    cells = load_cell_store({"a1": {"value": "1"}, "B2": "=A1"})
    assert set(cells) == {"A1", "B2"}
    assert cells["B2"].formula == "=A1"


def test_load_cell_store_rejects_lists():
    with pytest.raises(TypeError):
        load_cell_store(["A1"])


@pytest.mark.parametrize("text, expected", [
    ("12abc", 12.0),
    ("  3.5", 3.5),
    ("-.5", -0.5),
    ("1e3", 1000.0),
    ("Infinity", math.inf),
    ("abc", None),
    ("", None),
    (None, None),
])
def test_parse_number(text, expected):
    assert parse_number(text) == expected


def test_parse_integer():
    assert parse_integer("2.7") == 2
    assert parse_integer(" -3") == -3
    assert parse_integer("x") is None
    assert parse_integer(float("nan")) is None


def test_is_numeric_text():
    assert is_numeric_text("2.5")
    assert not is_numeric_text("2.5x")
    assert not is_numeric_text("")


@pytest.mark.parametrize("value, expected", [
    (3.0, "3"),
    (-0.0, "0"),
    (2.5, "2.5"),
    (math.inf, "Infinity"),
    (-math.inf, "-Infinity"),
    (math.nan, "NaN"),
    (1e-07, "1e-7"),
    (-1.5e-07, "-1.5e-7"),
    (1.5e-05, "0.000015"),
    (1e-06, "0.000001"),
    (1e21, "1e+21"),
    (1.5e22, "1.5e+22"),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_text_and_number_of():
    cells = {"A1": CellData(value="", formula="=1", display_value="7"), "A2": CellData(value="abc")}
    assert text_of("A1", cells) == "7"
    assert text_of("Z9", cells) == ""
    assert number_of("A2", cells) == 0.0
    assert number_of("A1", cells) == 7.0
