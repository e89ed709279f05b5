import copy

import pytest

from formula_engine.columns import DEFAULT_COLUMNS, Column, ColumnKind
from formula_engine.functions import FORMULA_FUNCTIONS, FormulaFunctions
from formula_engine.interpreter import FormulaEngine, Outcome
from formula_engine.types import CellBlock


@pytest.fixture
def columns():
    return [
        Column("a", "Amount", ColumnKind.NUMBER),
        Column("b", "Name"),
        Column("c", "Points", ColumnKind.NUMBER),
    ]


@pytest.fixture
def rows():
    # A1:A3 = 3, "x", 4 ; B1:B3 = names ; C1:C3 = numbers stored as text
    return [
        {"a": 3, "b": "alice", "c": "10"},
        {"a": "x", "b": "Bob", "c": "2.5"},
        {"a": 4, "b": "carol", "c": None},
    ]


@pytest.fixture
def engine(columns):
    return FormulaEngine(columns)


class TestCellValues:
    def test_reference(self, engine, rows):
        assert engine.get_cell_value("A1", rows) == 3
        assert engine.get_cell_value("b2", rows) == "Bob"

    def test_numeric_text_becomes_number(self, engine, rows):
        assert engine.get_cell_value("C1", rows) == 10
        assert engine.get_cell_value("C2", rows) == 2.5

    def test_out_of_bounds(self, engine, rows):
        assert engine.get_cell_value("A4", rows) is None
        assert engine.get_cell_value("D1", rows) is None
        assert engine.get_cell_value("A0", rows) is None

    def test_invalid_reference(self, engine, rows):
        assert engine.get_cell_value("hello", rows) is None

    def test_missing_key(self, engine):
        assert engine.get_cell_value("B1", [{"a": 1}]) is None

    def test_parse_reference(self, engine):
        ref = engine.parse_reference("AA10")
        assert (ref.row, ref.column) == (9, 26)
        assert ref.coords() == "AA10"
        assert engine.parse_reference("10AA") is None


class TestRanges:
    def test_column_range(self, engine, rows):
        assert engine.parse_range("A1:A3", rows) == [3, "x", 4]

    def test_row_major_order(self, engine, rows):
        assert engine.parse_range("A1:B2", rows) == [3, "alice", "x", "Bob"]

    def test_reversed_endpoints(self, engine, rows):
        assert engine.parse_range("B2:A1", rows) == engine.parse_range("A1:B2", rows)

    def test_single_cell_range(self, engine, rows):
        assert engine.parse_range("A1:A1", rows) == [engine.get_cell_value("A1", rows)]

    def test_without_colon(self, engine, rows):
        assert engine.parse_range("C1", rows) == [10]

    def test_out_of_bounds_cells_skipped(self, engine, rows):
        assert engine.parse_range("C2:D5", rows) == [2.5, None]

    def test_malformed_endpoint(self, engine, rows):
        assert engine.parse_range("A1:foo", rows) == []

    def test_too_many_parts(self, engine, rows):
        assert engine.parse_range("A1:A2:A3", rows) == [None]

    def test_block_width(self, engine, rows):
        block = engine.parse_range("A1:C2", rows)
        assert isinstance(block, CellBlock)
        assert block.width == 3
        assert block.rows() == [[3, "alice", 10], ["x", "Bob", 2.5]]
        assert block.columns()[1] == ["alice", "Bob"]

    def test_block_width_clipped_to_columns(self, engine, rows):
        assert engine.parse_range("B1:Z2", rows).width == 2

    def test_range_larger_than_data(self, engine, rows):
        block = engine.parse_range("A1:XFD1048576", rows)
        assert block == engine.parse_range("A1:C3", rows)
        assert block.width == 3
        assert engine.evaluate("=SUM(A1:XFD1048576)", rows) == 19.5

    def test_range_outside_data(self, engine, rows):
        assert engine.parse_range("E5:F9", rows) == []


class TestEvaluate:
    def test_literals_pass_through(self, engine, rows):
        assert engine.evaluate("hello", rows) == "hello"
        assert engine.evaluate(42, rows) == 42
        assert engine.evaluate(None, rows) is None
        assert engine.evaluate(["a"], rows) == ["a"]

    def test_sum_ignores_text(self, engine, rows):
        assert engine.evaluate("=SUM(A1:A3)", rows) == 7

    def test_case_insensitive_names(self, engine, rows):
        assert engine.evaluate("=sum(A1:A2)", rows) == engine.evaluate("=SUM(A1:A2)", rows)

    @pytest.mark.parametrize("value,expected", [(10, "High"), (2, "Low")])
    def test_if_with_comparison(self, engine, value, expected):
        rows = [{"a": value}]
        assert engine.evaluate('=IF(A1>5,"High","Low")', rows) == expected

    def test_comparison_with_text(self, engine, rows):
        assert engine.evaluate('=IF(B2="bob","yes","no")', rows) == "yes"

    def test_average_empty(self, engine, rows):
        assert engine.evaluate("=AVERAGE(B1:B3)", rows) == 0

    def test_stdev_too_few(self, engine, rows):
        assert engine.evaluate("=STDEV(A1)", rows) == "#DIV/0!"

    def test_nested_call(self, engine):
        rows = [{"a": 1}, {"a": 2}, {"a": 2}]
        assert engine.evaluate("=ROUND(AVERAGE(A1:A3),2)", rows) == 1.67

    def test_deeply_nested(self, engine, rows):
        assert engine.evaluate("=UPPER(CONCAT(LEFT(B1,3),\"-\",LEN(B2)))", rows) == "ALI-3"

    def test_quoted_comma(self, engine, rows):
        assert engine.evaluate('=CONCAT("a,b","c")', rows) == "a,bc"

    @pytest.mark.parametrize("value,expected", [("zzz", "no"), ("A,B", "yes")])
    def test_comparison_with_quoted_comma(self, engine, value, expected):
        rows = [{"a": value}]
        assert engine.evaluate('=IF(A1="a,b","yes","no")', rows) == expected

    def test_bare_reference(self, engine, rows):
        assert engine.evaluate("=B3", rows) == "carol"
        assert engine.evaluate("=Z9", rows) is None

    def test_boolean_arguments(self, engine, rows):
        assert engine.evaluate("=AND(TRUE,false)", rows) is False

    def test_no_arguments(self, engine, rows):
        assert engine.evaluate("=AND()", rows) == "#VALUE!"

    def test_iferror(self, engine, rows):
        assert engine.evaluate("=IFERROR(STDEV(A1),0)", rows) == 0

    def test_countif_with_range(self, engine, rows):
        assert engine.evaluate('=COUNTIF(A1:A3,">3")', rows) == 1

    def test_vlookup_over_range(self, engine, rows):
        assert engine.evaluate('=VLOOKUP("bob",B1:C3,2,FALSE)', rows) == 2.5

    def test_rows_are_not_modified(self, engine, rows):
        before = copy.deepcopy(rows)
        engine.evaluate("=SUM(A1:C3)", rows)
        engine.evaluate("=UPPER(B1)", rows)
        assert rows == before


class TestFallbacks:
    def test_unknown_unclosed_function(self, engine, rows):
        assert engine.evaluate("=FOO(", rows) == "=FOO("

    def test_unknown_function(self, engine, rows):
        assert engine.evaluate("=FOO(A1)", rows) == "=FOO(A1)"

    def test_infix_arithmetic(self, engine, rows):
        assert engine.evaluate("=A1+B1", rows) == "=A1+B1"

    def test_empty_formula(self, engine, rows):
        assert engine.evaluate("=", rows) == "="

    def test_coercion_failure_is_error(self, engine, rows):
        assert engine.evaluate("=ABS(B1)", rows) == "#ERROR!"
        assert engine.evaluate("=YEAR(B1)", rows) == "#ERROR!"
        assert engine.evaluate("=ABS(A1)", [{"a": "x"}]) == "#ERROR!"

    def test_nested_coercion_failure_becomes_argument(self, engine, rows):
        assert engine.evaluate('=IFERROR(ABS(B1),"bad")', rows) == "bad"
        assert engine.evaluate("=ISERROR(YEAR(B1))", rows) is True

    def test_wrong_arity_is_error(self, engine, rows):
        assert engine.evaluate("=ABS(1,2)", rows) == "#ERROR!"

    def test_nested_failure_becomes_argument(self, engine, rows):
        assert engine.evaluate("=IFERROR(ABS(1,2),\"bad\")", rows) == "bad"

    def test_recursion_error(self, engine, rows):
        formula = "=" + "ABS(" * 2000 + "1" + ")" * 2000
        assert engine.evaluate(formula, rows) == "#ERROR!"


class TestEvaluateDetailed:
    def test_outcomes(self, engine, rows):
        assert engine.evaluate_detailed("plain", rows).outcome == Outcome.LITERAL
        assert engine.evaluate_detailed("=SUM(A1:A3)", rows).outcome == Outcome.CALL
        assert engine.evaluate_detailed("=A1", rows).outcome == Outcome.REFERENCE
        assert engine.evaluate_detailed("=A1*2", rows).outcome == Outcome.FALLBACK

    def test_error_outcome(self, engine, rows):
        result = engine.evaluate_detailed("=ABS(1,2)", rows)
        assert result.value == "#ERROR!"
        assert result.outcome == Outcome.ERROR

    def test_fallback_value_is_formula(self, engine, rows):
        result = engine.evaluate_detailed("=A1*2", rows)
        assert result.value == "=A1*2"


class TestConfiguration:
    def test_default_columns(self):
        engine = FormulaEngine()
        rows = [{"text": "Write docs", "progress": "40"}, {"text": "Ship", "progress": 60}]
        assert engine.columns == DEFAULT_COLUMNS
        assert engine.evaluate("=B1", rows) == "Write docs"
        assert engine.evaluate("=SUM(H1:H2)", rows) == 100

    def test_custom_function_table(self, columns, rows):
        table = {"DOUBLE": lambda x: x * 2, "SUM": FORMULA_FUNCTIONS["SUM"]}
        engine = FormulaEngine(columns, functions=table)
        assert engine.evaluate("=DOUBLE(A1)", rows) == 6
        assert engine.evaluate("=AVERAGE(A1:A3)", rows) == "=AVERAGE(A1:A3)"

    def test_registry_is_shared(self, engine):
        assert engine.functions is FORMULA_FUNCTIONS
        assert engine.functions["SUM"] is FormulaFunctions.SUM
