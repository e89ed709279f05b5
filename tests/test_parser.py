import pytest

from formula_engine.ast import (
    CellRange,
    CellReference,
    Comparison,
    Constant,
    FunctionCall,
    Unmatched,
)
from formula_engine.errors import ParseError
from formula_engine.parser import (
    find_comparison,
    is_quoted,
    parse_formula,
    split_arguments,
    suggest_function,
)


class TestSplitArguments:
    def test_simple(self):
        assert split_arguments("A1, B2 ,3") == ["A1", "B2", "3"]

    def test_nested_commas_do_not_split(self):
        assert split_arguments("ROUND(AVERAGE(A1:A3),2),1") == [
            "ROUND(AVERAGE(A1:A3),2)",
            "1",
        ]

    def test_quoted_commas_do_not_split(self):
        assert split_arguments('"a,b","c"') == ['"a,b"', '"c"']

    def test_quote_inside_argument(self):
        assert split_arguments('A1="a,b","yes","no"') == ['A1="a,b"', '"yes"', '"no"']
        assert split_arguments("B1='x,y',2") == ["B1='x,y'", "2"]

    def test_empty(self):
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_trailing_empty_argument_dropped(self):
        assert split_arguments("A1,") == ["A1"]

    def test_unbalanced(self):
        with pytest.raises(ParseError):
            split_arguments("SUM(A1")
        with pytest.raises(ParseError):
            split_arguments("A1)")


class TestHelpers:
    def test_is_quoted(self):
        assert is_quoted('"High"')
        assert is_quoted("'Low'")
        assert is_quoted('""')
        assert not is_quoted('"High')
        assert not is_quoted("\"a\",\"b\"")
        assert not is_quoted('"')

    def test_find_comparison(self):
        assert find_comparison("A1>5") == ("A1", ">", "5")
        assert find_comparison("A1 <= 5") == ("A1", "<=", "5")
        assert find_comparison("B2<>\"done\"") == ("B2", "<>", '"done"')

    def test_find_comparison_ignores_nested_and_quoted(self):
        assert find_comparison("COUNTIF(A1:A3,\">5\")") is None
        assert find_comparison('">5"') is None

    def test_find_comparison_needs_both_operands(self):
        assert find_comparison(">5") is None
        assert find_comparison("A1>") is None

    def test_suggest_function(self):
        assert suggest_function("SUMM", ["SUM", "AVERAGE"]) == "SUM"
        assert suggest_function("XYZZY", ["SUM", "AVERAGE"]) is None


class TestFormulaParser:
    def test_function_call(self):
        ast = parse_formula("=SUM(A1:A3)")
        assert ast == FunctionCall(name="SUM", arguments=(CellRange("A1:A3"),))

    def test_name_is_case_insensitive(self):
        assert parse_formula("=sum(A1:A3)") == parse_formula("=SUM(A1:A3)")

    def test_argument_classification(self):
        ast = parse_formula('=IF(A1>5,"High",TRUE)')
        assert isinstance(ast, FunctionCall)
        condition, when_true, when_false = ast.arguments
        assert condition == Comparison(CellReference(0, 0), ">", Constant(5))
        assert when_true == Constant("High")
        assert when_false == Constant(True)

    def test_numbers(self):
        ast = parse_formula("=ROUND(3.14159, 2)")
        assert ast.arguments == (Constant(3.14159), Constant(2))
        assert isinstance(ast.arguments[1].value, int)

    def test_raw_text(self):
        ast = parse_formula("=UPPER(hello world)")
        assert ast.arguments == (Constant("hello world"),)

    def test_iso_date_is_text(self):
        ast = parse_formula("=YEAR(2024-01-15)")
        assert ast.arguments == (Constant("2024-01-15"),)

    def test_nested_call_with_range(self):
        ast = parse_formula("=ROUND(AVERAGE(A1:A3),2)")
        assert ast == FunctionCall(
            "ROUND",
            (FunctionCall("AVERAGE", (CellRange("A1:A3"),)), Constant(2)),
        )

    def test_no_arguments(self):
        assert parse_formula("=TODAY()") == FunctionCall("TODAY", ())

    def test_bare_reference(self):
        assert parse_formula("=B2") == CellReference(1, 1)
        assert parse_formula("= b2 ") == CellReference(1, 1)

    def test_unknown_function(self):
        assert parse_formula("=FOO(A1)") == Unmatched("=FOO(A1)")

    def test_unclosed_call(self):
        assert parse_formula("=FOO(") == Unmatched("=FOO(")
        assert parse_formula("=SUM(") == Unmatched("=SUM(")

    def test_unbalanced_known_call(self):
        assert parse_formula("=SUM(A1:A2))") == Unmatched("=SUM(A1:A2))")

    def test_infix_arithmetic_is_not_supported(self):
        assert parse_formula("=A1+B1") == Unmatched("=A1+B1")

    def test_not_a_formula(self):
        with pytest.raises(ParseError):
            parse_formula("SUM(A1)")

    def test_restricted_function_table(self):
        ast = parse_formula("=SUM(1,2)", functions={"AVERAGE"})
        assert ast == Unmatched("=SUM(1,2)")
