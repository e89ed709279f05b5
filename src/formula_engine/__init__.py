from formula_engine.columns import DEFAULT_COLUMNS, Column, ColumnKind, Option
from formula_engine.errors import (
    CoercionError,
    FormulaError,
    FormulaFunctionError,
    InvalidReference,
    ParseError,
)
from formula_engine.formatter import Collaborator, display_text, format_cell_value
from formula_engine.functions import FORMULA_FUNCTIONS, formula_fn
from formula_engine.interpreter import Evaluation, FormulaEngine, Outcome
from formula_engine.parser import FormulaParser, parse_formula
from formula_engine.reader import RowReader
from formula_engine.types import CellBlock
from formula_engine.utils import column_letter, format_reference, parse_reference

__all__ = [
    "CellBlock",
    "CoercionError",
    "Collaborator",
    "Column",
    "ColumnKind",
    "DEFAULT_COLUMNS",
    "Evaluation",
    "FORMULA_FUNCTIONS",
    "FormulaEngine",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParser",
    "InvalidReference",
    "Option",
    "Outcome",
    "ParseError",
    "RowReader",
    "column_letter",
    "display_text",
    "format_cell_value",
    "format_reference",
    "formula_fn",
    "parse_formula",
    "parse_reference",
]
