import logging
from enum import Enum
from typing import Any, Callable, Mapping, NamedTuple, Optional, Sequence, Union

from formula_engine.columns import DEFAULT_COLUMNS, Column
from formula_engine.errors import InvalidReference
from formula_engine.functions import FORMULA_FUNCTIONS
from formula_engine.operators import compare
from formula_engine.parser import FormulaParser
from formula_engine.types import (
    ERROR,
    CellBlock,
    CellValue,
    FormulaValue,
    prefer_number,
)
from .ast import (
    ASTNode,
    CellRange,
    CellReference,
    Comparison,
    Constant,
    FunctionCall,
    Unmatched,
)
from .utils import parse_reference

Row = Mapping[str, CellValue]


class Outcome(Enum):
    LITERAL = "literal"  # not a formula, returned as is
    CALL = "call"
    REFERENCE = "reference"
    FALLBACK = "fallback"  # not understood, the formula text is returned
    ERROR = "error"


class Evaluation(NamedTuple):
    value: Any
    outcome: Outcome


def resolve_reference(ref: Union[str, CellReference]) -> CellReference:
    """Return `ref` as a CellReference, raising InvalidReference if it is not
    an address."""
    if isinstance(ref, CellReference):
        return ref
    coords = parse_reference(ref)
    if coords is None:
        raise InvalidReference(f"Invalid cell reference: {ref!r}")
    return CellReference(*coords)


class FormulaEngine:
    """Evaluates formulas against a list of rows.

    Columns are addressed by position (A is the first column) and rows by
    their 1-based index in `rows`. The engine keeps no state between calls
    and never writes to the rows it is given.
    """

    def __init__(
        self,
        columns: Sequence[Column] = DEFAULT_COLUMNS,
        functions: Mapping[str, Callable[..., FormulaValue]] = FORMULA_FUNCTIONS,
    ):
        self.columns = tuple(columns)
        self.functions = functions
        self.parser = FormulaParser(functions)

    def parse_reference(self, ref: str) -> Optional[CellReference]:
        coords = parse_reference(ref)
        return CellReference(*coords) if coords is not None else None

    def get_cell_value(
        self, ref: Union[str, CellReference], rows: Sequence[Row]
    ) -> FormulaValue:
        """Read the value stored at `ref`.

        Returns None when the reference does not parse or points outside the
        rows or columns. Stored text that reads as a finite number comes back
        as that number.
        """
        try:
            node = resolve_reference(ref)
        except InvalidReference:
            return None
        if not (0 <= node.row < len(rows) and 0 <= node.column < len(self.columns)):
            return None
        return prefer_number(rows[node.row].get(self.columns[node.column].id))

    def parse_range(self, range_text: str, rows: Sequence[Row]) -> CellBlock:
        """Expand `A1:C3`-style text into its values, row by row.

        Cells outside the data are skipped. Text without a colon, or with
        more than one, is read as a single reference. An endpoint that is not
        an address yields an empty block.
        """
        parts = range_text.split(":")
        if len(parts) != 2:
            return CellBlock([self.get_cell_value(range_text, rows)])

        try:
            start, end = (resolve_reference(part) for part in parts)
        except InvalidReference as e:
            logging.debug(f"Ignoring malformed range {range_text!r}: {e}")
            return CellBlock()

        min_row, max_row = sorted((start.row, end.row))
        min_col, max_col = sorted((start.column, end.column))

        # Only the part of the rectangle that overlaps the data is visited
        first_row, last_row = max(min_row, 0), min(max_row, len(rows) - 1)
        first_col, last_col = max(min_col, 0), min(max_col, len(self.columns) - 1)

        values: list[FormulaValue] = []
        for row in range(first_row, last_row + 1):
            for col in range(first_col, last_col + 1):
                values.append(self.get_cell_value(CellReference(row, col), rows))

        return CellBlock(values, width=last_col - first_col + 1)

    def evaluate(self, formula: Any, rows: Sequence[Row]) -> Any:
        """Evaluate a formula and return its value.

        Anything that is not a formula is returned unchanged, as is a formula
        the engine does not understand. Never raises: failures come back as
        error tokens.
        """
        return self.evaluate_detailed(formula, rows).value

    def evaluate_detailed(self, formula: Any, rows: Sequence[Row]) -> Evaluation:
        if not isinstance(formula, str) or not formula.startswith("="):
            return Evaluation(formula, Outcome.LITERAL)

        try:
            node = self.parser.parse(formula)
            value = self._evaluate_node(node, rows)
        except Exception as e:
            # Includes RecursionError from very deep nesting
            logging.debug(f"Error evaluating {formula!r}: {e!r}")
            return Evaluation(ERROR, Outcome.ERROR)

        if isinstance(node, FunctionCall):
            return Evaluation(value, Outcome.CALL)
        if isinstance(node, CellReference):
            return Evaluation(value, Outcome.REFERENCE)
        return Evaluation(value, Outcome.FALLBACK)

    def _evaluate_node(self, node: ASTNode, rows: Sequence[Row]) -> FormulaValue:
        if isinstance(node, Constant):
            return node.value

        elif isinstance(node, CellReference):
            return self.get_cell_value(node, rows)

        elif isinstance(node, CellRange):
            return self.parse_range(node.text, rows)

        elif isinstance(node, Comparison):
            return compare(
                node.operator,
                self._evaluate_node(node.left, rows),
                self._evaluate_node(node.right, rows),
            )

        elif isinstance(node, FunctionCall):
            return self._evaluate_function(node, rows)

        elif isinstance(node, Unmatched):
            return node.text

        raise ValueError(f"Unknown node type: {type(node)}")

    def _evaluate_function(self, node: FunctionCall, rows: Sequence[Row]) -> FormulaValue:
        fn = self.functions[node.name]
        args = [self._evaluate_argument(arg, rows) for arg in node.arguments]
        # Coercion failures propagate and surface as #ERROR!
        return fn(*args)

    def _evaluate_argument(self, node: ASTNode, rows: Sequence[Row]) -> FormulaValue:
        if not isinstance(node, FunctionCall):
            return self._evaluate_node(node, rows)
        # A failing nested call becomes an error value for its caller
        try:
            return self._evaluate_node(node, rows)
        except Exception as e:
            logging.debug(f"Error evaluating nested {node.name}: {e!r}")
            return ERROR
