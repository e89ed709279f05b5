from typing import NamedTuple


class FunctionCall(NamedTuple):
    name: str
    arguments: "tuple[ASTNode, ...]"


class Comparison(NamedTuple):
    left: "ASTNode"
    operator: str
    right: "ASTNode"


class CellReference(NamedTuple):
    # Both zero-based
    row: int
    column: int

    def coords(self) -> str:
        # Avoid circular imports
        from formula_engine.utils import format_reference

        return format_reference(self.row, self.column)


class CellRange(NamedTuple):
    text: str


class Constant(NamedTuple):
    value: int | float | str | bool


class Unmatched(NamedTuple):
    """A formula the engine does not understand. Evaluates to its own text."""

    text: str


# Type alias for all possible AST nodes
ASTNode = FunctionCall | Comparison | CellReference | CellRange | Constant | Unmatched
