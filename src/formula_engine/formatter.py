from typing import Any, NamedTuple, Sequence

from formula_engine.columns import Column, ColumnKind
from formula_engine.errors import CoercionError
from formula_engine.interpreter import FormulaEngine, Row
from formula_engine.types import coerce_to_date, coerce_to_text


class Collaborator(NamedTuple):
    id: str
    name: str = ""


def display_text(value: Any) -> str:
    """Render an evaluated value for a cell: TRUE/FALSE for booleans, no
    trailing `.0` on whole numbers."""
    return coerce_to_text(value)


def format_date(value: Any) -> str:
    try:
        parsed = coerce_to_date(value)
    except CoercionError:
        return str(value)
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def format_assignee(row: Row, collaborators: Sequence[Collaborator]) -> str:
    # Only the first collaborator on a row is shown
    ids = row.get("collaborators")
    if not isinstance(ids, list) or not ids:
        return ""
    primary = ids[0]
    for collaborator in collaborators:
        if collaborator.id == primary:
            return collaborator.name or primary
    return primary


def format_cell_value(
    row: Row,
    column: Column,
    rows: Sequence[Row],
    engine: FormulaEngine,
    show_formulas: bool = False,
    collaborators: Sequence[Collaborator] = (),
) -> str:
    """Render the value of `column` in `row` as shown in the table view.

    Formulas are evaluated against `rows` unless `show_formulas` is set, in
    which case the formula text is shown.
    """
    if column.id == "assignee":
        return format_assignee(row, collaborators)

    value = row.get(column.id)
    if value is None:
        return ""
    if isinstance(value, str) and value.startswith("="):
        if show_formulas:
            return value
        return display_text(engine.evaluate(value, rows))

    match column.kind:
        case ColumnKind.DATE:
            return format_date(value) if value else ""
        case ColumnKind.TAGS:
            return ", ".join(value) if isinstance(value, list) else str(value)
        case ColumnKind.SELECT:
            label = column.option_label(value) if isinstance(value, str) else None
            return label if label is not None else display_text(value)
        case _:
            return display_text(value)
