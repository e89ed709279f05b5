import re

from openpyxl.utils import get_column_letter

# Constants
CELL_REF_REGEX = re.compile(r"^([A-Za-z]+)([0-9]+)$")
FUNCTION_CALL_REGEX = re.compile(r"^([A-Za-z]+)\((.*)\)$", re.DOTALL)
FUNCTION_PREFIX_REGEX = re.compile(r"^[A-Za-z]+\(")


def column_index(letters: str) -> int:
    """Decode column letters (bijective base 26, A=1) into a zero-based index.

    Unlike openpyxl's column_index_from_string this is not capped at XFD, so
    any address that matches CELL_REF_REGEX decodes to a coordinate.
    """
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_letter(index: int) -> str:
    """Encode a zero-based column index as letters: 0 -> A, 26 -> AA."""
    return get_column_letter(index + 1)


def parse_reference(ref: str) -> tuple[int, int] | None:
    """Parse an `A1`-style address into zero-based (row, column).

    Returns None when the text is not a cell address.
    """
    match = CELL_REF_REGEX.match(ref.strip())
    if not match:
        return None
    letters, digits = match.groups()
    return int(digits) - 1, column_index(letters)


def format_reference(row: int, column: int) -> str:
    """Inverse of parse_reference."""
    return f"{column_letter(column)}{row + 1}"


def is_cell_reference(text: str) -> bool:
    return CELL_REF_REGEX.match(text) is not None
