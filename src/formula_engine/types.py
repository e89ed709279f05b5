import math
import re
from datetime import date, datetime, time
from enum import IntEnum, auto
from typing import Iterable, Union

from openpyxl.utils.datetime import from_ISO8601

from formula_engine.errors import CoercionError

# Error vocabulary. These strings are part of the output contract.
ERROR = "#ERROR!"
VALUE_ERROR = "#VALUE!"
DIV0_ERROR = "#DIV/0!"
NA_ERROR = "#N/A"
NUM_ERROR = "#NUM!"
ERROR_TOKENS = frozenset({ERROR, VALUE_ERROR, DIV0_ERROR, NA_ERROR, NUM_ERROR})

NUMBER_REGEX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


# The order matters for comparisons: booleans > text > numbers.
class ValueKind(IntEnum):
    EMPTY = auto()
    NUMBER = auto()
    TEXT = auto()
    BOOLEAN = auto()
    ARRAY = auto()


ScalarValue = None | int | float | str | bool
FormulaValue = Union[ScalarValue, "list[FormulaValue]"]
# What a row may hold for a column: tags are stored as lists of strings
CellValue = None | int | float | str | list[str]


class CellBlock(list):
    """The values of a rectangular range, row-major.

    Behaves exactly like the flat list the range resolver has always
    returned, but remembers how many columns the rectangle spans so that
    lookup functions can get the rows and columns back.
    """

    def __init__(self, values: Iterable["FormulaValue"] = (), width: int = 1):
        super().__init__(values)
        self.width = max(width, 1)

    def rows(self) -> list[list["FormulaValue"]]:
        return [self[i : i + self.width] for i in range(0, len(self), self.width)]

    def columns(self) -> list[list["FormulaValue"]]:
        return [list(column) for column in zip(*self.rows())]


def value_kind(value: FormulaValue) -> ValueKind:
    """Return the ValueKind for a given FormulaValue."""
    if value is None:
        return ValueKind.EMPTY
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, list):
        return ValueKind.ARRAY
    raise CoercionError(f"Unknown value type: {value!r}")


def is_number(value: FormulaValue) -> bool:
    return value_kind(value) == ValueKind.NUMBER


def is_error(value: FormulaValue) -> bool:
    """Return True if the value is one of the defined error tokens."""
    return isinstance(value, str) and value in ERROR_TOKENS


def parse_number(val: str) -> int | float:
    """Parse a numeric literal, keeping integers as ints.

    Raises ValueError for anything that is not a complete, finite number.
    """
    val = val.strip()
    if not NUMBER_REGEX.match(val):
        raise ValueError(f"Not a number: {val!r}")
    is_float = ("." in val) or ("e" in val) or ("E" in val)
    number = float(val) if is_float else int(val)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {val!r}")
    return number


def prefer_number(value: FormulaValue) -> FormulaValue:
    """Return the numeric form of a stored cell value when its text is a
    finite number, and the value itself otherwise."""
    if isinstance(value, bool) or value is None or isinstance(value, list):
        return value
    if isinstance(value, (int, float)):
        return value
    try:
        return parse_number(str(value))
    except ValueError:
        return value


def coerce_to_number(val: FormulaValue) -> int | float:
    """Convert a value to a number for functions that need one."""
    if val is None:
        return 0
    if isinstance(val, bool):
        return int(val)
    if isinstance(val, (int, float)):
        return val
    if isinstance(val, str):
        try:
            return parse_number(val)
        except ValueError:
            raise CoercionError(f"Cannot convert text '{val}' to number")
    if isinstance(val, list):
        raise CoercionError("Cannot convert array to number")
    raise CoercionError(f"Cannot convert {val!r} to number")


def coerce_to_integer(val: FormulaValue) -> int:
    return int(coerce_to_number(val))


def coerce_to_text(value: FormulaValue) -> str:
    """Convert a value to text the way it is displayed in a cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ", ".join(coerce_to_text(v) for v in value)
    raise CoercionError(f"Cannot convert {value!r} to text")


def is_truthy(value: FormulaValue) -> bool:
    """Truthiness used by IF, AND, OR and friends.

    Empty values, zero, the empty string and the text "FALSE" are false.
    Any other text is true, as are arrays with at least one truthy item.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != "" and value.upper() != "FALSE"
    if isinstance(value, list):
        return any(is_truthy(v) for v in value)
    raise CoercionError(f"Cannot convert {value!r} to boolean")


def coerce_to_date(value: FormulaValue) -> datetime:
    """Convert an ISO date or timestamp string into a datetime."""
    if not isinstance(value, str) or not value.strip():
        raise CoercionError(f"Cannot convert {value!r} to date")
    try:
        parsed = from_ISO8601(value.strip())
    except ValueError:
        raise CoercionError(f"Cannot convert text '{value}' to date")
    if isinstance(parsed, datetime):
        return parsed.replace(tzinfo=None)
    if isinstance(parsed, date):
        return datetime(parsed.year, parsed.month, parsed.day)
    if isinstance(parsed, time):
        raise CoercionError(f"'{value}' is a time of day, not a date")
    raise CoercionError(f"Cannot convert text '{value}' to date")


def numbers_only(values: Iterable[FormulaValue]) -> list[int | float]:
    """Keep the real numbers, dropping text, booleans, blanks and errors."""
    return [v for v in values if is_number(v)]


def non_empty(values: Iterable[FormulaValue]) -> list[FormulaValue]:
    return [v for v in values if v is not None and v != ""]
