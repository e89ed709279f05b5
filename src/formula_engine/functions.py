import math
import re
from datetime import datetime, timedelta, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, Decimal
from typing import Any, Callable, Optional, ParamSpec, overload

import numpy as np
import pandas as pd

from formula_engine.errors import FormulaFunctionError
from formula_engine.operators import COMPARISON_OPERATORS, COMPARISONS, eq_scalar
from formula_engine.types import (
    DIV0_ERROR,
    NA_ERROR,
    NUM_ERROR,
    VALUE_ERROR,
    CellBlock,
    FormulaValue,
    ScalarValue,
    coerce_to_date,
    coerce_to_integer,
    coerce_to_number,
    coerce_to_text,
    is_error,
    is_number,
    is_truthy,
    non_empty,
    numbers_only,
    parse_number,
    value_kind,
)

P = ParamSpec("P")

# Units for DATEDIF
DAY_LENGTH = timedelta(days=1)
MONTH_LENGTH = timedelta(days=30)
YEAR_LENGTH = timedelta(days=365)

FORMULA_FUNCTIONS: dict[str, Callable[..., FormulaValue]] = {}


@overload
def formula_fn(
    fn: Callable[P, FormulaValue], *, name: Optional[str] = None
) -> Callable[P, FormulaValue]: ...
@overload
def formula_fn(
    fn: None = None, *, name: Optional[str] = None
) -> Callable[[Callable[P, FormulaValue]], Callable[P, FormulaValue]]: ...


def formula_fn(
    fn: Callable[P, FormulaValue] | None = None,
    *,
    name: Optional[str] = None,
) -> Any:
    """Decorator to register a function under a formula name."""

    def decorator(fn: Callable[P, FormulaValue]) -> Callable[P, FormulaValue]:
        # Unwrap staticmethods for registration but return the descriptor
        underlying = fn.__func__ if isinstance(fn, staticmethod) else fn
        reg_name = (name or underlying.__name__).upper()
        FORMULA_FUNCTIONS[reg_name] = underlying
        setattr(underlying, "_formula_fn_registered", True)
        setattr(underlying, "_formula_fn_name", reg_name)
        return fn

    if fn:
        return decorator(fn)
    else:
        return decorator


def flatten_args(*args: FormulaValue) -> list[ScalarValue]:
    """Flatten multiple function arguments into a single list of non-array values."""
    result: list[ScalarValue] = []
    for arg in args:
        if isinstance(arg, list):
            result.extend(flatten_args(*arg))
        else:
            # Flat arg
            result.append(arg)
    return result


def first_value(*args: FormulaValue) -> ScalarValue:
    values = flatten_args(*args)
    return values[0] if values else None


def current_datetime() -> datetime:
    """The clock used by TODAY and NOW."""
    return datetime.now(timezone.utc)


def _criteria_operand(text: str) -> ScalarValue:
    if text.upper() in ("TRUE", "FALSE"):
        return text.upper() == "TRUE"
    try:
        return parse_number(text)
    except ValueError:
        return text


def matches_criteria(value: ScalarValue, criteria: ScalarValue) -> bool:
    """Match a value against a COUNTIF-style criteria.

    Supports comparison prefixes (">5", "<>done"), `*` and `?` wildcards and
    plain case-insensitive equality. Ordering comparisons only match values
    of the same kind as the operand, so ">5" never matches text.
    """
    if not isinstance(criteria, str):
        return eq_scalar(value, criteria)

    for op in COMPARISON_OPERATORS:
        if criteria.startswith(op):
            operand = _criteria_operand(criteria[len(op) :].strip())
            if op in ("=", "<>"):
                return COMPARISONS[op](value, operand)
            if value is None or value_kind(value) != value_kind(operand):
                return False
            return COMPARISONS[op](value, operand)

    # Handle wildcards (* and ?)
    if "*" in criteria or "?" in criteria:
        regex_pattern = (
            "^" + re.escape(criteria).replace("\\*", ".*").replace("\\?", ".") + "$"
        )
        return bool(re.match(regex_pattern, coerce_to_text(value), re.IGNORECASE))

    return eq_scalar(value, _criteria_operand(criteria))


def _round(number: FormulaValue, num_digits: FormulaValue, rounding: str) -> FormulaValue:
    digits = coerce_to_integer(num_digits)
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(coerce_to_number(number))).quantize(quantum, rounding=rounding)
    return int(rounded) if digits <= 0 else float(rounded)


def _to_iso_date(value: datetime | pd.Timestamp) -> str:
    return value.strftime("%Y-%m-%d")


def _to_iso_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def _whole_months_between(start: datetime, end: datetime) -> int:
    months = (end.year - start.year) * 12 + end.month - start.month
    if (end.day, end.time()) < (start.day, start.time()):
        months -= 1
    return months


def _lookup_table(table: FormulaValue) -> list[list[ScalarValue]]:
    if isinstance(table, CellBlock):
        return table.rows()
    if isinstance(table, list):
        # A plain list carries no shape: treat it as a single column
        return [[value] for value in flatten_args(table)]
    return [[table]]


def _lookup(
    lookup_value: FormulaValue,
    lines: list[list[ScalarValue]],
    index: FormulaValue,
    range_lookup: FormulaValue,
) -> FormulaValue:
    """Shared search for VLOOKUP (lines are rows) and HLOOKUP (lines are columns)."""
    lookup_value = first_value(lookup_value)
    idx = coerce_to_integer(first_value(index))
    if idx < 1:
        return VALUE_ERROR
    if not lines or idx > len(lines[0]):
        return NUM_ERROR

    exact_match = not is_truthy(first_value(range_lookup))
    match = None
    for line in lines:
        key = line[0]
        if key is None:  # Skip empty cells
            continue
        if eq_scalar(key, lookup_value):
            match = line
            break
        if exact_match:
            continue
        # Approximate match assumes ascending keys: stop once past the value
        if value_kind(key) == value_kind(lookup_value):
            if COMPARISONS[">"](key, lookup_value):
                break
            match = line

    if match is None:
        return NA_ERROR
    return match[idx - 1]


class FormulaFunctions:
    """Collection of built-in function implementations.

    Every method receives its evaluated arguments positionally. Ranges arrive
    as lists; most functions flatten them first.
    """

    # Aggregation

    @staticmethod
    def SUM(*args: FormulaValue) -> FormulaValue:
        """Sum of the numbers among the arguments, ignoring text and blanks."""
        return sum(numbers_only(flatten_args(*args)))

    @staticmethod
    def AVERAGE(*args: FormulaValue) -> FormulaValue:
        """Mean of the numbers among the arguments, or 0 when there are none."""
        nums = numbers_only(flatten_args(*args))
        return (sum(nums) / len(nums)) if nums else 0

    @staticmethod
    def COUNT(*args: FormulaValue) -> FormulaValue:
        return len(numbers_only(flatten_args(*args)))

    @staticmethod
    def COUNTA(*args: FormulaValue) -> FormulaValue:
        """Counts every value that is not blank, including text and errors."""
        return len(non_empty(flatten_args(*args)))

    @staticmethod
    def MIN(*args: FormulaValue) -> FormulaValue:
        nums = numbers_only(flatten_args(*args))
        return min(nums) if nums else 0

    @staticmethod
    def MAX(*args: FormulaValue) -> FormulaValue:
        nums = numbers_only(flatten_args(*args))
        return max(nums) if nums else 0

    @staticmethod
    def MEDIAN(*args: FormulaValue) -> FormulaValue:
        nums = numbers_only(flatten_args(*args))
        if not nums:
            return NUM_ERROR
        return float(np.median(nums))

    @formula_fn(name="MODE")
    @staticmethod
    def MODE_SNGL(*args: FormulaValue) -> FormulaValue:
        """Most frequent number.

        - Ties go to the value that occurs first.
        - Returns #N/A when no value occurs more than once.
        """
        counts: dict[float, int] = {}
        for v in numbers_only(flatten_args(*args)):
            counts[v] = counts.get(v, 0) + 1
        if not counts or max(counts.values()) < 2:
            return NA_ERROR

        max_count = max(counts.values())
        # dicts keep insertion order, so this is the first to occur
        return next(v for v, c in counts.items() if c == max_count)

    @staticmethod
    def STDEV(*args: FormulaValue) -> FormulaValue:
        """Sample standard deviation (n - 1 denominator)."""
        nums = numbers_only(flatten_args(*args))
        if len(nums) < 2:
            return DIV0_ERROR
        return float(np.std(nums, ddof=1))

    @staticmethod
    def VAR(*args: FormulaValue) -> FormulaValue:
        """Sample variance (n - 1 denominator)."""
        nums = numbers_only(flatten_args(*args))
        if len(nums) < 2:
            return DIV0_ERROR
        return float(np.var(nums, ddof=1))

    @staticmethod
    def LARGE(values: FormulaValue, k: FormulaValue) -> FormulaValue:
        """The k-th largest number."""
        nums = sorted(numbers_only(flatten_args(values)), reverse=True)
        position = coerce_to_integer(first_value(k))
        if not 1 <= position <= len(nums):
            return NUM_ERROR
        return nums[position - 1]

    @staticmethod
    def SMALL(values: FormulaValue, k: FormulaValue) -> FormulaValue:
        """The k-th smallest number."""
        nums = sorted(numbers_only(flatten_args(values)))
        position = coerce_to_integer(first_value(k))
        if not 1 <= position <= len(nums):
            return NUM_ERROR
        return nums[position - 1]

    @staticmethod
    def PERCENTILE(values: FormulaValue, p: FormulaValue) -> FormulaValue:
        """Inclusive percentile with linear interpolation between ranks."""
        nums = numbers_only(flatten_args(values))
        fraction = coerce_to_number(first_value(p))
        if not nums or not 0 <= fraction <= 1:
            return NUM_ERROR
        return float(np.percentile(nums, fraction * 100))

    # Conditional aggregation

    @staticmethod
    def COUNTIF(values: FormulaValue, criteria: FormulaValue) -> FormulaValue:
        """
        Count cells in a range that meet the given criteria.

        Supports:
        - Exact matches: COUNTIF(range, "value")
        - Numeric comparisons: COUNTIF(range, ">10")
        - Wildcard text matching: COUNTIF(range, "a*")
        - Direct cell reference: COUNTIF(range, A1)
        """
        criteria = first_value(criteria)
        return sum(1 for value in flatten_args(values) if matches_criteria(value, criteria))

    @staticmethod
    def SUMIF(
        values: FormulaValue, criteria: FormulaValue, sum_values: FormulaValue = None
    ) -> FormulaValue:
        criteria = first_value(criteria)
        tested = flatten_args(values)
        summed = flatten_args(sum_values) if sum_values is not None else tested
        return sum(
            target
            for value, target in zip(tested, summed)
            if is_number(target) and matches_criteria(value, criteria)
        )

    @staticmethod
    def AVERAGEIF(
        values: FormulaValue, criteria: FormulaValue, average_values: FormulaValue = None
    ) -> FormulaValue:
        criteria = first_value(criteria)
        tested = flatten_args(values)
        averaged = flatten_args(average_values) if average_values is not None else tested
        matched = [
            target
            for value, target in zip(tested, averaged)
            if is_number(target) and matches_criteria(value, criteria)
        ]
        if not matched:
            return DIV0_ERROR
        return sum(matched) / len(matched)

    @staticmethod
    def COUNTIFS(*args: FormulaValue) -> FormulaValue:
        if len(args) < 2 or len(args) % 2 != 0:
            return VALUE_ERROR
        ranges = [flatten_args(args[n]) for n in range(0, len(args), 2)]
        criteria = [first_value(args[n + 1]) for n in range(0, len(args), 2)]
        if len({len(r) for r in ranges}) != 1:
            return VALUE_ERROR
        return sum(
            1
            for row in zip(*ranges)
            if all(matches_criteria(v, c) for v, c in zip(row, criteria))
        )

    @staticmethod
    def SUMIFS(sum_values: FormulaValue, *args: FormulaValue) -> FormulaValue:
        if len(args) < 2 or len(args) % 2 != 0:
            return VALUE_ERROR
        summed = flatten_args(sum_values)
        ranges = [flatten_args(args[n]) for n in range(0, len(args), 2)]
        criteria = [first_value(args[n + 1]) for n in range(0, len(args), 2)]
        if any(len(r) != len(summed) for r in ranges):
            return VALUE_ERROR
        total = 0
        for i, target in enumerate(summed):
            if is_number(target) and all(
                matches_criteria(r[i], c) for r, c in zip(ranges, criteria)
            ):
                total += target
        return total

    # Math

    @staticmethod
    def ROUND(number: FormulaValue, num_digits: FormulaValue = 0) -> FormulaValue:
        """Round half away from zero to `num_digits` decimals."""
        return _round(number, num_digits, ROUND_HALF_UP)

    @staticmethod
    def ROUNDUP(number: FormulaValue, num_digits: FormulaValue = 0) -> FormulaValue:
        """Round away from zero."""
        return _round(number, num_digits, ROUND_UP)

    @staticmethod
    def ROUNDDOWN(number: FormulaValue, num_digits: FormulaValue = 0) -> FormulaValue:
        """Round towards zero."""
        return _round(number, num_digits, ROUND_DOWN)

    @staticmethod
    def ABS(x: FormulaValue) -> FormulaValue:
        return abs(coerce_to_number(x))

    @staticmethod
    def SQRT(x: FormulaValue) -> FormulaValue:
        num = coerce_to_number(x)
        if num < 0:
            return NUM_ERROR
        return math.sqrt(num)

    @staticmethod
    def POWER(base: FormulaValue, exponent: FormulaValue) -> FormulaValue:
        b = coerce_to_number(base)
        e = coerce_to_number(exponent)
        if b == 0 and e < 0:
            return DIV0_ERROR
        if b < 0 and not float(e).is_integer():
            return NUM_ERROR
        return b**e

    @staticmethod
    def MOD(number: FormulaValue, divisor: FormulaValue) -> FormulaValue:
        """Remainder with the sign of the divisor."""
        d = coerce_to_number(divisor)
        if d == 0:
            return DIV0_ERROR
        return coerce_to_number(number) % d

    @staticmethod
    def INT(x: FormulaValue) -> FormulaValue:
        return math.floor(coerce_to_number(x))

    @staticmethod
    def PRODUCT(*args: FormulaValue) -> FormulaValue:
        nums = numbers_only(flatten_args(*args))
        return math.prod(nums) if nums else 0

    # Text

    @staticmethod
    def UPPER(*args: FormulaValue) -> FormulaValue:
        return coerce_to_text(first_value(*args)).upper()

    @staticmethod
    def LOWER(*args: FormulaValue) -> FormulaValue:
        return coerce_to_text(first_value(*args)).lower()

    @staticmethod
    def LEN(*args: FormulaValue) -> FormulaValue:
        return len(coerce_to_text(first_value(*args)))

    @staticmethod
    def TRIM(*args: FormulaValue) -> FormulaValue:
        """Strip the text and collapse runs of inner spaces to one."""
        return re.sub(r" +", " ", coerce_to_text(first_value(*args)).strip())

    @staticmethod
    def PROPER(*args: FormulaValue) -> FormulaValue:
        return coerce_to_text(first_value(*args)).title()

    @staticmethod
    def LEFT(text: FormulaValue, num_chars: FormulaValue = 1) -> FormulaValue:
        n = coerce_to_integer(first_value(num_chars))
        if n < 0:
            return VALUE_ERROR
        return coerce_to_text(first_value(text))[:n]

    @staticmethod
    def RIGHT(text: FormulaValue, num_chars: FormulaValue = 1) -> FormulaValue:
        n = coerce_to_integer(first_value(num_chars))
        if n < 0:
            return VALUE_ERROR
        s = coerce_to_text(first_value(text))
        return s[len(s) - n :] if n else ""

    @staticmethod
    def MID(text: FormulaValue, start: FormulaValue, num_chars: FormulaValue) -> FormulaValue:
        begin = coerce_to_integer(first_value(start))
        n = coerce_to_integer(first_value(num_chars))
        if begin < 1 or n < 0:
            return VALUE_ERROR
        return coerce_to_text(first_value(text))[begin - 1 : begin - 1 + n]

    @staticmethod
    def CONCAT(*args: FormulaValue) -> FormulaValue:
        return "".join(coerce_to_text(val) for val in flatten_args(*args))

    @staticmethod
    def CONCATENATE(*args: FormulaValue) -> FormulaValue:
        return FormulaFunctions.CONCAT(*args)

    @staticmethod
    def SUBSTITUTE(
        text: FormulaValue,
        old_text: FormulaValue,
        new_text: FormulaValue,
        instance_num: FormulaValue = None,
    ) -> FormulaValue:
        """Replace occurrences of `old_text`, or only the n-th one when
        `instance_num` is given."""
        s = coerce_to_text(first_value(text))
        old = coerce_to_text(first_value(old_text))
        new = coerce_to_text(first_value(new_text))
        if not old:
            return s
        if instance_num is None:
            return s.replace(old, new)

        n = coerce_to_integer(first_value(instance_num))
        if n < 1:
            return VALUE_ERROR
        position = -1
        for _ in range(n):
            position = s.find(old, position + 1)
            if position == -1:
                return s
        return s[:position] + new + s[position + len(old) :]

    @staticmethod
    def FIND(
        find_text: FormulaValue, within_text: FormulaValue, start_num: FormulaValue = 1
    ) -> FormulaValue:
        """Case-sensitive 1-based position of `find_text`, or #VALUE!."""
        needle = coerce_to_text(first_value(find_text))
        haystack = coerce_to_text(first_value(within_text))
        start = coerce_to_integer(first_value(start_num))
        if start < 1 or start > len(haystack) + 1:
            return VALUE_ERROR
        position = haystack.find(needle, start - 1)
        return position + 1 if position >= 0 else VALUE_ERROR

    @staticmethod
    def SEARCH(
        find_text: FormulaValue, within_text: FormulaValue, start_num: FormulaValue = 1
    ) -> FormulaValue:
        """Case-insensitive version of FIND."""
        return FormulaFunctions.FIND(
            coerce_to_text(first_value(find_text)).lower(),
            coerce_to_text(first_value(within_text)).lower(),
            start_num,
        )

    @staticmethod
    def REPT(text: FormulaValue, number_times: FormulaValue) -> FormulaValue:
        n = coerce_to_integer(first_value(number_times))
        if n < 0:
            return VALUE_ERROR
        return coerce_to_text(first_value(text)) * n

    # Logical

    @staticmethod
    def IF(*args: FormulaValue) -> FormulaValue:
        """Return the second argument if the first is truthy, the third otherwise.

        Arguments are flattened first. An error condition is returned as is.
        """
        values = flatten_args(*args)
        condition = values[0] if values else None
        if is_error(condition):
            return condition
        true_value = values[1] if len(values) > 1 else True
        false_value = values[2] if len(values) > 2 else False
        return true_value if is_truthy(condition) else false_value

    @staticmethod
    def AND(*args: FormulaValue) -> FormulaValue:
        values = flatten_args(*args)
        if not values:
            return VALUE_ERROR
        return all(is_truthy(v) for v in values)

    @staticmethod
    def OR(*args: FormulaValue) -> FormulaValue:
        values = flatten_args(*args)
        if not values:
            return VALUE_ERROR
        return any(is_truthy(v) for v in values)

    @staticmethod
    def NOT(*args: FormulaValue) -> FormulaValue:
        return not is_truthy(first_value(*args))

    @staticmethod
    def XOR(*args: FormulaValue) -> FormulaValue:
        """True when an odd number of arguments are truthy."""
        values = flatten_args(*args)
        if not values:
            return VALUE_ERROR
        return sum(1 for v in values if is_truthy(v)) % 2 == 1

    @staticmethod
    def IFS(*args: FormulaValue) -> FormulaValue:
        """Returns the value paired with the first truthy condition.

        Returns #N/A if no condition is truthy and #VALUE! if the arguments
        do not form condition/value pairs.
        """
        values = flatten_args(*args)
        if len(values) < 2 or len(values) % 2 != 0:
            return VALUE_ERROR
        for i in range(0, len(values), 2):
            if is_truthy(values[i]):
                return values[i + 1]
        return NA_ERROR

    @staticmethod
    def SWITCH(*args: FormulaValue) -> FormulaValue:
        """SWITCH(expression, value1, result1, ..., [default])"""
        values = flatten_args(*args)
        if len(values) < 3:
            return VALUE_ERROR
        expression, rest = values[0], values[1:]
        for i in range(0, len(rest) - 1, 2):
            if eq_scalar(expression, rest[i]):
                return rest[i + 1]
        if len(rest) % 2 == 1:
            return rest[-1]
        return NA_ERROR

    @staticmethod
    def CHOOSE(*args: FormulaValue) -> FormulaValue:
        values = flatten_args(*args)
        if len(values) < 2:
            return VALUE_ERROR
        index = coerce_to_integer(values[0])
        options = values[1:]
        if not 1 <= index <= len(options):
            return VALUE_ERROR
        return options[index - 1]

    @staticmethod
    def IFERROR(*args: FormulaValue) -> FormulaValue:
        """Return the second argument if the first is an error token."""
        values = flatten_args(*args)
        value = values[0] if values else None
        fallback = values[1] if len(values) > 1 else ""
        return fallback if is_error(value) else value

    @staticmethod
    def IFNA(*args: FormulaValue) -> FormulaValue:
        values = flatten_args(*args)
        value = values[0] if values else None
        fallback = values[1] if len(values) > 1 else ""
        return fallback if value == NA_ERROR else value

    # Information

    @staticmethod
    def ISNUMBER(*args: FormulaValue) -> FormulaValue:
        return is_number(first_value(*args))

    @staticmethod
    def ISTEXT(*args: FormulaValue) -> FormulaValue:
        value = first_value(*args)
        return isinstance(value, str) and not is_error(value)

    @staticmethod
    def ISBLANK(*args: FormulaValue) -> FormulaValue:
        return first_value(*args) in (None, "")

    @staticmethod
    def ISERROR(*args: FormulaValue) -> FormulaValue:
        return is_error(first_value(*args))

    @staticmethod
    def ISNA(*args: FormulaValue) -> FormulaValue:
        return first_value(*args) == NA_ERROR

    # Date and time. Dates travel as ISO strings.

    @staticmethod
    def TODAY() -> FormulaValue:
        return _to_iso_date(current_datetime())

    @staticmethod
    def NOW() -> FormulaValue:
        """UTC timestamp such as 2026-10-19T09:30:00.000Z."""
        return _to_iso_timestamp(current_datetime())

    @staticmethod
    def DATE(year: FormulaValue, month: FormulaValue, day: FormulaValue) -> FormulaValue:
        """Build a date; months and days outside their usual range roll over."""
        try:
            start = pd.Timestamp(year=coerce_to_integer(first_value(year)), month=1, day=1)
            result = start + pd.DateOffset(
                months=coerce_to_integer(first_value(month)) - 1,
                days=coerce_to_integer(first_value(day)) - 1,
            )
        except (ValueError, OverflowError):
            return NUM_ERROR
        return _to_iso_date(result)

    @staticmethod
    def YEAR(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).year

    @staticmethod
    def MONTH(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).month

    @staticmethod
    def DAY(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).day

    @staticmethod
    def HOUR(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).hour

    @staticmethod
    def MINUTE(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).minute

    @staticmethod
    def SECOND(*args: FormulaValue) -> FormulaValue:
        return coerce_to_date(first_value(*args)).second

    @staticmethod
    def WEEKDAY(date_value: FormulaValue, return_type: FormulaValue = 1) -> FormulaValue:
        """Day of the week.

        Return type 1: Sunday=1 .. Saturday=7 (default).
        Return type 2: Monday=1 .. Sunday=7.
        Return type 3: Monday=0 .. Sunday=6.
        """
        weekday = coerce_to_date(first_value(date_value)).weekday()  # Monday=0
        kind = coerce_to_integer(first_value(return_type))
        if kind == 1:
            return (weekday + 1) % 7 + 1
        if kind == 2:
            return weekday + 1
        if kind == 3:
            return weekday
        return NUM_ERROR

    @staticmethod
    def DATEDIF(
        start_date: FormulaValue, end_date: FormulaValue, unit: FormulaValue
    ) -> FormulaValue:
        """Difference between two dates in whole units.

        "D", "M" and "Y" floor the time difference by the length of a day,
        a 30-day month and a 365-day year. "YM" is the months left over
        after whole years. "MD" and "YD" give the days left after removing
        whole calendar months or years.
        """
        start = coerce_to_date(first_value(start_date))
        end = coerce_to_date(first_value(end_date))
        if start > end:
            return NUM_ERROR

        elapsed = end - start
        match coerce_to_text(first_value(unit)).upper():
            case "D":
                return elapsed // DAY_LENGTH
            case "M":
                return elapsed // MONTH_LENGTH
            case "Y":
                return elapsed // YEAR_LENGTH
            case "YM":
                return (elapsed // MONTH_LENGTH) % 12
            case "MD":
                months = _whole_months_between(start, end)
                anchor = pd.Timestamp(start) + pd.DateOffset(months=months)
                return (pd.Timestamp(end) - anchor) // pd.Timedelta(days=1)
            case "YD":
                years = _whole_months_between(start, end) // 12
                anchor = pd.Timestamp(start) + pd.DateOffset(years=years)
                return (pd.Timestamp(end) - anchor) // pd.Timedelta(days=1)
            case _:
                return NUM_ERROR

    @staticmethod
    def NETWORKDAYS(
        start_date: FormulaValue, end_date: FormulaValue, holidays: FormulaValue = None
    ) -> FormulaValue:
        """Working days (Monday to Friday) between two dates, both included."""
        start = np.datetime64(coerce_to_date(first_value(start_date)).date(), "D")
        end = np.datetime64(coerce_to_date(first_value(end_date)).date(), "D")
        days_off = [
            np.datetime64(coerce_to_date(h).date(), "D")
            for h in non_empty(flatten_args(holidays))
        ]
        one_day = np.timedelta64(1, "D")
        if start <= end:
            return int(np.busday_count(start, end + one_day, holidays=days_off))
        return -int(np.busday_count(end, start + one_day, holidays=days_off))

    @staticmethod
    def EDATE(start_date: FormulaValue, months: FormulaValue) -> FormulaValue:
        """Same day `months` later, clipped to the end of shorter months."""
        start = pd.Timestamp(coerce_to_date(first_value(start_date)))
        offset = pd.DateOffset(months=coerce_to_integer(first_value(months)))
        return _to_iso_date(start + offset)

    @staticmethod
    def EOMONTH(start_date: FormulaValue, months: FormulaValue) -> FormulaValue:
        """Last day of the month `months` after the start date."""
        start = coerce_to_date(first_value(start_date))
        first_of_month = pd.Timestamp(year=start.year, month=start.month, day=1)
        shifted = first_of_month + pd.DateOffset(
            months=coerce_to_integer(first_value(months))
        )
        return _to_iso_date(shifted + pd.offsets.MonthEnd(0))

    # Lookup

    @staticmethod
    def VLOOKUP(
        lookup_value: FormulaValue,
        table_array: FormulaValue,
        col_index_num: FormulaValue,
        range_lookup: FormulaValue = True,
    ) -> FormulaValue:
        """
        Lookup a value in the first column of a table and return the value in
        the same row from the given 1-based column.

        Args:
            lookup_value: The value to search for in the first column of table_array
            table_array: The range of cells to search in
            col_index_num: The column number in table_array from which to return a value
            range_lookup: If False, find exact match. If True, the last row whose
                key does not exceed the value (keys must be sorted ascending)
        """
        return _lookup(lookup_value, _lookup_table(table_array), col_index_num, range_lookup)

    @staticmethod
    def HLOOKUP(
        lookup_value: FormulaValue,
        table_array: FormulaValue,
        row_index_num: FormulaValue,
        range_lookup: FormulaValue = True,
    ) -> FormulaValue:
        """Like VLOOKUP, searching the first row and returning from a given row."""
        rows = _lookup_table(table_array)
        columns = [list(column) for column in zip(*rows)]
        return _lookup(lookup_value, columns, row_index_num, range_lookup)


# Register all unregistered static methods on FormulaFunctions by their method names
for _name, _member in FormulaFunctions.__dict__.items():
    if _name.startswith("_"):
        continue
    if isinstance(_member, staticmethod):
        _func = _member.__func__
        if (
            not getattr(_func, "_formula_fn_registered", False)
            and _name not in FORMULA_FUNCTIONS
        ):
            FORMULA_FUNCTIONS[_name] = _func


def call_function(name: str, *args: FormulaValue) -> FormulaValue:
    """Call a registered function by (case-insensitive) name."""
    try:
        fn = FORMULA_FUNCTIONS[name.upper()]
    except KeyError:
        raise FormulaFunctionError(f"Unknown function: {name}")
    return fn(*args)


if __name__ == "__main__":
    print("Registered functions:", sorted(FORMULA_FUNCTIONS.keys()))
