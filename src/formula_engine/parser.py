import logging
from typing import Collection, Optional

from rapidfuzz import fuzz, process

from formula_engine.errors import ParseError
from formula_engine.functions import FORMULA_FUNCTIONS
from formula_engine.operators import COMPARISON_OPERATORS
from formula_engine.types import parse_number
from .ast import (
    ASTNode,
    CellRange,
    CellReference,
    Comparison,
    Constant,
    FunctionCall,
    Unmatched,
)
from .utils import FUNCTION_CALL_REGEX, FUNCTION_PREFIX_REGEX, parse_reference

QUOTES = "\"'"


def parse_formula(
    formula: str, functions: Collection[str] = FORMULA_FUNCTIONS
) -> ASTNode:
    """Helper function to parse a formula string into an AST."""
    return FormulaParser(functions).parse(formula)


def split_arguments(text: str) -> list[str]:
    """Split an argument list on the commas that sit at parenthesis depth 0.

    Commas inside nested calls or inside quoted text do not split. A
    trailing empty argument is dropped, so `PI()` has no arguments. Raises
    ParseError when the parentheses do not balance.
    """
    args: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None

    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ParseError(f"Unbalanced ')' in arguments: {text!r}")
        elif char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    if depth != 0:
        raise ParseError(f"Unbalanced '(' in arguments: {text!r}")

    last = "".join(current).strip()
    if last:
        args.append(last)
    return args


def is_quoted(text: str) -> bool:
    return (
        len(text) >= 2
        and text[0] in QUOTES
        and text[-1] == text[0]
        and text[0] not in text[1:-1]
    )


def find_comparison(text: str) -> Optional[tuple[str, str, str]]:
    """Find the first comparison operator outside parentheses and quotes.

    Returns (left, operator, right), or None if there is no operator with a
    non-empty operand on each side.
    """
    depth = 0
    quote: Optional[str] = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in QUOTES:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and char in "<>=":
            operator = next(op for op in COMPARISON_OPERATORS if text.startswith(op, i))
            left = text[:i].strip()
            right = text[i + len(operator) :].strip()
            if left and right:
                return left, operator, right
            return None
        i += 1
    return None


def suggest_function(name: str, functions: Collection[str]) -> Optional[str]:
    """Return the registered function name closest to `name`, if any is close."""
    match = process.extractOne(
        name.upper(), list(functions), scorer=fuzz.ratio, score_cutoff=70
    )
    return match[0] if match else None


class FormulaParser:
    """Parses the restricted formula language.

    A formula is either a bare cell reference or exactly one call to a
    registered function. There is no infix arithmetic: anything else parses
    to an Unmatched node that evaluates to the formula text itself.
    """

    def __init__(self, functions: Collection[str] = FORMULA_FUNCTIONS):
        self.functions = functions

    def parse(self, formula: str) -> ASTNode:
        if not formula.startswith("="):
            raise ParseError(f"Not a formula: {formula!r}")
        expr = formula[1:].strip()

        match = FUNCTION_CALL_REGEX.match(expr)
        if match:
            name, args_text = match.groups()
            name = name.upper()
            if name in self.functions:
                try:
                    raw_args = split_arguments(args_text)
                except ParseError as e:
                    logging.debug(f"Leaving {formula!r} unevaluated: {e}")
                else:
                    return FunctionCall(
                        name=name,
                        arguments=tuple(self.parse_argument(arg) for arg in raw_args),
                    )
            else:
                suggestion = suggest_function(name, self.functions)
                logging.debug(
                    f"Unknown function {name} in {formula!r}"
                    + (f" (did you mean {suggestion}?)" if suggestion else "")
                )

        if (ref := parse_reference(expr)) is not None:
            return CellReference(*ref)

        return Unmatched(text=formula)

    def parse_argument(self, text: str) -> ASTNode:
        """Classify a single raw argument."""
        text = text.strip()

        if is_quoted(text):
            return Constant(text[1:-1])

        if comparison := find_comparison(text):
            left, operator, right = comparison
            return Comparison(
                left=self.parse_argument(left),
                operator=operator,
                right=self.parse_argument(right),
            )

        # Checked before ranges: a nested call may itself contain a range
        if FUNCTION_PREFIX_REGEX.match(text):
            return self.parse("=" + text)

        if ":" in text:
            return CellRange(text=text)

        if (ref := parse_reference(text)) is not None:
            return CellReference(*ref)

        if text.upper() in ("TRUE", "FALSE"):
            return Constant(text.upper() == "TRUE")

        try:
            return Constant(parse_number(text))
        except ValueError:
            return Constant(text)
