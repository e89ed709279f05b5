class FormulaError(Exception):
    """Base class for every error raised inside the formula engine."""


class CoercionError(FormulaError):
    """A value cannot be converted to the requested type."""


class FormulaFunctionError(FormulaError):
    """A built-in function was called with arguments it cannot handle."""


class ParseError(FormulaError):
    """A formula or one of its arguments is malformed."""


class InvalidReference(FormulaError):
    """A cell address does not match the `<letters><digits>` pattern."""
