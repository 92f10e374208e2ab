"""Errors raised by grop. Every one of them aborts the run."""


class GropError(Exception):
    """Base error for this package."""


class ConfigError(GropError):
    """Raised when a pattern definition, filter rule or option set is malformed."""


class CompileError(GropError):
    """Raised when the grok engine rejects an expression."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"cannot compile {expression!r}: {reason}")
        self.expression = expression
        self.reason = reason


class MissingFieldError(GropError):
    """Raised when a configured field is not among the record's captures."""

    def __init__(self, name: str, role: str) -> None:
        super().__init__(f"unknown field {name!r} in {role}")
        self.name = name
        self.role = role


class StreamError(GropError):
    """Raised when reading input or writing output fails."""
