"""Error types for formrules with configuration location context."""

from __future__ import annotations


class FormRulesError(Exception):
    """Base error with an optional config path or source location."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        loc = ""
        if path:
            loc = f" (at {path})"
        elif line is not None:
            loc = f" (line {line}"
            if column is not None:
                loc += f", col {column}"
            loc += ")"
        super().__init__(f"{message}{loc}")


class ParseError(FormRulesError):
    """Raised when a condition expression or form document cannot be parsed."""


class SchemaError(FormRulesError):
    """Raised when configuration fails schema validation.

    When raised by a loader, ``errors`` holds every individual problem found.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        errors: list[SchemaError] | None = None,
    ):
        super().__init__(message, path=path)
        self.errors = errors or []
