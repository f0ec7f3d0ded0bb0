"""Exceptions raised by the row engine."""

from __future__ import annotations


class RowError(Exception):
    """Raised when a row operation cannot be completed.

    Attributes:
        code: Machine-readable reason (e.g. ``"lock_length_failed"``).
        message: Human-readable description.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidSelectionError(RowError):
    """Raised when a selection cannot be turned into a row. Nothing is created."""
