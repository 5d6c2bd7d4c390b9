"""
Exceptions raised inside the campaign import pipeline.

Only ImportAbortedError (and store failures) abort an import pass; the other
exceptions are caught where they happen and recorded on the ImportResult.
"""
from typing import Optional


class ImportAbortedError(Exception):
    """Structural problem with the input; the whole pass is rolled back."""


class RowParseError(ValueError):
    """A single row holds a value that cannot be parsed."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.value = value


class EntityValidationError(ValueError):
    """A draft entity failed validation and is skipped."""

    def __init__(self, message: str, row: Optional[int] = None, field: Optional[str] = None,
                 value: Optional[str] = None):
        super().__init__(message)
        self.row = row
        self.field = field
        self.value = value


class SnapshotError(Exception):
    """A snapshot could not be taken. Recorded as a warning, never fatal."""
