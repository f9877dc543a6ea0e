"""Exceptions raised by the procedure list updater."""
from __future__ import annotations


class ProcedureUpdateError(Exception):
    """Base class for errors raised while updating a script."""


class UnterminatedObjectError(ProcedureUpdateError):
    """An object header or body ran into the next object or the end of the stream.

    Once this happens the stream position is ambiguous, so a source document
    cannot be processed any further.
    """

    def __init__(self, message: str, source_description: str = "", line_number: int | None = None) -> None:
        super().__init__(message)
        self.source_description = source_description
        self.line_number = line_number


class ConfigError(ProcedureUpdateError, ValueError):
    """Invalid run options."""


class HeaderFormatError(ProcedureUpdateError):
    """A header could not be split into arguments and clauses.

    Only the object being parsed is affected; callers copy it through unchanged.
    """
