"""Exception types raised by ``rideshare_statements``.

Only conditions that must stop the caller are exceptions. Advisory problems
met while parsing (a skipped page, a dropped row, a best-guess amount) are
collected as :class:`~rideshare_statements.models.ParseWarning` values instead.
"""

from __future__ import annotations


class RideshareStatementsError(Exception):
    """Base class for all package errors."""


class StatementSourceError(RideshareStatementsError):
    """The statement source (PDF file or page provider) could not be opened."""


class StatementPeriodNotFoundError(RideshareStatementsError):
    """Page one carries no recognizable statement period."""


class StatementAlreadyImportedError(RideshareStatementsError):
    """The statement period is already stored and replacement was not confirmed."""

    def __init__(self, period: str, existing_count: int) -> None:
        super().__init__(
            f"statement period {period!r} already has {existing_count} stored transactions; "
            "pass replace=True to overwrite it"
        )
        self.period = period
        self.existing_count = existing_count


class StoreWriteError(RideshareStatementsError):
    """Persisting transactions failed. Nothing is retried."""


__all__ = [
    "RideshareStatementsError",
    "StatementSourceError",
    "StatementPeriodNotFoundError",
    "StatementAlreadyImportedError",
    "StoreWriteError",
]
