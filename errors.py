"""Exception classes for the reporting modules.

The aggregator itself only raises for programmer errors (unknown filter
types, negative horizons). Bad data is rejected at the ingestion boundary
with ``IngestionError``; bad settings files raise ``ConfigError``.
"""

from __future__ import annotations


class ReportingError(Exception):
    """Base class for errors surfaced to the command line."""


class IngestionError(ReportingError, ValueError):
    """A transaction export could not be turned into records.

    ``source`` names the file (or upload) and ``row`` is the 1-based data row
    when the problem is tied to a single row.
    """

    def __init__(self, message: str, *, source: str = "", row: int | None = None) -> None:
        self.source = source
        self.row = row
        prefix = source or "<input>"
        if row is not None:
            prefix = f"{prefix} row {row}"
        super().__init__(f"{prefix}: {message}")


class ConfigError(ReportingError, ValueError):
    """Report settings are present but invalid."""
