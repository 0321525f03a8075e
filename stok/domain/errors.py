"""
Exception hierarchy for the stock workflows.

Workflows raise these after validating input and before touching the store,
so a raised error always means nothing was mutated. The CLI turns them into
a single line for the user.
"""

from __future__ import annotations


class StokError(Exception):
    """Base class for every recoverable error of the application."""


class ValidationError(StokError):
    """Missing field, invalid quantity, duplicate pair or insufficient stock."""


class SpreadsheetError(StokError):
    """Spreadsheet could not be read, or its columns could not be matched."""
