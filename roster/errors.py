"""Exception hierarchy for roster decoding, import and storage."""
from __future__ import annotations


class RosterError(Exception):
    """Base roster error."""


class WorkbookFormatError(RosterError):
    """Payload is not a readable xlsx workbook."""


class SheetStructureError(RosterError):
    """Sheet header has no recognizable date columns."""


class StorageTransientError(RosterError):
    """Database connection failed or a statement timed out; safe to retry later."""


class StorageUnavailableError(RosterError):
    """Database could not be reached at startup."""
