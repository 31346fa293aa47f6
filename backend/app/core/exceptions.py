"""
Error types for CSV ingestion and census lookups.

Routes translate these into HTTP responses; services raise them.
"""
from typing import Optional


class ImporterError(Exception):
    """Base class for ingestion errors."""


class UploadValidationError(ImporterError):
    """Structural upload problem: wrong type, unparsable table, no rows."""

    def __init__(self, message: str, details: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class StorageError(ImporterError):
    """A storage select or write failed."""


class AddressConflictError(StorageError):
    """A write would give two properties the same address."""


class ReconciliationError(ImporterError):
    """Looking up existing records failed; the run must not continue."""

    def __init__(self, message: str, chunk_index: int):
        super().__init__(message)
        self.chunk_index = chunk_index


class CensusLookupError(Exception):
    """Base class for lookup failures. `message` is safe to show to users."""

    default_message = "Failed to fetch census data"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NoMatchError(CensusLookupError):
    default_message = "No address matches found"


class MalformedResponseError(CensusLookupError):
    default_message = "Malformed response from census service"


class CensusTransportError(CensusLookupError):
    default_message = "Failed to fetch census data"
