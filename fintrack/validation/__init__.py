"""Import validation package."""

from fintrack.validation.importer import (
    ImportRejectedError,
    ImportResult,
    ImportValidator,
)

__all__ = ["ImportRejectedError", "ImportResult", "ImportValidator"]
