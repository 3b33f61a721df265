"""Error taxonomy of the activation bot.

Parse misses are never raised: extractors yield empty strings and the date
parsers yield ``None``, so only the errors below cross module boundaries.
"""

from typing import List, Optional


class ActivationError(Exception):
    """Base class for errors reported back to the chat."""


class ValidationError(ActivationError):
    """Required fields are missing from a submission."""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class DuplicateError(ActivationError):
    """The submitted AO is already stored."""

    def __init__(self, reference_id: str):
        self.reference_id = reference_id
        super().__init__(f"AO {reference_id} already recorded")


class UpstreamIOError(ActivationError):
    """The sheet store or the chat transport failed."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        super().__init__(message or f"{operation} failed")
