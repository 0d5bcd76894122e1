"""Domain exceptions for SplitSmart.

Each exception carries the HTTP status it maps to; main.py turns them into
JSON responses shaped like FastAPI's own HTTPException bodies.
"""


class SplitSmartError(Exception):
    """Base exception for all SplitSmart errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SplitSmartError):
    """Raised when input is malformed or breaks a ledger invariant."""

    status_code = 400


class AuthorizationError(SplitSmartError):
    """Raised when the caller lacks membership, ownership or participation."""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class NotFoundError(SplitSmartError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class StorageError(SplitSmartError):
    """Raised when the underlying store fails. The transaction has been rolled back."""

    status_code = 500
