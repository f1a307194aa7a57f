"""Error types shared by the service layers.

Each error carries the HTTP status it maps to, so the API boundary can turn
any of them into a response without knowing where it was raised.
"""


class FileCabinetError(Exception):
    """Base class for all FileCabinet errors."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Custom error message (uses default_message if None).
            details: Additional error details.
        """
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(FileCabinetError):
    """Missing or empty user input."""

    status_code = 400
    default_message = "Invalid request data"


class NotFoundError(FileCabinetError):
    """Nothing stored to answer from."""

    status_code = 404
    default_message = "Resource not found"


class UpstreamError(FileCabinetError):
    """Embedding or completion API failed or returned a malformed payload."""

    status_code = 500
    default_message = "Upstream API error"


class StorageError(FileCabinetError):
    """Connection or query failure against the document store."""

    status_code = 500
    default_message = "Document store error"
