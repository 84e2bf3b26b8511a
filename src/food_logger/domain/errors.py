"""Error taxonomy for food logging."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of failure classes surfaced to API callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_MISSING_SESSION = "AUTH_MISSING_SESSION"
    AUTH_SESSION_EXPIRED = "AUTH_SESSION_EXPIRED"
    FITBIT_NOT_CONNECTED = "FITBIT_NOT_CONNECTED"
    FITBIT_CREDENTIALS_MISSING = "FITBIT_CREDENTIALS_MISSING"
    FITBIT_TOKEN_INVALID = "FITBIT_TOKEN_INVALID"
    FITBIT_TIMEOUT = "FITBIT_TIMEOUT"
    FITBIT_API_ERROR = "FITBIT_API_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    PARTIAL_ERROR = "PARTIAL_ERROR"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.AUTH_MISSING_SESSION: 401,
    ErrorKind.AUTH_SESSION_EXPIRED: 401,
    ErrorKind.FITBIT_NOT_CONNECTED: 400,
    ErrorKind.FITBIT_CREDENTIALS_MISSING: 424,
    ErrorKind.FITBIT_TOKEN_INVALID: 401,
    ErrorKind.FITBIT_TIMEOUT: 504,
    ErrorKind.FITBIT_API_ERROR: 500,
    ErrorKind.INTERNAL_ERROR: 500,
    ErrorKind.PARTIAL_ERROR: 500,
}

DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION_ERROR: "Missing or invalid required fields",
    ErrorKind.AUTH_MISSING_SESSION: "No active session",
    ErrorKind.AUTH_SESSION_EXPIRED: "Session has expired",
    ErrorKind.FITBIT_NOT_CONNECTED: "Fitbit account not connected",
    ErrorKind.FITBIT_CREDENTIALS_MISSING: "Fitbit credentials not found",
    ErrorKind.FITBIT_TOKEN_INVALID: (
        "Fitbit session expired. Please reconnect your Fitbit account."
    ),
    ErrorKind.FITBIT_TIMEOUT: "Request to Fitbit timed out. Please try again.",
    ErrorKind.FITBIT_API_ERROR: "Failed to log food to Fitbit",
    ErrorKind.INTERNAL_ERROR: "Failed to save food log",
    ErrorKind.PARTIAL_ERROR: (
        "Food logged to Fitbit but local save failed and cleanup failed. "
        "Manual cleanup may be needed."
    ),
}


class FoodLogError(Exception):
    """Base error carrying a classified error kind."""

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        """HTTP status code for this error kind."""
        return HTTP_STATUS_BY_KIND[self.kind]


class ValidationError(FoodLogError):
    """Raised when a request fails validation."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.VALIDATION_ERROR, message)


class FitbitError(FoodLogError):
    """Raised by the Fitbit adapters with a classified kind."""
