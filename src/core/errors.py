"""Error taxonomy shared by the transport, transfer engine and store."""


class ErrorCodes:
    """Error code constants."""

    AUTH_EXPIRED = "AUTH_EXPIRED"
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    TRANSIENT_NETWORK = "TRANSIENT_NETWORK"
    PARTIAL_DELETE_FAILURE = "PARTIAL_DELETE_FAILURE"
    READ_ONLY = "READ_ONLY"
    IN_FLIGHT = "IN_FLIGHT"


class CalendarError(Exception):
    """Base class for every error the core raises."""

    code = "CALENDAR_ERROR"

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class AuthExpired(CalendarError):
    """
    Server answered 401/403.

    Fatal to the session: every call site tears the session down instead of
    reporting a local error.
    """

    code = ErrorCodes.AUTH_EXPIRED

    def __init__(self, status_code: int, message: str = "Session expired"):
        super().__init__(message)
        self.status_code = status_code


class ValidationRejected(CalendarError):
    """Payload refused locally or by the server. Not retried, nothing applied."""

    code = ErrorCodes.VALIDATION_REJECTED


class TransientNetwork(CalendarError):
    """Request never completed (connection error, timeout, 5xx)."""

    code = ErrorCodes.TRANSIENT_NETWORK


class PartialDeleteFailure(CalendarError):
    """
    A move created its destination items but some source deletes failed.

    The created items stand; the listed sources now exist twice.
    """

    code = ErrorCodes.PARTIAL_DELETE_FAILURE

    def __init__(self, failed_ids: list[str], created: int):
        message = (
            f"Created {created} item(s) but could not remove "
            f"{len(failed_ids)} source item(s)"
        )
        super().__init__(message, details=list(failed_ids))
        self.failed_ids = list(failed_ids)
        self.created = created
