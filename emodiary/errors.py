from typing import Optional


class DiaryError(Exception):
    """Base class for every error the diary core raises on purpose."""
    code = "ERR_DIARY"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InvalidInput(DiaryError):
    code = "ERR_INVALID_INPUT"


class DuplicateEntry(DiaryError):
    """The user already has an entry for this calendar day."""
    code = "ERR_DUPLICATE_ENTRY"


class NotFound(DiaryError):
    code = "ERR_NOT_FOUND"


class Forbidden(DiaryError):
    code = "ERR_FORBIDDEN"


class ExternalServiceFailure(DiaryError):
    """
    The analysis provider gave back nothing usable.

    `reason` keeps the internal stage that failed (transport, no_candidates,
    parse_error, incomplete_schema, ...) for logs and diagnostics. Callers
    should not branch on it.
    """
    code = "ERR_API_FAILURE"

    def __init__(self, message: str = "", reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class InternalError(DiaryError):
    code = "ERR_INTERNAL"
