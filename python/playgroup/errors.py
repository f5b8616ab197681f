"""API error definitions.

All domain failures are raised as ApiError subclasses and rendered by the
exception handlers in playgroup.responses as typed error envelopes, so the
front end can show a specific message for each kind.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_CYCLE_NOT_FOUND = "E_CYCLE_NOT_FOUND"
    E_ALBUM_NOT_FOUND = "E_ALBUM_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_RATING = "E_INVALID_RATING"
    E_REVIEW_TOO_SHORT = "E_REVIEW_TOO_SHORT"

    # Conflict errors (409)
    E_DUPLICATE_SUBMISSION = "E_DUPLICATE_SUBMISSION"
    E_PAST_WINNER = "E_PAST_WINNER"
    E_SUBMISSION_LIMIT = "E_SUBMISSION_LIMIT"
    E_CYCLE_NOT_VOTING = "E_CYCLE_NOT_VOTING"
    E_ALREADY_VOTED = "E_ALREADY_VOTED"
    E_ALBUM_NOT_VOTABLE = "E_ALBUM_NOT_VOTABLE"
    E_ALREADY_REVIEWED = "E_ALREADY_REVIEWED"
    E_ALREADY_TRANSITIONED = "E_ALREADY_TRANSITIONED"
    E_USERNAME_TAKEN = "E_USERNAME_TAKEN"

    # Server errors (500)
    E_INTERNAL = "E_INTERNAL"


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_CYCLE_NOT_FOUND: 404,
    ApiErrorCode.E_ALBUM_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INVALID_RATING: 400,
    ApiErrorCode.E_REVIEW_TOO_SHORT: 400,
    ApiErrorCode.E_DUPLICATE_SUBMISSION: 409,
    ApiErrorCode.E_PAST_WINNER: 409,
    ApiErrorCode.E_SUBMISSION_LIMIT: 409,
    ApiErrorCode.E_CYCLE_NOT_VOTING: 409,
    ApiErrorCode.E_ALREADY_VOTED: 409,
    ApiErrorCode.E_ALBUM_NOT_VOTABLE: 409,
    ApiErrorCode.E_ALREADY_REVIEWED: 409,
    ApiErrorCode.E_ALREADY_TRANSITIONED: 409,
    ApiErrorCode.E_USERNAME_TAKEN: 409,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class AuthenticationRequiredError(ApiError):
    """No resolvable caller identity was supplied."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(ApiErrorCode.E_UNAUTHENTICATED, message)


class ConflictError(ApiError):
    """A ledger invariant rejected the mutation."""


class AlreadyTransitionedError(ConflictError):
    """The cycle already left the voting phase.

    Benign: a concurrent request completed the transition first.
    """

    def __init__(self, message: str = "Cycle already transitioned to listening"):
        super().__init__(ApiErrorCode.E_ALREADY_TRANSITIONED, message)
