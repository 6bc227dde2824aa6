"""
Failure classification shared by services and the HTTP layer.

Services raise KnownError subclasses. The HTTP layer converts them into an
ApiResponse envelope; anything else becomes an unknown failure with a fixed,
generic message so internal detail never leaks.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    VALIDATION_FAILED = "validation_failed"

    # Resource failures
    NOT_FOUND = "not_found"

    # Identity failures
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_PASSWORD = "invalid_password"
    NOT_AUTHENTICATED = "not_authenticated"

    # Service failures
    LOOKUP_UNAVAILABLE = "lookup_unavailable"

    # Store failures not otherwise classified
    UNEXPECTED = "unexpected"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel):
    """Envelope returned for every failed request."""

    outcome: OutcomeType
    failure: FailureDetail | None = None

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse":
        """Create a known failure response."""
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
            ),
        )

    @classmethod
    def unknown_failure(cls) -> "ApiResponse":
        """
        Create an unknown failure response.

        The message is fixed; exception text is never included.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNEXPECTED,
                message="Something went wrong on our side.",
                suggestion="Please try again. If this persists, please report the issue.",
            ),
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class NotFoundError(KnownError):
    """
    Entity is absent or not owned by the caller.

    The two cases are deliberately indistinguishable.
    """

    def __init__(self, message: str = "Not found.", suggestion: str | None = None):
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=message,
            suggestion=suggestion,
            status_code=404,
        )


class DuplicateEmailError(KnownError):
    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.DUPLICATE_EMAIL,
            message="Could not create account. This email may already be in use.",
            suggestion="Try logging in instead.",
            status_code=409,
        )


class InvalidCredentialsError(KnownError):
    """Raised for both unknown emails and wrong passwords."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.INVALID_CREDENTIALS,
            message="Invalid email or password.",
            status_code=401,
        )


class InvalidPasswordError(KnownError):
    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.INVALID_PASSWORD,
            message="Could not change password. Check your current password.",
            status_code=400,
        )


class NotAuthenticatedError(KnownError):
    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.NOT_AUTHENTICATED,
            message="You need to log in first.",
            status_code=401,
        )


class LookupUnavailableError(KnownError):
    """
    The external catalog could not be reached or answered with an error.

    Transient, unlike NotFoundError.
    """

    def __init__(self, detail: str | None = None):
        super().__init__(
            kind=FailureKind.LOOKUP_UNAVAILABLE,
            message="We couldn't search for cards right now.",
            detail=detail,
            suggestion="Please try again.",
            status_code=503,
        )


class ValidationError(KnownError):
    """Malformed input, rejected before any store access."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(
            kind=FailureKind.VALIDATION_FAILED,
            message=message,
            detail=field,
            status_code=400,
        )


class UnexpectedError(KnownError):
    """Store or transaction failure. Carries no internal detail."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.UNEXPECTED,
            message="Something went wrong on our side.",
            suggestion="Please try again.",
            status_code=500,
        )


def failure_payload(exc: KnownError) -> dict[str, Any]:
    """JSON body for a known error."""
    return exc.to_response().model_dump(mode="json")
