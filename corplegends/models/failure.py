"""
Failure Explanation Envelope — Unified Response Classification.

Every user-visible outcome is classified before it leaves the service:

- Success: Operation completed successfully
- KnownFailure: The core rejected the operation and knows why
- UnknownFailure: Something unexpected happened

Core operations are pure transformations over an explicit state. They signal
a rejected operation by raising a `KnownError` subclass, which carries its own
classification. The caller's state is never touched by a rejected operation.

AUTHORITY BOUNDARY:
All user-visible failure responses pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Pack generator
    NOT_ELIGIBLE = "not_eligible"

    # Trade engine
    INVALID_SELECTION = "invalid_selection"
    NOTHING_TO_GRANT = "nothing_to_grant"

    # Registration gate
    NOT_REGISTERED = "not_registered"
    ALREADY_REGISTERED = "already_registered"
    IDENTITY_MISMATCH = "identity_mismatch"

    # Input validation
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"

    # Collaborators
    STORAGE_FAILURE = "storage_failure"
    ROSTER_UNAVAILABLE = "roster_unavailable"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


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


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope for classified outcomes.

    Every failure is classified into one of the outcome types, so no
    failure reaches the player unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        """Create a success response."""
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
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

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


# =============================================================================
# CORE ERRORS
# =============================================================================


class NotEligibleError(KnownError):
    """Pack open attempted with neither a daily allowance nor an inventory pack."""

    def __init__(self, detail: str | None = None):
        super().__init__(
            kind=FailureKind.NOT_ELIGIBLE,
            message="No pack is available to open right now.",
            detail=detail,
            suggestion="Come back when your daily pack refreshes, or earn packs from achievements.",
            status_code=409,
        )


class InvalidSelectionError(KnownError):
    """Trade attempted with the wrong card count or an insufficient duplicate balance."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.INVALID_SELECTION,
            message="That selection of duplicates cannot be traded.",
            detail=detail,
            suggestion="Pick exactly three duplicates you actually have spare.",
            status_code=400,
        )


class NothingToGrantError(KnownError):
    """Trade attempted while every roster card is already owned."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.NOTHING_TO_GRANT,
            message="You already own every card. There is nothing left to trade for.",
            detail="Unowned card pool is empty",
            status_code=409,
        )


class StorageFailureError(KnownError):
    """
    Persistence read or write failed.

    The last successfully persisted state remains the durable truth.
    """

    def __init__(self, detail: str, suggestion: str | None = None):
        super().__init__(
            kind=FailureKind.STORAGE_FAILURE,
            message="Your progress could not be saved.",
            detail=detail,
            suggestion=suggestion or "Try again. If it keeps failing, reduce the payload size.",
            status_code=507,
        )


class RosterUnavailableError(KnownError):
    """The roster provider failed and no fallback roster could be produced."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.ROSTER_UNAVAILABLE,
            message="The card roster is not available right now.",
            detail=detail,
            suggestion="Try again in a moment.",
            status_code=503,
        )


class NotRegisteredError(KnownError):
    """Mutation attempted before registration."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.NOT_REGISTERED,
            message="Create your album before opening packs or trading.",
            status_code=403,
        )


class AlreadyRegisteredError(KnownError):
    """Registration attempted on an already registered album."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.ALREADY_REGISTERED,
            message="This album is already registered.",
            suggestion="Log in with the name and email you registered with.",
            status_code=409,
        )


class IdentityMismatchError(KnownError):
    """Name and email do not match the registered album."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.IDENTITY_MISMATCH,
            message="Name and email do not match this album.",
            status_code=401,
        )


class CardNotFoundError(KnownError):
    """A card id is not part of the roster."""

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Card {card_id} is not in the roster.",
            status_code=404,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

STANDARD_UNKNOWN_MESSAGE = "Something went wrong and your album was not changed. Please retry."

# Track finalized responses
_finalized_responses: set[int] = set()


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    _finalized_responses.add(id(response))

    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    """Check if a response has passed through the authority boundary."""
    return id(response) in _finalized_responses


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    """Create a finalized known failure response from a classified error."""
    return finalize_response(error.to_response())


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """
    Create a finalized unknown failure response from an exception.

    The message is fixed; only the exception type name is exposed.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_UNKNOWN_MESSAGE,
            detail=type(exception).__name__,
            suggestion="If this persists, please report the issue.",
        ),
    )
    return finalize_response(response)
