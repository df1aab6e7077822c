"""Failure taxonomy and the capabilities the pipeline looks for.

Any exception can reach the pipeline. The classes here give handlers a
vocabulary that maps onto the built-in status table:

    ArgumentError family        -> 400
    NotSupportedError           -> 405
    AuthenticationError         -> 401
    AccessDeniedError           -> 403
    OptimisticConcurrencyError  -> 409

Failures may also describe themselves. The capability protocols below are
checked structurally, so third-party exceptions opt in by carrying the
attribute or method, without inheriting from anything here.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from faultline.schemas.error import ResponseError, ResponseStatus


@runtime_checkable
class HasStatusCode(Protocol):
    """Failure that reports its own HTTP status code."""

    status_code: int


@runtime_checkable
class HasResponseStatus(Protocol):
    """Failure that builds its own ResponseStatus body."""

    def to_response_status(self) -> ResponseStatus: ...


@runtime_checkable
class HasParamName(Protocol):
    """Failure that names the offending field or parameter."""

    param_name: str | None


@runtime_checkable
class HasErrorCode(Protocol):
    """Failure that supplies its own error code instead of its class name."""

    error_code: str


class FaultlineError(Exception):
    """Base class for failures raised by services using this package."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class ArgumentError(FaultlineError, ValueError):
    """Raised when a request argument is malformed."""

    def __init__(self, message: str = "", param_name: str | None = None) -> None:
        self.param_name = param_name
        super().__init__(message)


class ArgumentNullError(ArgumentError):
    """Raised when a required argument is missing."""


class ArgumentOutOfRangeError(ArgumentError):
    """Raised when an argument falls outside its allowed range."""


class NotSupportedError(FaultlineError, NotImplementedError):
    """Raised when an operation is not supported for this request."""


class AuthenticationError(FaultlineError):
    """Raised when the caller must authenticate first."""


class AccessDeniedError(FaultlineError, PermissionError):
    """Raised when an authenticated caller lacks permission."""


class OptimisticConcurrencyError(FaultlineError):
    """Raised when a write lost a race against a concurrent update."""


class ValidationError(FaultlineError):
    """Aggregates several field errors into one self-describing failure.

    The body is fully supplied by the failure, so the builder does not add
    a parameter error of its own.
    """

    status_code = 400

    def __init__(
        self,
        errors: Iterable[ResponseError],
        message: str | None = None,
        error_code: str = "ValidationError",
    ) -> None:
        self.errors = list(errors)
        self.error_code = error_code
        if message is None:
            message = self.errors[0].message if self.errors else "Validation failed"
        super().__init__(message)

    def to_response_status(self) -> ResponseStatus:
        return ResponseStatus(
            error_code=self.error_code,
            message=self.message,
            errors=list(self.errors),
        )
