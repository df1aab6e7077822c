"""Failure -> ResponseStatus.

The builder is pure: the same failure and options always produce an equal
ResponseStatus, and nothing is logged or recorded here.
"""

import traceback
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import pydantic
from fastapi.exceptions import RequestValidationError

from faultline.config import DEFAULT_PARAM_MARKER
from faultline.exceptions import HasErrorCode, HasParamName, HasResponseStatus
from faultline.schemas.error import ResponseError, ResponseStatus

FieldErrorEnricher = Callable[[BaseException], Iterable[ResponseError]]

# FastAPI prefixes every validation location with where the value came from
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def unwrap_failure(failure: BaseException) -> BaseException:
    """Reduce exception groups of exactly one member to that member."""
    while isinstance(failure, BaseExceptionGroup) and len(failure.exceptions) == 1:
        failure = failure.exceptions[0]
    return failure


def failure_message(failure: BaseException) -> str:
    """Human-readable text of a failure.

    Prefers an explicit ``message`` attribute, then a string ``detail``
    (Starlette's HTTPException), then ``str(failure)``.
    """
    for attr in ("message", "detail"):
        value = getattr(failure, attr, None)
        if isinstance(value, str) and value:
            return value
    return str(failure)


def error_code_for(failure: BaseException) -> str:
    if isinstance(failure, HasErrorCode) and isinstance(failure.error_code, str):
        if failure.error_code:
            return failure.error_code
    return type(failure).__name__


def strip_param_annotation(message: str, marker: str = DEFAULT_PARAM_MARKER) -> str:
    """Drop a trailing parameter-name annotation: keep what precedes ``marker``."""
    if not marker:
        return message
    return message.split(marker, 1)[0].rstrip()


def format_stack_trace(failure: BaseException) -> str | None:
    if failure.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(failure))


def build_response_status(
    failure: BaseException,
    *,
    debug: bool = False,
    param_marker: str = DEFAULT_PARAM_MARKER,
) -> ResponseStatus:
    """Build the canonical error payload for ``failure``.

    A failure implementing ``to_response_status()`` supplies the whole body
    and nothing else is added. Otherwise the code is the failure's kind name
    and a failure naming an offending parameter gets exactly one field error.
    The stack trace is attached only in debug mode.
    """
    if isinstance(failure, HasResponseStatus):
        return failure.to_response_status()

    code = error_code_for(failure)
    message = failure_message(failure)
    status = ResponseStatus(error_code=code, message=message)

    if isinstance(failure, HasParamName) and isinstance(failure.param_name, str):
        if failure.param_name:
            status.errors.append(
                ResponseError(
                    error_code=code,
                    field_name=failure.param_name,
                    message=strip_param_annotation(message, param_marker),
                )
            )

    if debug:
        status.stack_trace = format_stack_trace(failure)
    return status


def enrich_field_errors(
    status: ResponseStatus,
    failure: BaseException,
    enrichers: Sequence[FieldErrorEnricher],
) -> ResponseStatus:
    """Append field errors derived from ``failure``; existing errors are kept.

    An error equal to one already present is not added twice.
    """
    for enricher in enrichers:
        for error in enricher(failure):
            if error not in status.errors:
                status.errors.append(error)
    return status


def format_location(location: Sequence[Any] | Any) -> str:
    if not isinstance(location, (tuple, list)):
        return str(location)

    parts = [str(part) for part in location if part not in _LOCATION_PREFIXES]
    if parts:
        return ".".join(parts)
    if not location:
        return "request"
    return str(location[0])


def pydantic_field_errors(failure: BaseException) -> list[ResponseError]:
    """Field errors for pydantic and FastAPI request validation failures."""
    if not isinstance(failure, (pydantic.ValidationError, RequestValidationError)):
        return []

    errors: list[ResponseError] = []
    for issue in failure.errors():
        errors.append(
            ResponseError(
                error_code=str(issue.get("type", "value_error")),
                field_name=format_location(issue.get("loc", ())),
                message=str(issue.get("msg", "Invalid value")),
            )
        )
    return errors
