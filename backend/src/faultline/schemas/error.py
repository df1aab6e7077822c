"""Error payload schemas.

The wire shape is the one stable contract of the pipeline:

    {"response_status": {"error_code": "...", "message": "...",
                         "errors": [{"error_code": "...", "field_name": "...",
                                     "message": "..."}],
                         "stack_trace": "..."}}

Optional members that are None are omitted by the codecs, so a trace is either
present in full or absent entirely.
"""

from pydantic import BaseModel, ConfigDict, Field


class ResponseError(BaseModel):
    """One field-level error."""

    model_config = ConfigDict(frozen=True)

    error_code: str
    field_name: str | None = None
    message: str


class ResponseStatus(BaseModel):
    """Canonical error payload: code, message, field errors, optional trace."""

    error_code: str
    message: str
    errors: list[ResponseError] = Field(default_factory=list)
    stack_trace: str | None = None


class ErrorResponse(BaseModel):
    """Generic container, used when a request has no conventional response type."""

    response_status: ResponseStatus
