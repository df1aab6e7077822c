"""Explicit, pre-resolved error responses.

``HttpError`` lets a handler decide the final response itself: status code,
headers and body. It can be raised like any failure or returned from an
endpoint; either way the pipeline sends it as constructed and never runs it
through the classifier or the status builder.

    raise HttpError.not_found("No such user")
    raise HttpError(402, "Top up your balance", error_code="PaymentRequired")
    return HttpError(202, body={"queued": True})
"""

import dataclasses
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel
from starlette.responses import Response

from faultline.codecs import Codec, JsonCodec
from faultline.schemas.error import ErrorResponse, ResponseStatus


def status_error_code(status_code: int) -> str:
    """``404`` -> ``"NotFound"``; unknown codes fall back to ``"Http<code>"``."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return f"Http{status_code}"
    return "".join(word.capitalize() for word in phrase.replace("-", " ").split())


class HttpError(Exception):
    """A terminal response raised or returned by calling code."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        error_code: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> None:
        if body is not None and not _encodable(body):
            raise TypeError(f"Cannot encode HttpError body of type {type(body).__name__}")
        self.status_code = int(status_code)
        self.error_code = error_code or status_error_code(status_code)
        self.message = message if message is not None else _default_message(status_code)
        self.headers = dict(headers or {})
        self.body = body
        super().__init__(self.message)

    @classmethod
    def bad_request(cls, message: str | None = None, **kwargs: Any) -> "HttpError":
        return cls(HTTPStatus.BAD_REQUEST, message, **kwargs)

    @classmethod
    def unauthorized(cls, message: str | None = None, **kwargs: Any) -> "HttpError":
        return cls(HTTPStatus.UNAUTHORIZED, message, **kwargs)

    @classmethod
    def forbidden(cls, message: str | None = None, **kwargs: Any) -> "HttpError":
        return cls(HTTPStatus.FORBIDDEN, message, **kwargs)

    @classmethod
    def not_found(cls, message: str | None = None, **kwargs: Any) -> "HttpError":
        return cls(HTTPStatus.NOT_FOUND, message, **kwargs)

    @classmethod
    def conflict(cls, message: str | None = None, **kwargs: Any) -> "HttpError":
        return cls(HTTPStatus.CONFLICT, message, **kwargs)

    def to_response_status(self) -> ResponseStatus:
        if isinstance(self.body, ErrorResponse):
            return self.body.response_status
        return ResponseStatus(error_code=self.error_code, message=self.message)

    def to_response(self, codec: Codec | None = None) -> Response:
        """Render exactly what was constructed."""
        body = self.body
        if body is None:
            body = ErrorResponse(response_status=self.to_response_status())

        if isinstance(body, bytes):
            return Response(body, status_code=self.status_code, headers=self.headers)
        if isinstance(body, str):
            return Response(
                body,
                status_code=self.status_code,
                headers=self.headers,
                media_type="text/plain",
            )

        codec = codec or JsonCodec()
        return Response(
            codec.encode(body),
            status_code=self.status_code,
            headers=self.headers,
            media_type=codec.media_type,
        )


def _encodable(body: Any) -> bool:
    return isinstance(body, (bytes, str, BaseModel, dict, list)) or dataclasses.is_dataclass(body)


def _default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"HTTP {status_code}"
