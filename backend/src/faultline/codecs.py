"""Serialization of response containers.

The pipeline only decides which untransformed container to send; a codec
turns it into bytes. Every container goes through ``jsonable_encoder`` first,
so a ResponseStatus renders to the same members whether it sits in the
generic ErrorResponse or in a request-specific response type.
"""

import json
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder


class Codec(Protocol):
    media_type: str

    def encode(self, container: Any) -> bytes: ...


class JsonCodec:
    """Compact UTF-8 JSON, rendered the same way as Starlette's JSONResponse."""

    media_type = "application/json"

    def encode(self, container: Any) -> bytes:
        content = jsonable_encoder(container, exclude_none=True)
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")
