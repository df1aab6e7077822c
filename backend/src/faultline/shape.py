"""Response container resolution.

A request model ``CreateUser`` conventionally pairs with a ``CreateUserResponse``
defined next to it. When such a type exists the error is returned in that
shape, so clients deserialize success and failure bodies into the same type.
The status goes into its ``response_status`` field; a response type without
that field gets no status at all. That is expected, not an error.

Response models are built without validation, so required fields do not get
in the way. Other types that cannot be built without arguments fall back to
the generic container.

Requests without a conventional response type get the generic ErrorResponse.
"""

import dataclasses
import sys
from typing import Any

from pydantic import BaseModel

from faultline.schemas.error import ErrorResponse, ResponseStatus

STATUS_FIELD = "response_status"


def has_status_slot(response_type: type) -> bool:
    """True when instances of ``response_type`` can hold a ResponseStatus."""
    if isinstance(response_type, type) and issubclass(response_type, BaseModel):
        return STATUS_FIELD in response_type.model_fields
    if dataclasses.is_dataclass(response_type):
        return any(field.name == STATUS_FIELD for field in dataclasses.fields(response_type))
    return hasattr(response_type, STATUS_FIELD)


def _instantiate(response_type: type) -> Any | None:
    """Empty instance of ``response_type``, or None when it cannot be built bare.

    Pydantic models are constructed without validation; required fields are
    left as None, which the codecs omit.
    """
    if issubclass(response_type, BaseModel):
        container = response_type.model_construct()
        for name, field in response_type.model_fields.items():
            if field.is_required():
                setattr(container, name, None)
        return container
    try:
        return response_type()
    except TypeError:
        return None


class ResponseShapeResolver:
    """Find and populate the container an error response is returned in."""

    def __init__(self, suffix: str = "Response") -> None:
        self.suffix = suffix
        self._registry: dict[type, type] = {}

    def register(self, request_type: type, response_type: type) -> None:
        """Pair a request type with a response type that breaks the naming rule."""
        self._registry[request_type] = response_type

    def response_type_for(self, request_type: type | None) -> type | None:
        if request_type is None:
            return None
        if request_type in self._registry:
            return self._registry[request_type]

        module = sys.modules.get(request_type.__module__)
        candidate = getattr(module, request_type.__name__ + self.suffix, None)
        if isinstance(candidate, type) and candidate is not request_type:
            return candidate
        return None

    def resolve(self, request_type: type | None, status: ResponseStatus) -> tuple[Any, bool]:
        """Return ``(container, has_status_slot)`` for an error on ``request_type``.

        A fresh instance is always created, whatever the handler had built
        before it failed.
        """
        response_type = self.response_type_for(request_type)
        if response_type is None:
            return ErrorResponse(response_status=status), True

        container = _instantiate(response_type)
        if container is None:
            return ErrorResponse(response_status=status), True
        if not has_status_slot(response_type):
            return container, False

        setattr(container, STATUS_FIELD, status)
        return container, True
