"""Handler execution boundary for FastAPI routes.

Use ServiceRoute as the route class of a router whose endpoints should have
their failures handled by the pipeline:

    router = APIRouter(route_class=ServiceRoute)

    @router.post("/users")
    async def create_user(request: CreateUser) -> CreateUserResponse: ...

Failures raised by the endpoint body become HandlerFailure, carrying the
request model type (``CreateUser``) and the bound request instance. Failures
raised by the route before the body runs (request validation, dependencies)
become RouteFailure and go to the uncaught-exception chain instead.
"""

import functools
import inspect
import typing
from collections.abc import Callable
from typing import Annotated, Any

from fastapi.routing import APIRoute
from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from faultline.http_error import HttpError


class HandlerFailure(Exception):
    """A failure raised while a request handler was executing."""

    def __init__(
        self,
        failure: BaseException,
        *,
        request_type: type | None = None,
        dto: BaseModel | None = None,
    ) -> None:
        self.failure = failure
        self.request_type = request_type
        self.dto = dto
        super().__init__(str(failure))


class RouteFailure(Exception):
    """A failure raised by a route outside its handler body."""

    def __init__(self, failure: BaseException) -> None:
        self.failure = failure
        super().__init__(str(failure))


def _model_type(annotation: Any) -> type[BaseModel] | None:
    if typing.get_origin(annotation) is Annotated:
        annotation = typing.get_args(annotation)[0]
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def request_model_param(endpoint: Callable[..., Any]) -> tuple[str | None, type[BaseModel] | None]:
    """Name and type of the first endpoint parameter annotated with a pydantic model."""
    try:
        signature = inspect.signature(endpoint, eval_str=True)
    except (NameError, TypeError):
        signature = inspect.signature(endpoint)
    for name, param in signature.parameters.items():
        model = _model_type(param.annotation)
        if model is not None:
            return name, model
    return None, None


def guard_endpoint(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``endpoint`` so its failures, and HttpError values it returns, raise HandlerFailure.

    The wrapper keeps the endpoint's sync/async nature and signature, so FastAPI
    resolves dependencies and threadpool dispatch exactly as for the original.
    """
    if getattr(endpoint, "__faultline_guarded__", False):
        # APIRouter.include_router rebuilds routes from the already wrapped endpoint
        return endpoint
    param_name, request_type = request_model_param(endpoint)

    def fail(failure: BaseException, kwargs: dict[str, Any]) -> HandlerFailure:
        dto = kwargs.get(param_name) if param_name is not None else None
        return HandlerFailure(failure, request_type=request_type, dto=dto)

    if inspect.iscoroutinefunction(endpoint):

        @functools.wraps(endpoint)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                result = await endpoint(*args, **kwargs)
            except Exception as exc:
                raise fail(exc, kwargs) from exc
            if isinstance(result, HttpError):
                raise fail(result, kwargs)
            return result

        async_wrapper.__faultline_guarded__ = True  # type: ignore[attr-defined]
        return async_wrapper

    @functools.wraps(endpoint)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            result = endpoint(*args, **kwargs)
        except Exception as exc:
            raise fail(exc, kwargs) from exc
        if isinstance(result, HttpError):
            raise fail(result, kwargs)
        return result

    sync_wrapper.__faultline_guarded__ = True  # type: ignore[attr-defined]
    return sync_wrapper


class ServiceRoute(APIRoute):
    """APIRoute that separates handler failures from everything else."""

    def __init__(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        super().__init__(path, guard_endpoint(endpoint), **kwargs)

    def get_route_handler(self) -> Callable[[Request], typing.Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except (HandlerFailure, RouteFailure):
                raise
            except Exception as exc:
                raise RouteFailure(exc) from exc

        return route_handler
