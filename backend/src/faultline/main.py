"""FastAPI host integration.

``install(app, pipeline)`` routes every failure the app can raise into the
pipeline; ``create_app()`` builds a ready-to-serve app around it.

    pipeline = ErrorPipeline()
    pipeline.map_exception_to_status(UserLockedError, 423)
    app = create_app(pipeline)
    app.include_router(users.router)  # APIRouter(route_class=ServiceRoute)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from faultline.http_error import HttpError, status_error_code
from faultline.logging import get_logger
from faultline.middleware import RequestIDMiddleware
from faultline.pipeline import ErrorPipeline
from faultline.routing import HandlerFailure, RouteFailure, ServiceRoute
from faultline.schemas.error import ErrorResponse, ResponseStatus

logger = get_logger(__name__)


def get_pipeline(request: Request) -> ErrorPipeline:
    """The pipeline installed on the app serving ``request``."""
    return request.app.state.error_pipeline  # type: ignore[no-any-return]


def handle_request_validation(request: Request, failure: BaseException) -> Response | None:
    """400 with one field error per invalid input."""
    if not isinstance(failure, RequestValidationError):
        return None
    pipeline = get_pipeline(request)
    status = pipeline.build_status(failure)
    status = status.model_copy(update={"message": "Request validation failed"})
    return pipeline.render(request, 400, ErrorResponse(response_status=status))


def handle_http_exception(request: Request, failure: BaseException) -> Response | None:
    """Starlette HTTP exceptions (unknown route, wrong method) keep their status."""
    if not isinstance(failure, StarletteHTTPException):
        return None
    pipeline = get_pipeline(request)
    message = failure.detail if isinstance(failure.detail, str) else "Request failed"
    status = ResponseStatus(error_code=status_error_code(failure.status_code), message=message)
    response = pipeline.render(request, failure.status_code, ErrorResponse(response_status=status))
    for name, value in (failure.headers or {}).items():
        response.headers[name] = value
    return response


BUILTIN_UNCAUGHT_HANDLERS = (handle_request_validation, handle_http_exception)


def install(app: FastAPI, pipeline: ErrorPipeline, *, builtin_handlers: bool = True) -> None:
    """Attach ``pipeline`` to ``app`` and register its exception handlers.

    Routes declared on the app itself afterwards use ServiceRoute.
    The built-in uncaught entries go after any already registered, so user
    entries get the first chance at validation and HTTP exceptions.
    """
    app.state.error_pipeline = pipeline
    app.router.route_class = ServiceRoute

    if builtin_handlers:
        for handler in BUILTIN_UNCAUGHT_HANDLERS:
            if handler not in pipeline.uncaught_exception_handlers:
                pipeline.add_uncaught_exception_handler(handler)

    @app.exception_handler(HandlerFailure)
    async def handler_failure(request: Request, exc: HandlerFailure) -> Response:
        return pipeline.handle_service_exception(
            request,
            exc.failure,
            request_type=exc.request_type,
            dto=exc.dto,
        )

    @app.exception_handler(RouteFailure)
    async def route_failure(request: Request, exc: RouteFailure) -> Response:
        return pipeline.handle_uncaught_exception(request, exc.failure)

    @app.exception_handler(HttpError)
    @app.exception_handler(RequestValidationError)
    @app.exception_handler(StarletteHTTPException)
    async def framework_failure(request: Request, exc: Exception) -> Response:
        return pipeline.handle_uncaught_exception(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_failure(request: Request, exc: Exception) -> Response:
        """Failures in middleware. Starlette re-raises them after responding."""
        return pipeline.handle_uncaught_exception(request, exc)


def create_app(pipeline: ErrorPipeline | None = None, **kwargs: object) -> FastAPI:
    """App with request tracing, the error pipeline and a health check."""
    pipeline = pipeline or ErrorPipeline()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # registration is over once the app starts serving
        logger.info(
            "error_pipeline_ready",
            overrides=len(pipeline.overrides),
            service_handlers=len(pipeline.service_exception_handlers),
            uncaught_handlers=len(pipeline.uncaught_exception_handlers),
            debug_mode=pipeline.settings.debug_mode,
        )
        yield

    app = FastAPI(lifespan=lifespan, **kwargs)  # type: ignore[arg-type]
    app.add_middleware(RequestIDMiddleware)
    install(app, pipeline)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe; the pipeline holds no external resources to check."""
        return {"status": "ok"}

    return app
