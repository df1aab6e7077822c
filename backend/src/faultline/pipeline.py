"""Failure handling orchestration.

One ErrorPipeline is built at startup, configured, and then shared read-only
by every request. Precedence, most specific first:

Failures raised by a request handler:
    HttpError (already resolved)
    -> runner hook registered for the request type
    -> service-exception chain, in registration order
    -> classify + build + enrich + resolve shape -> page or codec

Failures raised outside a handler (binding, dependencies, middleware):
    HttpError (already resolved)
    -> uncaught-exception chain, in registration order
    -> generic 500 with the failure's kind name and message

A chain entry resolves the failure by returning a Response and declines by
returning None. The first resolving entry ends handling; the classifier never
runs after it.
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from starlette.requests import Request
from starlette.responses import Response

from faultline.builder import (
    FieldErrorEnricher,
    build_response_status,
    enrich_field_errors,
    failure_message,
    format_stack_trace,
    pydantic_field_errors,
    unwrap_failure,
)
from faultline.codecs import Codec, JsonCodec
from faultline.config import Settings
from faultline.http_error import HttpError
from faultline.logging import get_logger
from faultline.pages import FallbackPages, PageRenderer
from faultline.schemas.error import ErrorResponse, ResponseStatus
from faultline.shape import ResponseShapeResolver
from faultline.status import DEFAULT_STATUS, StatusOverrideTable, classify

logger = get_logger(__name__)

ServiceExceptionHandler = Callable[[Request, BaseModel | None, BaseException], Response | None]
UncaughtExceptionHandler = Callable[[Request, BaseException], Response | None]


class ErrorPipeline:
    """Process-wide failure handling configuration and entry points."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        codec: Codec | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.codec = codec or JsonCodec()
        self.overrides = StatusOverrideTable()
        self.shapes = ResponseShapeResolver(suffix=self.settings.response_suffix)
        self.pages = FallbackPages()
        self.runner_hooks: dict[type, ServiceExceptionHandler] = {}
        self.service_exception_handlers: list[ServiceExceptionHandler] = []
        self.uncaught_exception_handlers: list[UncaughtExceptionHandler] = []
        self.field_error_enrichers: list[FieldErrorEnricher] = [pydantic_field_errors]

    # -- startup configuration ------------------------------------------------

    def map_exception_to_status(self, kind: type[BaseException], status_code: int) -> None:
        self.overrides.register(kind, status_code)

    def register_runner_hook(self, request_type: type, hook: ServiceExceptionHandler) -> None:
        """Handle failures of one request type before any chain sees them."""
        self.runner_hooks[request_type] = hook

    def add_service_exception_handler(self, handler: ServiceExceptionHandler) -> None:
        self.service_exception_handlers.append(handler)

    def add_uncaught_exception_handler(self, handler: UncaughtExceptionHandler) -> None:
        self.uncaught_exception_handlers.append(handler)

    def add_field_error_enricher(self, enricher: FieldErrorEnricher) -> None:
        self.field_error_enrichers.append(enricher)

    def set_fallback_page(self, renderer: PageRenderer, status_code: int | None = None) -> None:
        """Global fallback page, or the page for one status code."""
        self.pages.set(renderer, status_code)

    def register_response_type(self, request_type: type, response_type: type) -> None:
        self.shapes.register(request_type, response_type)

    # -- building blocks --------------------------------------------------------

    def classify(self, failure: BaseException) -> int:
        return classify(failure, self.overrides)

    def build_status(self, failure: BaseException) -> ResponseStatus:
        """Base status plus enricher output."""
        status = build_response_status(
            failure,
            debug=self.settings.debug_mode,
            param_marker=self.settings.param_marker,
        )
        return enrich_field_errors(status, failure, self.field_error_enrichers)

    def render(self, request: Request, status_code: int, container: Any) -> Response:
        """Fallback page when the client prefers HTML and one is set, else codec output."""
        renderer = self.pages.resolve(request, status_code)
        if renderer is not None:
            return renderer(request, status_code, container)
        return Response(
            self.codec.encode(container),
            status_code=status_code,
            media_type=self.codec.media_type,
        )

    def error_response(
        self,
        request: Request,
        failure: BaseException,
        *,
        request_type: type | None = None,
    ) -> Response:
        """Classify, build and shape one failure. Runs no chain entries."""
        failure = unwrap_failure(failure)
        status_code = self.classify(failure)
        status = self.build_status(failure)
        container, _ = self.shapes.resolve(request_type, status)
        return self.render(request, status_code, container)

    # -- entry points -----------------------------------------------------------

    def handle_service_exception(
        self,
        request: Request,
        failure: BaseException,
        *,
        request_type: type | None = None,
        dto: BaseModel | None = None,
    ) -> Response:
        """Turn a failure raised by a request handler into a response."""
        failure = unwrap_failure(failure)
        if isinstance(failure, HttpError):
            return self._http_error_response(failure)

        hook = self.runner_hooks.get(request_type) if request_type is not None else None
        if hook is not None:
            response = self._call_entry(hook, request, dto, failure)
            if response is not None:
                return response

        for handler in self.service_exception_handlers:
            response = self._call_entry(handler, request, dto, failure)
            if response is not None:
                return response

        response = self.error_response(request, failure, request_type=request_type)
        logger.warning(
            "service_exception",
            status=response.status_code,
            kind=type(failure).__name__,
            error=failure_message(failure),
            request_type=getattr(request_type, "__name__", None),
        )
        return response

    def handle_uncaught_exception(self, request: Request, failure: BaseException) -> Response:
        """Turn a failure raised outside a request handler into a response."""
        failure = unwrap_failure(failure)
        if isinstance(failure, HttpError):
            return self._http_error_response(failure)

        for handler in self.uncaught_exception_handlers:
            response = self._call_entry(handler, request, failure)
            if response is not None:
                return response

        logger.error(
            "uncaught_exception",
            kind=type(failure).__name__,
            exc_info=failure,
        )
        status = ResponseStatus(
            error_code=type(failure).__name__,
            message=failure_message(failure),
        )
        if self.settings.debug_mode:
            status.stack_trace = format_stack_trace(failure)
        return self.render(request, DEFAULT_STATUS, ErrorResponse(response_status=status))

    def _http_error_response(self, error: HttpError) -> Response:
        logger.info("http_error", status=error.status_code, error_code=error.error_code)
        return error.to_response(self.codec)

    def _call_entry(self, entry: Callable[..., Response | None], *args: Any) -> Response | None:
        # a broken entry counts as a decline; handling must still end in a response
        try:
            return entry(*args)
        except Exception:
            logger.exception("chain_entry_failed", entry=getattr(entry, "__qualname__", repr(entry)))
            return None
