"""Settings, logging setup and route guarding helpers."""

import logging

import pytest
from pydantic import BaseModel

from faultline.config import DEFAULT_PARAM_MARKER, Settings
from faultline.http_error import HttpError
from faultline.logging import LoggingSettings, configure_logging, get_logger
from faultline.pipeline import ErrorPipeline
from faultline.routing import HandlerFailure, guard_endpoint, request_model_param


class Order(BaseModel):
    sku: str = ""


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FAULTLINE_DEBUG_MODE", "FAULTLINE_PARAM_MARKER", "FAULTLINE_RESPONSE_SUFFIX"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.debug_mode is False
    assert settings.param_marker == DEFAULT_PARAM_MARKER
    assert settings.response_suffix == "Response"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FAULTLINE_DEBUG_MODE", "true")
    monkeypatch.setenv("FAULTLINE_RESPONSE_SUFFIX", "Result")

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.debug_mode is True
    assert settings.response_suffix == "Result"


def test_pipeline_uses_configured_suffix() -> None:
    pipeline = ErrorPipeline(Settings(response_suffix="Result"))

    assert pipeline.shapes.suffix == "Result"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
def test_configure_logging_sets_root_level() -> None:
    configure_logging(LoggingSettings(LOG_LEVEL="WARNING"))
    try:
        assert logging.getLogger().level == logging.WARNING
        assert callable(get_logger(__name__).warning)
    finally:
        configure_logging(LoggingSettings())


# ---------------------------------------------------------------------------
# Route guarding
# ---------------------------------------------------------------------------
def test_request_model_param_finds_first_model() -> None:
    def endpoint(order_id: int, order: Order, other: Order) -> None: ...

    assert request_model_param(endpoint) == ("order", Order)


def test_request_model_param_without_model() -> None:
    def endpoint(order_id: int) -> None: ...

    assert request_model_param(endpoint) == (None, None)


def test_guarded_endpoint_wraps_failures_with_request() -> None:
    def endpoint(order: Order) -> None:
        raise ValueError("bad sku")

    guarded = guard_endpoint(endpoint)
    order = Order(sku="x")

    with pytest.raises(HandlerFailure) as info:
        guarded(order=order)

    assert isinstance(info.value.failure, ValueError)
    assert info.value.request_type is Order
    assert info.value.dto is order


def test_guarded_endpoint_raises_returned_http_error() -> None:
    def endpoint() -> HttpError:
        return HttpError.not_found("gone")

    with pytest.raises(HandlerFailure) as info:
        guard_endpoint(endpoint)()

    assert isinstance(info.value.failure, HttpError)


def test_guarding_twice_is_a_no_op() -> None:
    def endpoint(order: Order) -> str:
        return order.sku

    guarded = guard_endpoint(endpoint)

    assert guard_endpoint(guarded) is guarded
    assert guarded(order=Order(sku="abc")) == "abc"


@pytest.mark.asyncio
async def test_guarded_coroutine_endpoint() -> None:
    async def endpoint(order: Order) -> None:
        raise KeyError("missing")

    with pytest.raises(HandlerFailure) as info:
        await guard_endpoint(endpoint)(order=Order())

    assert isinstance(info.value.failure, KeyError)
