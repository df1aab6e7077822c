"""Fallback page selection."""

from typing import Any

import pytest
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response

from faultline.pages import FallbackPages, prefers_html
from tests.factories import make_request

BROWSER_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _page(title: str) -> Any:
    def render(request: Request, status_code: int, container: Any) -> Response:
        return HTMLResponse(f"<h1>{title}</h1>", status_code=status_code)

    return render


@pytest.mark.parametrize(
    "accept, expected",
    [
        (BROWSER_ACCEPT, True),
        ("text/html", True),
        ("application/json", False),
        ("*/*", False),
        ("", False),
        ("application/json, text/html;q=0.5", False),
        ("application/json;q=0.5, text/html", True),
        ("text/html;q=0", False),
    ],
)
def test_prefers_html(accept: str, expected: bool) -> None:
    assert prefers_html(make_request(accept=accept)) is expected


def test_no_page_configured() -> None:
    assert FallbackPages().resolve(make_request(accept=BROWSER_ACCEPT), 500) is None


def test_global_page_for_any_status() -> None:
    pages = FallbackPages()
    default = _page("Something went wrong")
    pages.set(default)

    assert pages.resolve(make_request(accept=BROWSER_ACCEPT), 500) is default
    assert pages.resolve(make_request(accept=BROWSER_ACCEPT), 404) is default


def test_status_page_overrides_global_page() -> None:
    pages = FallbackPages()
    default, not_found = _page("Oops"), _page("Not here")
    pages.set(default)
    pages.set(not_found, 404)

    assert pages.resolve(make_request(accept=BROWSER_ACCEPT), 404) is not_found
    assert pages.resolve(make_request(accept=BROWSER_ACCEPT), 400) is default


def test_structured_clients_never_get_pages() -> None:
    pages = FallbackPages()
    pages.set(_page("Oops"))

    assert pages.resolve(make_request(accept="application/json"), 500) is None
