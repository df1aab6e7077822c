"""Fallback pages for clients that want HTML rather than structured errors.

A browser hitting a failing endpoint sends ``Accept: text/html,...``; an API
client sends ``application/json`` or ``*/*``. Pages are only used for the
former, and only when one is configured for the status code or globally.
"""

from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

PageRenderer = Callable[[Request, int, Any], Response]


def _accept_weights(accept: str) -> dict[str, float]:
    weights: dict[str, float] = {}
    for item in accept.split(","):
        media_type, *params = (part.strip() for part in item.split(";"))
        if not media_type:
            continue
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        weights[media_type.lower()] = max(quality, weights.get(media_type.lower(), 0.0))
    return weights


def prefers_html(request: Request) -> bool:
    """True when ``text/html`` outranks ``application/json`` in the Accept header."""
    weights = _accept_weights(request.headers.get("accept", ""))
    html = weights.get("text/html", 0.0)
    if html <= 0.0:
        return False
    json = weights.get("application/json", weights.get("*/*", 0.0))
    # browsers list text/html first and */* with a lower q
    return html > json


class FallbackPages:
    """Global fallback renderer plus per-status overrides."""

    def __init__(self) -> None:
        self.default: PageRenderer | None = None
        self._by_status: dict[int, PageRenderer] = {}

    def set(self, renderer: PageRenderer, status_code: int | None = None) -> None:
        if status_code is None:
            self.default = renderer
        else:
            self._by_status[status_code] = renderer

    def renderer_for(self, status_code: int) -> PageRenderer | None:
        return self._by_status.get(status_code, self.default)

    def resolve(self, request: Request, status_code: int) -> PageRenderer | None:
        """Renderer to use instead of the structured body, or None."""
        renderer = self.renderer_for(status_code)
        if renderer is None or not prefers_html(request):
            return None
        return renderer
