from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from faultline.config import Settings
from faultline.main import create_app
from faultline.pipeline import ErrorPipeline
from tests.services import router


@pytest.fixture
def settings() -> Settings:
    """Explicit settings so FAULTLINE_* env vars on the machine don't leak in."""
    return Settings(debug_mode=False)


@pytest.fixture
def pipeline(settings: Settings) -> ErrorPipeline:
    return ErrorPipeline(settings)


@pytest.fixture
def app(pipeline: ErrorPipeline) -> FastAPI:
    """App with the test endpoints; tests may keep configuring ``pipeline``."""
    app = create_app(pipeline)
    app.include_router(router)
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
