from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.config import Settings
from src.main import create_app
from src.services.genai_client import GenerationClient


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        images_path=str(tmp_path / "images"),
        uploads_path=str(tmp_path / "uploads"),
        log_json=False,
    )


@pytest.fixture
def generation_client() -> MagicMock:
    mock = MagicMock(spec=GenerationClient)
    mock.generate = AsyncMock(return_value=[])
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def app(settings: Settings, generation_client: MagicMock) -> FastAPI:
    return create_app(settings, generation_client=generation_client)


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def small_upload_client(settings: Settings, generation_client: MagicMock) -> AsyncIterator[AsyncClient]:
    app = create_app(settings.model_copy(update={"max_upload_bytes": 1024}), generation_client=generation_client)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
