from collections.abc import AsyncIterator
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from src.config import Settings
from src.core import exceptions
from src.core.exceptions import (
    AppError,
    BadRequestError,
    InvalidImageDataError,
    NoImageReturnedError,
    NotFoundError,
    PayloadTooLargeError,
    RemoteServiceError,
)
from src.main import create_app


class _DummyBody(BaseModel):
    value: int


def _add_test_routes(app: FastAPI) -> FastAPI:
    @app.post("/_validate")
    async def _validation_endpoint(body: _DummyBody) -> _DummyBody:
        return body

    @app.get("/_remote")
    async def _remote_failure() -> None:
        raise RemoteServiceError("upstream said: invalid key sk-123")

    @app.get("/_oserror")
    async def _os_failure() -> None:
        raise PermissionError("[Errno 13] Permission denied: '/srv/images/x.png'")

    @app.get("/_crash")
    async def _unexpected_failure() -> None:
        raise RuntimeError("unexpected state")

    return app


@pytest.fixture
async def test_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=_add_test_routes(app)), base_url="http://test") as client:
        yield client


@pytest.fixture
async def hardened_client(settings: Settings, generation_client: MagicMock) -> AsyncIterator[AsyncClient]:
    app = create_app(settings.model_copy(update={"expose_error_details": False}), generation_client=generation_client)
    async with AsyncClient(transport=ASGITransport(app=_add_test_routes(app)), base_url="http://test") as client:
        yield client


async def test_validation_error_format(test_client: AsyncClient) -> None:
    response = await test_client.post("/_validate", json={"value": "not_an_int"})
    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Invalid request"
    assert isinstance(data["detail"], list)
    error = data["detail"][0]
    assert "loc" in error
    assert "msg" in error
    assert "type" in error
    assert "url" not in error


async def test_validation_error_missing_field(test_client: AsyncClient) -> None:
    response = await test_client.post("/_validate", json={})
    assert response.status_code == 422
    data = response.json()
    assert any("value" in str(e["loc"]) for e in data["detail"])


class TestAppError:
    def test_stores_status_and_detail(self) -> None:
        err = AppError(status_code=404, detail="Not found")
        assert err.status_code == 404
        assert err.detail == "Not found"
        assert str(err) == "Not found"

    def test_default_status(self) -> None:
        assert AppError("boom").status_code == 500

    @pytest.mark.parametrize(
        ("error_cls", "status_code"),
        [
            (BadRequestError, 400),
            (NotFoundError, 404),
            (PayloadTooLargeError, 413),
            (RemoteServiceError, 500),
            (InvalidImageDataError, 500),
            (NoImageReturnedError, 500),
        ],
    )
    def test_kind_status_codes(self, error_cls: type[AppError], status_code: int) -> None:
        assert error_cls("x").status_code == status_code

    async def test_app_error_handler_returns_json(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/download/..evil.png")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid filename"}

    async def test_not_found_is_plain_text(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/download/missing.png")
        assert response.status_code == 404
        assert response.text == "File not found"

    async def test_remote_error_message_exposed(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/_remote")
        assert response.status_code == 500
        assert response.json() == {"error": "upstream said: invalid key sk-123"}

    async def test_os_error_mapped_to_500(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/_oserror")
        assert response.status_code == 500
        assert "Permission denied" in response.json()["error"]


class TestUnhandledErrors:
    async def test_rendered_as_json_500(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/_crash")
        assert response.status_code == 500
        assert response.json() == {"error": "unexpected state"}

    async def test_response_carries_cors_headers(self, test_client: AsyncClient) -> None:
        response = await test_client.get("/_crash", headers={"Origin": "http://example.com"})
        assert response.status_code == 500
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_logged_once(self, test_client: AsyncClient) -> None:
        with patch.object(exceptions.logger, "exception") as log_exception:
            await test_client.get("/_crash")
        log_exception.assert_called_once()


class TestHardenedErrors:
    async def test_remote_error_message_hidden(self, hardened_client: AsyncClient) -> None:
        response = await hardened_client.get("/_remote")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    async def test_unhandled_error_message_hidden(self, hardened_client: AsyncClient) -> None:
        response = await hardened_client.get("/_crash")
        assert response.json() == {"error": "Internal server error"}

    async def test_os_error_message_hidden(self, hardened_client: AsyncClient) -> None:
        response = await hardened_client.get("/_oserror")
        assert response.json() == {"error": "Internal server error"}

    async def test_client_errors_still_detailed(self, hardened_client: AsyncClient) -> None:
        response = await hardened_client.post("/generate", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Prompt required"}
