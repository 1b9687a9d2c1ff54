import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.middleware.base import RequestResponseEndpoint

logger = structlog.get_logger()

INTERNAL_ERROR_MESSAGE = "Internal server error"


class AppError(Exception):
    status_code: int = 500

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    status_code = 400


class NotFoundError(AppError):
    """Missing file. Rendered as plain text, not JSON."""

    status_code = 404


class PayloadTooLargeError(AppError):
    status_code = 413


class RemoteServiceError(AppError):
    """The generation API failed: network, auth, or a malformed response."""


class InvalidImageDataError(AppError):
    """Inline image data that does not decode as base64."""


class NoImageReturnedError(AppError):
    """The generation API answered without any inline image part."""


def _error_body(request: Request, status_code: int, message: str) -> dict[str, str]:
    if status_code >= 500 and not request.app.state.settings.expose_error_details:
        message = INTERNAL_ERROR_MESSAGE
    return {"error": message}


async def app_error_handler(request: Request, exc: AppError) -> Response:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, status=exc.status_code, error=exc.detail)
    else:
        logger.info("request_rejected", path=request.url.path, status=exc.status_code, error=exc.detail)

    if isinstance(exc, NotFoundError):
        return PlainTextResponse(exc.detail, status_code=exc.status_code)
    return JSONResponse(_error_body(request, exc.status_code, exc.detail), status_code=exc.status_code)


async def os_error_handler(request: Request, exc: OSError) -> Response:
    logger.exception("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(_error_body(request, 500, str(exc)), status_code=500)


async def catch_unhandled_errors(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """Render errors no handler claimed as JSON 500s."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(_error_body(request, 500, str(exc)), status_code=500)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors = [{k: v for k, v in error.items() if k not in ("url", "ctx", "input")} for error in exc.errors()]
    return JSONResponse({"error": "Invalid request", "detail": errors}, status_code=422)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error-to-response mapping. Call before adding CORS so CORS wraps it."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(OSError, os_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.middleware("http")(catch_unhandled_errors)
