from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.router import router
from src.config import Settings
from src.core.exceptions import register_exception_handlers
from src.core.logging import setup_logging
from src.services.genai_client import GenerationClient
from src.services.image_store import ImageStore

logger = structlog.get_logger()


def create_app(settings: Settings, generation_client: GenerationClient | None = None) -> FastAPI:
    setup_logging(settings.log_level, json_logs=settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("app_started", app_name=settings.app_name, images_path=settings.images_path)
        yield
        await app.state.generation_client.aclose()
        logger.info("app_stopped", app_name=settings.app_name)

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.generation_client = generation_client or GenerationClient(settings)
    app.state.image_store = ImageStore(settings.images_path)

    register_exception_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


settings = Settings()
app = create_app(settings)


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
