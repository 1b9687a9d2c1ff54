import asyncio
from collections.abc import Sequence
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from src.api.deps import get_generation_client, get_image_store, get_settings
from src.config import Settings
from src.core.exceptions import BadRequestError, NoImageReturnedError, NotFoundError
from src.schemas.generation import ContentPart, ResponsePart
from src.schemas.images import EditResponse, ErrorResponse, GenerateRequest, GenerateResponse
from src.services.genai_client import GenerationClient
from src.services.image_store import ImageStore, detect_mime_type
from src.services.uploads import staged_upload

logger = structlog.get_logger()

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_GENERATE_BODY_SCHEMA = {
    "requestBody": {
        "content": {
            "application/json": {"schema": GenerateRequest.model_json_schema()},
            "application/x-www-form-urlencoded": {"schema": GenerateRequest.model_json_schema()},
        }
    }
}


def _clean_prompt(prompt: Any) -> str | None:
    if not isinstance(prompt, str) or not prompt.strip():
        return None
    return prompt


async def _read_generate_request(request: Request) -> GenerateRequest:
    """Parse a JSON or form-encoded body. Anything unreadable yields an empty request."""
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith(_FORM_CONTENT_TYPES):
            form = await request.form()
            return GenerateRequest.model_validate({"prompt": form.get("prompt")})
        if not await request.body():
            return GenerateRequest()
        return GenerateRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return GenerateRequest()


def first_image_part(parts: Sequence[ResponsePart]) -> ResponsePart | None:
    for part in parts:
        if part.has_image:
            return part
    return None


async def _save_first_image(store: ImageStore, parts: Sequence[ResponsePart], prefix: str) -> str | None:
    part = first_image_part(parts)
    if part is None or part.data is None:
        return None
    return await asyncio.to_thread(store.save_image, part.data, prefix)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses=_ERROR_RESPONSES,
    openapi_extra=_GENERATE_BODY_SCHEMA,
)
async def generate_image(
    request: Request,
    client: Annotated[GenerationClient, Depends(get_generation_client)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> GenerateResponse:
    body = await _read_generate_request(request)
    prompt = _clean_prompt(body.prompt)
    if prompt is None:
        raise BadRequestError("Prompt required")

    parts = await client.generate([ContentPart.from_text(prompt)])
    filename = await _save_first_image(store, parts, "generated")
    if filename is None:
        raise NoImageReturnedError("No image returned")

    logger.info("image_generated", filename=filename)
    return GenerateResponse(image_path=filename)


@router.post("/edit", response_model=EditResponse, responses={**_ERROR_RESPONSES, 413: {"model": ErrorResponse}})
async def edit_image(
    request: Request,
    client: Annotated[GenerationClient, Depends(get_generation_client)],
    store: Annotated[ImageStore, Depends(get_image_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EditResponse:
    content_type = request.headers.get("content-type", "")
    form = await request.form() if content_type.startswith(_FORM_CONTENT_TYPES) else None
    image = form.get("image") if form is not None else None
    prompt = _clean_prompt(form.get("prompt") if form is not None else None)

    if not isinstance(image, UploadFile) or not image.filename or prompt is None:
        if isinstance(image, UploadFile):
            await image.close()
        raise BadRequestError("Image and prompt required")

    async with staged_upload(image, settings.uploads_path, settings.max_upload_bytes) as staged_path:
        image_bytes = await asyncio.to_thread(staged_path.read_bytes)
        if not image_bytes:
            raise BadRequestError("Image and prompt required")

        parts = await client.generate(
            [
                ContentPart.from_text(prompt),
                ContentPart.from_image(image_bytes, detect_mime_type(image_bytes)),
            ]
        )
        filename = await _save_first_image(store, parts, "edited")

    if filename is None:
        raise NoImageReturnedError("No edited image returned")

    logger.info("image_edited", filename=filename)
    return EditResponse(edited_path=filename)


@router.get("/download/{filename}", response_class=FileResponse)
async def download_image(
    filename: str,
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> FileResponse:
    image_path = store.get_image_path(filename)
    if image_path is None:
        raise NotFoundError("File not found")

    return FileResponse(path=image_path, media_type="image/png", filename=filename)
