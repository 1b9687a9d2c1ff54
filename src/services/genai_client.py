import base64
from collections.abc import Sequence
from typing import Any

import structlog
from google import genai
from google.genai import types

from src.config import Settings
from src.core.exceptions import RemoteServiceError
from src.schemas.generation import ContentPart, ResponsePart

logger = structlog.get_logger()


def _to_sdk_part(part: ContentPart) -> types.Part:
    if part.data is not None:
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type or "image/png")
    return types.Part.from_text(text=part.text or "")


def _from_sdk_part(part: Any) -> ResponsePart | None:
    inline = getattr(part, "inline_data", None)
    if inline is not None and inline.data:
        return ResponsePart(
            data=base64.b64encode(inline.data).decode(),
            mime_type=inline.mime_type or "image/png",
        )
    if getattr(part, "text", None):
        return ResponsePart(text=part.text)
    return None


def extract_parts(response: Any) -> list[ResponsePart]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    sdk_parts = getattr(content, "parts", None) or []
    parts = []
    for sdk_part in sdk_parts:
        part = _from_sdk_part(sdk_part)
        if part is not None:
            parts.append(part)
    return parts


class GenerationClient:
    """Thin async wrapper around one Gemini ``generate_content`` call.

    The SDK client is built on first use, so a missing API key is reported
    by the first request rather than at startup.
    """

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self.timeout_ms = settings.gemini_timeout_ms
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            http_options = None
            if self.timeout_ms is not None:
                http_options = types.HttpOptions(timeout=self.timeout_ms)
            self._client = genai.Client(api_key=self.api_key or None, http_options=http_options)
        return self._client

    async def generate(self, parts: Sequence[ContentPart], model: str | None = None) -> list[ResponsePart]:
        model = model or self.model
        try:
            client = self._get_client()
            response = await client.aio.models.generate_content(
                model=model,
                contents=[_to_sdk_part(part) for part in parts],
            )
        except Exception as e:
            logger.exception("generation_request_failed", model=model, error=str(e))
            raise RemoteServiceError(str(e)) from e

        result = extract_parts(response)
        logger.info(
            "generation_completed",
            model=model,
            parts=len(result),
            images=sum(1 for part in result if part.has_image),
        )
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None
