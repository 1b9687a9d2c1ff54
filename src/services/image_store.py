import base64
import binascii
import time
from pathlib import Path

import structlog

from src.core.exceptions import BadRequestError, InvalidImageDataError

logger = structlog.get_logger()

IMAGE_EXT = "png"

FORMAT_TO_MEDIA_TYPE = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def detect_mime_type(image_bytes: bytes, default: str = "image/png") -> str:
    fmt = _detect_image_format(image_bytes)
    if fmt is None:
        return default
    return FORMAT_TO_MEDIA_TYPE[fmt]


def _detect_image_format(image_bytes: bytes) -> str | None:
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if image_bytes[:2] == b"\xff\xd8":
        return "jpeg"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "webp"
    return None


def _is_servable(filename: str) -> bool:
    return not filename.startswith(".") and filename.endswith(f".{IMAGE_EXT}")


def _validate_filename(filename: str) -> None:
    if not filename or ".." in filename or "/" in filename or "\\" in filename or "\x00" in filename:
        raise BadRequestError("Invalid filename")


def decode_base64_image(base64_data: str) -> bytes:
    if ";base64," in base64_data:
        base64_data = base64_data.split(";base64,")[1]
    try:
        return base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageDataError(f"Invalid image data: {e}") from e


class ImageStore:
    """Flat directory of generated images named ``{prefix}-{epoch millis}.png``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def build_filename(self, prefix: str) -> str:
        return f"{prefix}-{int(time.time() * 1000)}.{IMAGE_EXT}"

    def save_image(self, base64_data: str, prefix: str) -> str:
        """Decode ``base64_data`` and write it to a new file.

        The write is complete when this returns. An existing file with the
        same name is overwritten. ``OSError`` from the write propagates.
        """
        image_bytes = decode_base64_image(base64_data)
        filename = self.build_filename(prefix)

        self.directory.mkdir(parents=True, exist_ok=True)
        image_path = self.directory / filename
        with open(image_path, "wb") as f:
            f.write(image_bytes)

        logger.info("image_saved", filename=filename, size=len(image_bytes))
        return filename

    def get_image_path(self, filename: str) -> Path | None:
        _validate_filename(filename)
        if not _is_servable(filename):
            return None
        image_path = self.directory / filename
        if image_path.is_file():
            return image_path
        return None
