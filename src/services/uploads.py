import contextlib
import uuid
from collections.abc import AsyncIterator
from pathlib import Path

import structlog
from starlette.datastructures import UploadFile

from src.core.exceptions import PayloadTooLargeError

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


@contextlib.asynccontextmanager
async def staged_upload(upload: UploadFile, directory: str | Path, max_bytes: int) -> AsyncIterator[Path]:
    """Copy ``upload`` into ``directory`` and yield the staged path.

    The staged file is removed and the upload closed on every exit path,
    including failures raised inside the ``async with`` body.
    """
    staging_dir = Path(directory)
    staging_dir.mkdir(parents=True, exist_ok=True)
    staged_path = staging_dir / uuid.uuid4().hex

    try:
        size = 0
        with open(staged_path, "wb") as f:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > max_bytes:
                    raise PayloadTooLargeError("Image too large")
                f.write(chunk)
        logger.info("upload_staged", filename=upload.filename, size=size)
        yield staged_path
    finally:
        staged_path.unlink(missing_ok=True)
        await upload.close()
