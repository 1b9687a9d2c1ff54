from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from src.api.deps import get_settings
from src.config import Settings
from src.core.exceptions import NotFoundError

router = APIRouter()


@router.get("/", response_class=FileResponse, include_in_schema=False)
async def index(settings: Annotated[Settings, Depends(get_settings)]) -> FileResponse:
    page = Path(settings.index_html_path)
    if not page.is_file():
        raise NotFoundError("File not found")
    return FileResponse(path=page, media_type="text/html")
