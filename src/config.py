from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

STATIC_DIR = Path(__file__).parent / "static"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "gemini-image-studio"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    log_json: bool = True
    cors_origins: list[str] = ["*"]

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash-image"
    gemini_timeout_ms: int | None = None

    images_path: str = "."
    uploads_path: str = "uploads"
    max_upload_bytes: int = 50 * 1024 * 1024
    expose_error_details: bool = True
    index_html_path: str = str(STATIC_DIR / "index.html")
