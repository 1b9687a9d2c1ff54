from fastapi import Request

from src.config import Settings
from src.services.genai_client import GenerationClient
from src.services.image_store import ImageStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_generation_client(request: Request) -> GenerationClient:
    return request.app.state.generation_client


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store
