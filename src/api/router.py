from fastapi import APIRouter

from src.api.endpoints import health, images, pages

router = APIRouter()
router.include_router(pages.router, tags=["pages"])
router.include_router(health.router, tags=["health"])
router.include_router(images.router, tags=["images"])
