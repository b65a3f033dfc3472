"""API route registration."""

from fastapi import APIRouter

from app.api.routes import assets, cache, files, folders, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(folders.router, prefix="/folders", tags=["folders"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(assets.router, prefix="/assets", tags=["assets"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
