"""FastAPI dependency injection — shared storage and cache services."""

from __future__ import annotations

from fastapi import Request

from app.services import Services
from app.services.cache_admin import CacheAdmin
from app.services.listing_cache import ListingCache
from app.services.storage_client import StorageClient


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized — application lifespan not started")
    return services


def get_storage_client(request: Request) -> StorageClient:
    return get_services(request).storage


def get_listing_cache(request: Request) -> ListingCache:
    return get_services(request).listing_cache


def get_cache_admin(request: Request) -> CacheAdmin:
    return get_services(request).cache_admin
