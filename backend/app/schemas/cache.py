"""Listing cache admin schemas."""

from pydantic import BaseModel


class CacheStatsBody(BaseModel):
    total_entries: int
    expired_entries: int
    active_entries: int


class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: CacheStatsBody


class CacheActionResponse(BaseModel):
    """Result of a clear / cleanup call."""
    success: bool = True
    message: str
    removed: int = 0
