"""Mapping of storage failures onto HTTP errors."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.services.storage_client import ObjectNotFound, StorageError

logger = logging.getLogger(__name__)

UNAVAILABLE_DETAIL = "Storage service unavailable, please try again later"


def storage_http_error(exc: StorageError, action: str) -> HTTPException:
    """Generic retryable error for clients; full upstream detail only in the log."""
    if isinstance(exc, ObjectNotFound):
        logger.info("%s: %s", action, exc)
        return HTTPException(status.HTTP_404_NOT_FOUND, "Not found")
    logger.error("%s failed: %s", action, exc)
    return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, UNAVAILABLE_DETAIL)
