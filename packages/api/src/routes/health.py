# This project was developed with assistance from AI tools.
"""Health check endpoint."""

import logging

from db import DocumentStore, StoreError, get_store
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def health(store: DocumentStore = Depends(get_store)):
    """Report whether the document store is reachable."""
    try:
        await store.ping()
    except StoreError:
        logger.warning("Health check: document store unreachable", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "store": "unavailable"},
        )
    return {"status": "healthy", "store": "ok"}
