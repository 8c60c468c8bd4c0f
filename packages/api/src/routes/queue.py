# This project was developed with assistance from AI tools.
"""Administrative work queue endpoints."""

from functools import partial

from db import DocumentStore, get_store
from db.enums import QueueItemType, UserRole
from fastapi import APIRouter, Depends, Query

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.queue import (
    AutoQueueResult,
    BatchResult,
    ProcessQueueBody,
    QueueItemListResponse,
    QueueStats,
)
from ..services.approval import approve_queued_request
from ..services.queue import (
    auto_queue_requests,
    get_queue_items,
    get_queue_stats,
    process_batch,
)

router = APIRouter()

_ALL_ADMINS = (UserRole.ADMIN, UserRole.SUB_ADMIN)


@router.get(
    "/items",
    response_model=QueueItemListResponse,
    dependencies=[Depends(require_roles(*_ALL_ADMINS))],
)
async def list_queue_items(
    store: DocumentStore = Depends(get_store),
    limit: int = Query(default=20, ge=1, le=500),
) -> QueueItemListResponse:
    """Pending queue items, most urgent first."""
    items = await get_queue_items(store, limit)
    return QueueItemListResponse(
        data=items,
        pagination=Pagination.capped(len(items), limit),
    )


@router.post(
    "/auto-queue",
    response_model=AutoQueueResult,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def trigger_auto_queue(store: DocumentStore = Depends(get_store)) -> AutoQueueResult:
    """Enqueue recent pending requests that are not queued yet."""
    return await auto_queue_requests(store)


@router.post(
    "/process",
    response_model=BatchResult,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def process_queue(
    body: ProcessQueueBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BatchResult:
    """Claim and process the next pending items.

    Investment items are only approved when ``approve_investments`` is set;
    otherwise they are marked processed without touching the request.
    """
    items = await get_queue_items(store, body.limit)
    handlers = {}
    if body.approve_investments:
        handlers[QueueItemType.INVESTMENT] = partial(approve_queued_request, store)
    return await process_batch(store, items, user.user_id, body.batch_size, handlers=handlers)


@router.get(
    "/stats",
    response_model=QueueStats,
    dependencies=[Depends(require_roles(*_ALL_ADMINS))],
)
async def queue_stats(store: DocumentStore = Depends(get_store)) -> QueueStats:
    return await get_queue_stats(store)
