# This project was developed with assistance from AI tools.
"""Bulk request and user endpoints."""

from db import DocumentStore, get_store
from db.enums import UserRole
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.bulk import (
    AtomicBatchResult,
    AtomicTransitionBody,
    AutoApproveBody,
    BulkIdsBody,
    BulkOperationResult,
    BulkRejectBody,
    BulkToggleUsersBody,
    HighPriorityResponse,
    ProcessByStatusBody,
)
from ..services import bulk as bulk_service

router = APIRouter()

_ADMIN_ONLY = [Depends(require_roles(UserRole.ADMIN))]


@router.post("/requests/approve", response_model=BulkOperationResult, dependencies=_ADMIN_ONLY)
async def bulk_approve(
    body: BulkIdsBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    """Mark many requests approved. Status only; no inventory updates."""
    return await bulk_service.bulk_approve_requests(store, body.ids, user.user_id)


@router.post("/requests/reject", response_model=BulkOperationResult, dependencies=_ADMIN_ONLY)
async def bulk_reject(
    body: BulkRejectBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    return await bulk_service.bulk_reject_requests(store, body.ids, user.user_id, body.reason)


@router.post(
    "/requests/process-by-status",
    response_model=BulkOperationResult,
    dependencies=_ADMIN_ONLY,
)
async def process_by_status(
    body: ProcessByStatusBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    """Move the oldest requests in one status to another."""
    return await bulk_service.process_requests_by_status(
        store, body.from_status, body.to_status, user.user_id, body.max_count
    )


@router.post("/requests/auto-approve", response_model=BulkOperationResult, dependencies=_ADMIN_ONLY)
async def auto_approve(
    body: AutoApproveBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    """Approve every pending request paid at or below the threshold."""
    return await bulk_service.auto_process_low_value_requests(
        store, user.user_id, body.threshold
    )


@router.post(
    "/requests/atomic-transition",
    response_model=AtomicBatchResult,
    dependencies=_ADMIN_ONLY,
)
async def atomic_transition(
    body: AtomicTransitionBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> AtomicBatchResult:
    """Move a small set of requests together; either all move or none do."""
    try:
        return await bulk_service.atomic_bulk_transition(
            store, body.ids, body.to_status, user.user_id, body.reason
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get(
    "/requests/high-priority",
    response_model=HighPriorityResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.SUB_ADMIN))],
)
async def high_priority_requests(
    store: DocumentStore = Depends(get_store),
    max_requests: int = Query(default=20, ge=1, le=100),
) -> HighPriorityResponse:
    """High-value and referral requests awaiting review."""
    requests = await bulk_service.get_high_priority_requests(store, max_requests)
    return HighPriorityResponse(
        data=requests,
        pagination=Pagination(total=len(requests), limit=max_requests),
    )


@router.post("/users/verify", response_model=BulkOperationResult, dependencies=_ADMIN_ONLY)
async def bulk_verify_users(
    body: BulkIdsBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    return await bulk_service.bulk_verify_documents(store, body.ids, user.user_id)


@router.post("/users/toggle", response_model=BulkOperationResult, dependencies=_ADMIN_ONLY)
async def bulk_toggle_users(
    body: BulkToggleUsersBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> BulkOperationResult:
    return await bulk_service.bulk_toggle_users(store, body.ids, body.action, user.user_id)
