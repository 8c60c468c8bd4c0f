# This project was developed with assistance from AI tools.
"""Single investment request transitions: approve, reject, verify, complete."""

from db import DocumentStore, get_store
from db.enums import UserRole
from fastapi import APIRouter, Depends, HTTPException, status

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.approval import (
    ActionResult,
    ApprovalError,
    ApprovalInput,
    ApprovalResult,
    ApproveRequestBody,
    CompleteInvestmentBody,
    DocumentStatus,
    RejectRequestBody,
    VerifyDocumentsBody,
)
from ..services.approval import (
    approve_investment_request,
    check_document_status,
    complete_investment,
    reject_investment_request,
    verify_documents,
)

router = APIRouter()

_ALL_ADMINS = (UserRole.ADMIN, UserRole.SUB_ADMIN)

_ERROR_STATUS: dict[ApprovalError, int] = {
    ApprovalError.VERIFICATION_REQUIRED: status.HTTP_409_CONFLICT,
    ApprovalError.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ApprovalError.INVALID_STATUS: status.HTTP_409_CONFLICT,
    ApprovalError.TRANSACTION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _raise_for(error: ApprovalError | None, message: str) -> None:
    raise HTTPException(
        status_code=_ERROR_STATUS.get(error, status.HTTP_503_SERVICE_UNAVAILABLE),
        detail=message,
    )


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalResult,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def approve_request(
    request_id: str,
    body: ApproveRequestBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> ApprovalResult:
    """Approve a request and apply inventory, portfolio and statistics updates.

    A 200 response may still list skipped updates when the plot, user or
    project document is missing; check ``fully_consistent``.
    """
    result = await approve_investment_request(
        store,
        ApprovalInput(request_id=request_id, admin_id=user.user_id, **body.model_dump()),
    )
    if not result.success:
        _raise_for(result.error, result.message)
    return result


@router.post(
    "/{request_id}/reject",
    response_model=ActionResult,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def reject_request(
    request_id: str,
    body: RejectRequestBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> ActionResult:
    result = await reject_investment_request(store, request_id, user.user_id, body.reason)
    if not result.success:
        _raise_for(result.error, result.message)
    return result


@router.post(
    "/{request_id}/complete",
    response_model=ActionResult,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def complete_request(
    request_id: str,
    body: CompleteInvestmentBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> ActionResult:
    """Mark an approved request and its investment completed."""
    result = await complete_investment(store, request_id, body.investment_id, user.user_id)
    if not result.success:
        _raise_for(result.error, result.message)
    return result


@router.post(
    "/{request_id}/verify",
    response_model=ActionResult,
    dependencies=[Depends(require_roles(*_ALL_ADMINS))],
)
async def verify_request_documents(
    request_id: str,
    body: VerifyDocumentsBody,
    user: CurrentUser,
    store: DocumentStore = Depends(get_store),
) -> ActionResult:
    """Record identity and payment verification. Does not approve."""
    result = await verify_documents(
        store,
        request_id,
        identity_verified=body.identity_verified,
        payment_verified=body.payment_verified,
        verification_notes=body.verification_notes,
        admin_id=user.user_id,
    )
    if not result.success:
        _raise_for(result.error, result.message)
    return result


@router.get(
    "/{request_id}/document-status",
    response_model=DocumentStatus,
    dependencies=[Depends(require_roles(*_ALL_ADMINS))],
)
async def get_document_status(
    request_id: str,
    store: DocumentStore = Depends(get_store),
) -> DocumentStatus:
    result = await check_document_status(store, request_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Investment request not found",
        )
    return result
