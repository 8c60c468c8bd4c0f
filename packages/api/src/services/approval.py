# This project was developed with assistance from AI tools.
"""Investment approval service.

Approving a request realizes it as an investment in one optimistic
transaction that also moves plot inventory, the investor's portfolio and
wallet, project statistics and (when a referral code carries a commission)
a referral record. Every aggregate is recomputed from the value read inside
the transaction, so concurrent approvals against the same plot or user are
serialized by the store's conflict retry.

Plot, user and project documents that cannot be found are skipped rather
than failing the approval; the result lists applied and skipped side
effects so callers can tell a partially consistent approval apart.

Reject, verify and complete are plain transitions on the request (complete
also closes the investment).
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from db import DocumentStore, StoreError, Transaction, format_timestamp
from db.enums import Collection, InvestmentStatus, ReferralStatus, RequestStatus
from db.errors import DocumentNotFoundError

from ..schemas.approval import (
    ActionResult,
    ApprovalError,
    ApprovalInput,
    ApprovalResult,
    DocumentStatus,
    SideEffect,
)
from ..schemas.documents import (
    Investment,
    InvestmentRequest,
    Plot,
    Project,
    QueueItem,
    Referral,
    UserProfile,
)
from .queue import QueueItemError

logger = logging.getLogger(__name__)

# (referral_code, investor_user_id) -> referrer user id, or None if unknown
ReferrerResolver = Callable[[str, str], Awaitable[str | None]]


class VerificationRequiredError(ValueError):
    """Raised when identity or payment verification is incomplete."""

    pass


class RequestNotFoundError(LookupError):
    """Raised when the investment request does not exist."""

    pass


class RequestStatusError(ValueError):
    """Raised when the request is not in the status the caller required."""

    pass


async def unresolved_referrer(referral_code: str, investor_user_id: str) -> str | None:
    """Default resolver: leave the referrer for later reconciliation."""
    return None


async def _check_verification(store: DocumentStore, data: ApprovalInput) -> tuple[bool, bool]:
    """Resolve verification flags, reading stored flags for any left unset.

    Raises:
        RequestNotFoundError: a stored flag was needed and the request is missing.
        VerificationRequiredError: either flag is not True.
    """
    identity, payment = data.identity_verified, data.payment_verified
    if identity is None or payment is None:
        snapshot = await store.get(Collection.INVESTMENT_REQUESTS, data.request_id)
        if snapshot is None:
            raise RequestNotFoundError(f"Investment request {data.request_id} not found")
        stored = InvestmentRequest.from_snapshot(snapshot)
        identity = stored.identity_verified if identity is None else identity
        payment = stored.payment_verified if payment is None else payment

    if not (identity and payment):
        raise VerificationRequiredError(
            "Cannot approve investment request. Identity and payment documents "
            "must be verified first."
        )
    return identity, payment


async def approve_investment_request(
    store: DocumentStore,
    data: ApprovalInput,
    *,
    resolve_referrer: ReferrerResolver = unresolved_referrer,
    require_status: RequestStatus | None = None,
    now: datetime | None = None,
) -> ApprovalResult:
    """Approve a pending investment request and apply every related update.

    Without ``require_status``, approving an already approved request is not
    refused: all writes run again, including a second investment record.

    Args:
        store: Document store.
        data: Approval inputs; ``admin_id`` is recorded as approver.
        resolve_referrer: Looks up the referrer behind a referral code.
        require_status: Refuse unless the request read inside the
            transaction has this status. Checked on every retry.
        now: Override current time (for testing).

    Returns:
        ApprovalResult. ``success`` is False when verification is incomplete,
        the request does not exist or has the wrong status, or the
        transaction failed; in every failure case nothing was written.
    """
    if now is None:
        now = datetime.now(UTC)

    try:
        identity, payment = await _check_verification(store, data)
    except VerificationRequiredError as exc:
        logger.warning("Approval refused for request %s: %s", data.request_id, exc)
        return ApprovalResult(
            success=False,
            message=str(exc),
            request_id=data.request_id,
            error=ApprovalError.VERIFICATION_REQUIRED,
        )
    except RequestNotFoundError as exc:
        return ApprovalResult(
            success=False,
            message=f"Failed to approve investment request: {exc}",
            request_id=data.request_id,
            error=ApprovalError.NOT_FOUND,
        )
    except StoreError as exc:
        logger.exception("Could not read request %s before approval", data.request_id)
        return _failed(data.request_id, exc)

    has_commission = bool(data.referral_code) and data.referral_commission > 0
    referrer_id = None
    if has_commission:
        try:
            referrer_id = await resolve_referrer(data.referral_code, data.user_id)
        except StoreError as exc:
            logger.exception("Referrer lookup failed for code %s", data.referral_code)
            return _failed(data.request_id, exc)

    async def _approve(txn: Transaction) -> tuple[str, list[SideEffect], list[SideEffect]]:
        # Reads first: the store requires every read before the first write.
        request_snap = await txn.get(Collection.INVESTMENT_REQUESTS, data.request_id)
        if request_snap is None:
            raise RequestNotFoundError(f"Investment request {data.request_id} not found")
        if require_status is not None:
            current = InvestmentRequest.from_snapshot(request_snap).status
            if current != require_status.value:
                raise RequestStatusError(
                    f"Investment request {data.request_id} is {current}, "
                    f"not {require_status.value}"
                )
        plot_snap = await txn.get(Collection.PLOTS, data.plot_id) if data.plot_id else None
        user_snap = await txn.get(Collection.USER_PROFILES, data.user_id) if data.user_id else None
        project_snap = (
            await txn.get(Collection.PROJECTS, data.project_id) if data.project_id else None
        )

        applied: list[SideEffect] = []
        skipped: list[SideEffect] = []

        investment_id = txn.create(
            Collection.INVESTMENTS,
            _investment_document(data, now),
        )

        txn.update(
            Collection.INVESTMENT_REQUESTS,
            data.request_id,
            InvestmentRequest.encode(
                {
                    "status": RequestStatus.APPROVED,
                    "processed_at": now,
                    "processed_by": data.admin_id,
                    "investment_id": investment_id,
                    "identity_verified": identity,
                    "payment_verified": payment,
                    "verification_notes": data.verification_notes,
                }
            )
            | {
                "approvedAt": format_timestamp(now),
                "verified_by": data.admin_id,
                "verified_at": format_timestamp(now),
            },
        )
        applied += [SideEffect.REQUEST_STATUS, SideEffect.INVESTMENT_RECORD]

        if plot_snap is not None:
            plot = Plot.from_snapshot(plot_snap)
            txn.update(
                Collection.PLOTS,
                plot.id,
                Plot.encode(
                    {
                        "available_sqm": max(0, plot.available_sqm - data.sqm_purchased),
                        "total_owners": plot.total_owners + 1,
                        "last_updated": now,
                    }
                ),
            )
            applied.append(SideEffect.PLOT_INVENTORY)
        else:
            skipped.append(SideEffect.PLOT_INVENTORY)

        if user_snap is not None:
            user = UserProfile.from_snapshot(user_snap)
            txn.update(
                Collection.USER_PROFILES,
                user.id,
                UserProfile.encode(
                    {
                        "total_investment": user.total_investment + data.amount_paid,
                        "portfolio_sqm": user.portfolio_sqm + data.sqm_purchased,
                        "wallet_balance": max(0, user.wallet_balance - data.amount_paid),
                        "total_investments": user.total_investments + 1,
                        "last_investment_date": now,
                    }
                ),
            )
            applied.append(SideEffect.USER_PORTFOLIO)
        else:
            skipped.append(SideEffect.USER_PORTFOLIO)

        if has_commission:
            txn.create(
                Collection.REFERRALS,
                Referral.encode(
                    {
                        "referral_code": data.referral_code,
                        "investor_user_id": data.user_id,
                        "referrer_id": referrer_id,
                        "referrer_resolution": "resolved" if referrer_id else "pending",
                        "commission_amount": data.referral_commission,
                        "investment_amount": data.amount_paid,
                        "status": ReferralStatus.EARNED,
                        "type": "investment_commission",
                        "investment_id": investment_id,
                        "request_id": data.request_id,
                        "created_at": now,
                        "processed_at": now,
                    }
                ),
            )
            applied.append(SideEffect.REFERRAL_COMMISSION)

        if project_snap is not None:
            project = Project.from_snapshot(project_snap)
            txn.update(
                Collection.PROJECTS,
                project.id,
                Project.encode(
                    {
                        "total_revenue": project.total_revenue + data.amount_paid,
                        "total_investors": project.total_investors + 1,
                        "last_investment_date": now,
                    }
                ),
            )
            applied.append(SideEffect.PROJECT_STATISTICS)
        else:
            skipped.append(SideEffect.PROJECT_STATISTICS)

        return investment_id, applied, skipped

    try:
        investment_id, applied, skipped = await store.run_transaction(_approve)
    except RequestNotFoundError as exc:
        return ApprovalResult(
            success=False,
            message=f"Failed to approve investment request: {exc}",
            request_id=data.request_id,
            error=ApprovalError.NOT_FOUND,
        )
    except RequestStatusError as exc:
        logger.warning("Approval refused for request %s: %s", data.request_id, exc)
        return ApprovalResult(
            success=False,
            message=f"Failed to approve investment request: {exc}",
            request_id=data.request_id,
            error=ApprovalError.INVALID_STATUS,
        )
    except StoreError as exc:
        logger.exception("Approval transaction failed for request %s", data.request_id)
        return _failed(data.request_id, exc)

    if skipped:
        logger.warning(
            "Request %s approved with skipped updates: %s",
            data.request_id,
            ", ".join(s.value for s in skipped),
        )
    logger.info(
        "Request %s approved by %s as investment %s",
        data.request_id,
        data.admin_id,
        investment_id,
    )
    return ApprovalResult(
        success=True,
        message="Investment request approved successfully. All related data has been updated.",
        request_id=data.request_id,
        investment_id=investment_id,
        applied=applied,
        skipped=skipped,
    )


def _investment_document(data: ApprovalInput, now: datetime) -> dict[str, Any]:
    return Investment.encode(
        {
            "user_id": data.user_id,
            "plot_id": data.plot_id,
            "project_id": data.project_id,
            "amount_paid": data.amount_paid,
            "sqm_purchased": data.sqm_purchased,
            "price_per_sqm": data.price_per_sqm,
            "status": InvestmentStatus.ACTIVE,
            "investment_type": "plot_purchase",
            "created_at": now,
            "approved_at": now,
            "approved_by": data.admin_id,
            "referral_code": data.referral_code,
            "referral_commission": data.referral_commission,
            "source": "investment_request_approval",
            "original_request_id": data.request_id,
        }
    )


def _error_code(exc: StoreError) -> ApprovalError:
    if isinstance(exc, DocumentNotFoundError):
        return ApprovalError.NOT_FOUND
    return ApprovalError.TRANSACTION_FAILED


def _failed(request_id: str, exc: Exception) -> ApprovalResult:
    return ApprovalResult(
        success=False,
        message=f"Failed to approve investment request: {exc}",
        request_id=request_id,
        error=ApprovalError.TRANSACTION_FAILED,
    )


async def reject_investment_request(
    store: DocumentStore,
    request_id: str,
    admin_id: str,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> ActionResult:
    """Mark a request rejected. No other document is touched."""
    if now is None:
        now = datetime.now(UTC)
    try:
        await store.update(
            Collection.INVESTMENT_REQUESTS,
            request_id,
            InvestmentRequest.encode(
                {
                    "status": RequestStatus.REJECTED,
                    "processed_at": now,
                    "processed_by": admin_id,
                }
            )
            | {
                "rejectedAt": format_timestamp(now),
                "rejection_reason": reason or "No reason provided",
            },
        )
    except StoreError as exc:
        logger.exception("Failed to reject request %s", request_id)
        return ActionResult(
            success=False,
            message=f"Failed to reject investment request: {exc}",
            error=_error_code(exc),
        )

    logger.info("Request %s rejected by %s", request_id, admin_id)
    return ActionResult(success=True, message="Investment request rejected successfully.")


async def verify_documents(
    store: DocumentStore,
    request_id: str,
    *,
    identity_verified: bool,
    payment_verified: bool,
    verification_notes: str,
    admin_id: str,
    now: datetime | None = None,
) -> ActionResult:
    """Record verification flags on a request. Approval stays a separate step."""
    if now is None:
        now = datetime.now(UTC)
    try:
        await store.update(
            Collection.INVESTMENT_REQUESTS,
            request_id,
            {
                "identity_verified": identity_verified,
                "payment_verified": payment_verified,
                "verification_notes": verification_notes,
                "verified_by": admin_id,
                "verified_at": format_timestamp(now),
            },
        )
    except StoreError as exc:
        logger.exception("Failed to verify documents for request %s", request_id)
        return ActionResult(
            success=False,
            message=f"Failed to verify documents: {exc}",
            error=_error_code(exc),
        )

    logger.info(
        "Documents for request %s verified by %s (identity=%s, payment=%s)",
        request_id,
        admin_id,
        identity_verified,
        payment_verified,
    )
    return ActionResult(success=True, message="Documents verified successfully.")


async def check_document_status(store: DocumentStore, request_id: str) -> DocumentStatus | None:
    """Return verification readiness, or None when the request does not exist."""
    snapshot = await store.get(Collection.INVESTMENT_REQUESTS, request_id)
    if snapshot is None:
        return None
    request = InvestmentRequest.from_snapshot(snapshot)
    return DocumentStatus(
        documents_uploaded=request.documents_uploaded,
        identity_verified=request.identity_verified,
        payment_verified=request.payment_verified,
        ready_for_approval=(
            request.documents_uploaded and request.identity_verified and request.payment_verified
        ),
    )


async def complete_investment(
    store: DocumentStore,
    request_id: str,
    investment_id: str,
    admin_id: str,
    *,
    now: datetime | None = None,
) -> ActionResult:
    """Close an approved request and its investment together.

    Inventory and portfolio totals were settled at approval time and are
    not recomputed here.
    """
    if now is None:
        now = datetime.now(UTC)

    async def _complete(txn: Transaction) -> None:
        txn.update(
            Collection.INVESTMENT_REQUESTS,
            request_id,
            {
                "status": RequestStatus.COMPLETED.value,
                "completedAt": format_timestamp(now),
                "completedBy": admin_id,
            },
        )
        txn.update(
            Collection.INVESTMENTS,
            investment_id,
            Investment.encode(
                {
                    "status": InvestmentStatus.COMPLETED,
                    "completed_at": now,
                    "completed_by": admin_id,
                }
            ),
        )

    try:
        await store.run_transaction(_complete)
    except StoreError as exc:
        logger.exception("Failed to complete request %s / investment %s", request_id, investment_id)
        return ActionResult(
            success=False,
            message=f"Failed to complete investment: {exc}",
            error=_error_code(exc),
        )

    logger.info("Request %s and investment %s completed by %s", request_id, investment_id, admin_id)
    return ActionResult(success=True, message="Investment moved to completed status successfully.")


async def approve_queued_request(
    store: DocumentStore, item: QueueItem, admin_id: str
) -> dict[str, Any]:
    """Queue handler that approves the request an investment item points at.

    The approval is driven entirely by the stored request fields, including
    its verification flags. The pending check is repeated inside the approval
    transaction, so two workers holding items for the same request approve
    it once.

    Raises:
        QueueItemError: the request is missing, no longer pending, or the
            approval failed.
    """
    if not item.item_id:
        raise QueueItemError(f"Queue item {item.id} has no request reference")
    snapshot = await store.get(Collection.INVESTMENT_REQUESTS, item.item_id)
    if snapshot is None:
        raise QueueItemError(f"Investment request {item.item_id} not found")
    request = InvestmentRequest.from_snapshot(snapshot)
    if request.status != RequestStatus.PENDING.value:
        raise QueueItemError(f"Investment request {request.id} is {request.status}, not pending")

    result = await approve_investment_request(
        store,
        ApprovalInput(
            request_id=request.id,
            user_id=request.user_id or "",
            plot_id=request.plot_id or "",
            project_id=request.project_id or "",
            amount_paid=max(0, request.amount_paid),
            sqm_purchased=max(0, request.sqm_purchased),
            price_per_sqm=max(0, request.price_per_sqm),
            referral_code=request.referral_code,
            referral_commission=max(0, request.referral_commission),
            admin_id=admin_id,
            verification_notes=request.verification_notes,
        ),
        require_status=RequestStatus.PENDING,
    )
    if not result.success:
        raise QueueItemError(result.message)
    return {"investment_id": result.investment_id, "skipped": [s.value for s in result.skipped]}
