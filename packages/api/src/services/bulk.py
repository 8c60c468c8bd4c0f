# This project was developed with assistance from AI tools.
"""Bulk request and user operations.

Two write contracts are offered:

* Best-effort batches (``bulk_*``, ``process_requests_by_status``,
  ``auto_process_low_value_requests``): one non-transactional write batch
  per call. Per-item counts are accumulated while the batch is built; the
  commit then succeeds or fails as a whole and a failed commit is reported
  as one trailing error without adjusting the counts. Nothing is retried.
* ``atomic_bulk_transition``: a single transaction over a small id list
  that verifies every request first. Either all requests move or none do.
"""

import asyncio
import logging
import math
from datetime import UTC, datetime
from typing import Any, Literal

from db import (
    DocumentStore,
    FieldFilter,
    Order,
    StoreError,
    Transaction,
    WriteBatch,
    format_timestamp,
)
from db.enums import Collection, RequestStatus, UserStatus

from ..core.config import settings
from ..schemas.bulk import AtomicBatchResult, BulkOperationResult
from ..schemas.documents import InvestmentRequest
from .approval import RequestNotFoundError

logger = logging.getLogger(__name__)


def _transition_fields(
    to_status: RequestStatus | str, admin_id: str, now: datetime
) -> dict[str, Any]:
    status = RequestStatus(to_status)
    fields = InvestmentRequest.encode(
        {"status": status, "processed_at": now, "processed_by": admin_id}
    )
    if status == RequestStatus.APPROVED:
        fields["approved_at"] = format_timestamp(now)
        fields["approved_by"] = admin_id
    return fields


async def _commit(
    batch: WriteBatch, operation: str, processed: int, failed: int, errors: list[str]
) -> BulkOperationResult:
    try:
        await batch.commit()
    except StoreError as exc:
        logger.exception("%s: batch commit of %d writes failed", operation, len(batch))
        errors = [*errors, str(exc) or "Batch commit failed"]
    else:
        logger.info("%s: processed=%d failed=%d", operation, processed, failed)
    return BulkOperationResult(processed=processed, failed=failed, errors=errors)


async def bulk_approve_requests(
    store: DocumentStore,
    request_ids: list[str],
    admin_id: str,
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Mark requests approved, checking each one exists first.

    Only the request status moves. Inventory, portfolio and referral updates
    belong to the single-request approval.
    """
    if now is None:
        now = datetime.now(UTC)

    batch = store.batch()
    errors: list[str] = []
    processed = failed = 0
    for request_id in request_ids:
        try:
            snapshot = await store.get(Collection.INVESTMENT_REQUESTS, request_id)
        except StoreError as exc:
            errors.append(f"Failed to process {request_id}: {exc}")
            failed += 1
            continue
        if snapshot is None:
            errors.append(f"Request {request_id} not found")
            failed += 1
            continue
        batch.update(
            Collection.INVESTMENT_REQUESTS,
            request_id,
            _transition_fields(RequestStatus.APPROVED, admin_id, now),
        )
        processed += 1

    return await _commit(batch, "bulk approve", processed, failed, errors)


async def bulk_reject_requests(
    store: DocumentStore,
    request_ids: list[str],
    admin_id: str,
    reason: str = "",
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Mark requests rejected. Missing ids only surface through the commit."""
    if now is None:
        now = datetime.now(UTC)

    batch = store.batch()
    for request_id in request_ids:
        fields = _transition_fields(RequestStatus.REJECTED, admin_id, now)
        fields["rejection_reason"] = reason or "Rejected by admin"
        batch.update(Collection.INVESTMENT_REQUESTS, request_id, fields)

    return await _commit(batch, "bulk reject", len(request_ids), 0, [])


async def bulk_verify_documents(
    store: DocumentStore,
    user_ids: list[str],
    admin_id: str,
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Mark user profiles identity-verified."""
    if now is None:
        now = datetime.now(UTC)

    batch = store.batch()
    for user_id in user_ids:
        batch.update(
            Collection.USER_PROFILES,
            user_id,
            {
                "identity_verified": True,
                "verified_by": admin_id,
                "verified_at": format_timestamp(now),
            },
        )

    return await _commit(batch, "bulk verify", len(user_ids), 0, [])


async def bulk_toggle_users(
    store: DocumentStore,
    user_ids: list[str],
    action: Literal["activate", "deactivate"],
    admin_id: str,
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Activate or deactivate user profiles."""
    if now is None:
        now = datetime.now(UTC)

    status = UserStatus.ACTIVE if action == "activate" else UserStatus.INACTIVE
    batch = store.batch()
    for user_id in user_ids:
        batch.update(
            Collection.USER_PROFILES,
            user_id,
            {
                "status": status.value,
                "updated_at": format_timestamp(now),
                "updated_by": admin_id,
            },
        )

    return await _commit(batch, f"bulk {action}", len(user_ids), 0, [])


async def process_requests_by_status(
    store: DocumentStore,
    from_status: RequestStatus | str,
    to_status: RequestStatus | str,
    admin_id: str,
    max_count: int | None = None,
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Move the oldest ``max_count`` requests in ``from_status`` to ``to_status``."""
    if now is None:
        now = datetime.now(UTC)
    if max_count is None:
        max_count = settings.PROCESS_BY_STATUS_MAX
    from_status, to_status = RequestStatus(from_status), RequestStatus(to_status)
    operation = f"status sweep {from_status.value} -> {to_status.value}"

    try:
        snapshots = await store.query(
            Collection.INVESTMENT_REQUESTS,
            [FieldFilter("status", "==", from_status)],
            order_by=[Order("createdAt")],
            limit=max_count,
        )
    except StoreError as exc:
        logger.exception("%s could not query requests", operation)
        return BulkOperationResult(errors=[str(exc)])

    batch = store.batch()
    for snapshot in snapshots:
        batch.update(
            Collection.INVESTMENT_REQUESTS,
            snapshot.id,
            _transition_fields(to_status, admin_id, now),
        )

    return await _commit(batch, operation, len(snapshots), 0, [])


async def auto_process_low_value_requests(
    store: DocumentStore,
    admin_id: str,
    threshold: float | None = None,
    *,
    now: datetime | None = None,
) -> BulkOperationResult:
    """Bulk-approve every pending request paid at or below ``threshold``."""
    if threshold is None:
        threshold = settings.AUTO_APPROVE_THRESHOLD

    try:
        snapshots = await store.query(
            Collection.INVESTMENT_REQUESTS,
            [
                FieldFilter("status", "==", RequestStatus.PENDING),
                FieldFilter("amount_paid", "<=", threshold),
            ],
            order_by=[Order("amount_paid", numeric=True)],
        )
    except StoreError as exc:
        logger.exception("Auto-approve could not query requests under %s", threshold)
        return BulkOperationResult(errors=[str(exc) or "Auto-processing failed"])

    logger.info("Auto-approving %d pending requests at or below %s", len(snapshots), threshold)
    return await bulk_approve_requests(store, [s.id for s in snapshots], admin_id, now=now)


async def get_high_priority_requests(
    store: DocumentStore,
    max_requests: int = 20,
    *,
    high_value_floor: float | None = None,
) -> list[InvestmentRequest]:
    """Triage list: high-value pending requests, then recent referral requests.

    Each ranked set contributes at most ``ceil(max_requests / 2)`` requests;
    the merged list is deduplicated and capped at ``max_requests``.

    Raises:
        StoreError: either query failed.
    """
    if high_value_floor is None:
        high_value_floor = settings.HIGH_VALUE_FLOOR
    per_set = math.ceil(max_requests / 2)
    pending = FieldFilter("status", "==", RequestStatus.PENDING)

    high_value, referred = await asyncio.gather(
        store.query(
            Collection.INVESTMENT_REQUESTS,
            [pending, FieldFilter("amount_paid", ">=", high_value_floor)],
            order_by=[Order("amount_paid", descending=True, numeric=True)],
            limit=per_set,
        ),
        store.query(
            Collection.INVESTMENT_REQUESTS,
            [pending, FieldFilter("referral_code", "!=", None)],
            order_by=[Order("createdAt", descending=True)],
            limit=per_set,
        ),
    )

    seen: set[str] = set()
    requests: list[InvestmentRequest] = []
    for snapshot in [*high_value, *referred]:
        if snapshot.id in seen:
            continue
        seen.add(snapshot.id)
        requests.append(InvestmentRequest.from_snapshot(snapshot))
    return requests[:max_requests]


async def atomic_bulk_transition(
    store: DocumentStore,
    request_ids: list[str],
    to_status: RequestStatus | str,
    admin_id: str,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> AtomicBatchResult:
    """Move every listed request to ``to_status`` in one transaction.

    Raises:
        ValueError: more ids than ``ATOMIC_BATCH_MAX_ITEMS``.
    """
    if now is None:
        now = datetime.now(UTC)
    ids = list(dict.fromkeys(request_ids))
    if len(ids) > settings.ATOMIC_BATCH_MAX_ITEMS:
        raise ValueError(
            f"Atomic transitions accept at most {settings.ATOMIC_BATCH_MAX_ITEMS} "
            f"requests, got {len(ids)}"
        )
    status = RequestStatus(to_status)

    async def _transition(txn: Transaction) -> None:
        for request_id in ids:
            if await txn.get(Collection.INVESTMENT_REQUESTS, request_id) is None:
                raise RequestNotFoundError(f"Request {request_id} not found")
        for request_id in ids:
            fields = _transition_fields(status, admin_id, now)
            if status == RequestStatus.REJECTED:
                fields["rejection_reason"] = reason or "Rejected by admin"
            txn.update(Collection.INVESTMENT_REQUESTS, request_id, fields)

    try:
        await store.run_transaction(_transition)
    except (RequestNotFoundError, StoreError) as exc:
        logger.warning("Atomic transition of %d requests to %s aborted: %s", len(ids), status.value, exc)
        return AtomicBatchResult(success=False, message=f"No requests were updated: {exc}")

    logger.info("Atomic transition moved %d requests to %s", len(ids), status.value)
    return AtomicBatchResult(
        success=True,
        message=f"{len(ids)} requests moved to {status.value}.",
        processed=len(ids),
    )
