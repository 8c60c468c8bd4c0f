# This project was developed with assistance from AI tools.
"""Administrative work queue.

Pending investment requests are scored into high/medium/low tiers and
enqueued by a periodic scan. Workers drain the queue in fixed-size chunks:
items within a chunk run concurrently, and a cooldown between chunks keeps
the write rate against the store bounded.

The dedup check in the scan is a plain read followed by a write, so two
overlapping scans can still enqueue the same request twice.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from db import DocumentStore, FieldFilter, StoreError, Transaction
from db.enums import Collection, QueueItemType, QueuePriority, QueueStatus, RequestStatus
from db.errors import DocumentNotFoundError
from pydantic import ValidationError

from ..core.config import settings
from ..schemas.documents import InvestmentRequest, QueueItem, to_store_value
from ..schemas.queue import AutoQueueResult, BatchResult, PriorityCounts, QueueStats

logger = logging.getLogger(__name__)

# Tier thresholds
HIGH_AMOUNT = 100_000
MEDIUM_AMOUNT = 25_000
HIGH_AGE_HOURS = 12
MEDIUM_AGE_HOURS = 4

# (item, admin_id) -> result stored on the completed item
QueueHandler = Callable[[QueueItem, str], Awaitable[dict[str, Any] | None]]


class QueueItemError(RuntimeError):
    """Raised by a queue handler when one work item cannot be processed."""

    pass


class QueueItemClaimedError(QueueItemError):
    """Raised when another worker already took the item."""

    pass


def calculate_priority(request: InvestmentRequest, *, now: datetime | None = None) -> QueuePriority:
    """Score a request into a queue tier.

    High when the amount exceeds 100k, a referral code is present, or the
    request is older than 12 hours; medium above 25k or 4 hours; else low.
    A request with no creation time is treated as infinitely old.
    """
    if now is None:
        now = datetime.now(UTC)

    if request.created_at is None:
        hours_old = float("inf")
    else:
        hours_old = abs((now - request.created_at).total_seconds()) / 3600

    if request.amount_paid > HIGH_AMOUNT or request.referral_code or hours_old > HIGH_AGE_HOURS:
        return QueuePriority.HIGH
    if request.amount_paid > MEDIUM_AMOUNT or hours_old > MEDIUM_AGE_HOURS:
        return QueuePriority.MEDIUM
    return QueuePriority.LOW


# ---------------------------------------------------------------------------
# Item lifecycle
# ---------------------------------------------------------------------------


async def add_to_queue(
    store: DocumentStore,
    item_type: QueueItemType,
    priority: QueuePriority,
    metadata: dict[str, Any],
    item_id: str,
    *,
    now: datetime | None = None,
) -> str:
    """Enqueue a pending work item and return its queue id."""
    if now is None:
        now = datetime.now(UTC)
    queue_id = await store.add(
        Collection.ADMIN_QUEUE,
        QueueItem.encode(
            {
                "type": item_type,
                "priority": priority,
                "status": QueueStatus.PENDING,
                "item_id": item_id,
                "metadata": metadata,
                "created_at": now,
            }
        ),
    )
    logger.debug(
        "Queued %s item %s for %s at %s priority", item_type.value, queue_id, item_id, priority.value
    )
    return queue_id


async def get_queue_items(store: DocumentStore, limit: int = 20) -> list[QueueItem]:
    """Return pending items, highest tier first, oldest first within a tier.

    Rows with an unknown type or tier are logged and left out.
    """
    snapshots = await store.query(
        Collection.ADMIN_QUEUE,
        [FieldFilter("status", "==", QueueStatus.PENDING)],
    )
    items: list[QueueItem] = []
    for snapshot in snapshots:
        try:
            items.append(QueueItem.from_snapshot(snapshot))
        except ValidationError as exc:
            logger.warning(
                "Skipping undecodable queue item %s: %d validation errors",
                snapshot.id,
                exc.error_count(),
            )
    # Items without a creation time sort last within their tier.
    items.sort(
        key=lambda item: (
            item.priority.rank,
            item.created_at is None,
            item.created_at or datetime.min.replace(tzinfo=UTC),
        )
    )
    return items[:limit]


async def start_processing(
    store: DocumentStore, queue_id: str, admin_id: str, *, now: datetime | None = None
) -> None:
    """Claim a pending item for ``admin_id``.

    Raises:
        QueueItemClaimedError: the item is no longer pending.
        DocumentNotFoundError: the item does not exist.
    """
    if now is None:
        now = datetime.now(UTC)

    async def _claim(txn: Transaction) -> None:
        snapshot = await txn.get(Collection.ADMIN_QUEUE, queue_id)
        if snapshot is None:
            raise DocumentNotFoundError(Collection.ADMIN_QUEUE.value, queue_id)
        current = snapshot.data.get("status", QueueStatus.PENDING.value)
        if current != QueueStatus.PENDING.value:
            raise QueueItemClaimedError(f"Queue item {queue_id} is already {current}")
        txn.update(
            Collection.ADMIN_QUEUE,
            queue_id,
            QueueItem.encode(
                {"status": QueueStatus.PROCESSING, "assigned_to": admin_id, "started_at": now}
            ),
        )

    await store.run_transaction(_claim)


async def complete_processing(
    store: DocumentStore,
    queue_id: str,
    result: dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> None:
    if now is None:
        now = datetime.now(UTC)
    await store.update(
        Collection.ADMIN_QUEUE,
        queue_id,
        QueueItem.encode(
            {"status": QueueStatus.COMPLETED, "processed_at": now, "result": result or {}}
        ),
    )


async def fail_processing(
    store: DocumentStore, queue_id: str, error: str, *, now: datetime | None = None
) -> None:
    if now is None:
        now = datetime.now(UTC)
    await store.update(
        Collection.ADMIN_QUEUE,
        queue_id,
        {
            "status": QueueStatus.FAILED.value,
            "failedAt": to_store_value(now),
            "failed_at": to_store_value(now),
            "error": error,
        },
    )


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


async def _already_queued(store: DocumentStore, request_id: str) -> bool:
    existing = await store.query(
        Collection.ADMIN_QUEUE,
        [
            FieldFilter("itemId", "==", request_id),
            FieldFilter("status", "in", list(QueueStatus.active_statuses())),
        ],
        limit=1,
    )
    return bool(existing)


async def auto_queue_requests(
    store: DocumentStore,
    *,
    now: datetime | None = None,
    lookback_hours: int | None = None,
) -> AutoQueueResult:
    """Enqueue recent pending requests that have no active queue entry.

    Raises:
        StoreError: a read or write against the store failed. Items queued
            before the failure stay queued.
    """
    if now is None:
        now = datetime.now(UTC)
    if lookback_hours is None:
        lookback_hours = settings.AUTO_QUEUE_LOOKBACK_HOURS

    since = now - timedelta(hours=lookback_hours)
    snapshots = await store.query(
        Collection.INVESTMENT_REQUESTS,
        [
            FieldFilter("status", "==", RequestStatus.PENDING),
            FieldFilter("createdAt", ">=", to_store_value(since)),
        ],
    )

    result = AutoQueueResult(scanned=len(snapshots))
    for snapshot in snapshots:
        if await _already_queued(store, snapshot.id):
            result.skipped += 1
            continue

        request = InvestmentRequest.from_snapshot(snapshot)
        await add_to_queue(
            store,
            QueueItemType.INVESTMENT,
            calculate_priority(request, now=now),
            {
                "requestId": request.id,
                "amount": request.amount_paid,
                "userEmail": request.user_email or "",
                "plotName": request.plot_name or "",
                "createdAt": request.created_at,
            },
            request.id,
            now=now,
        )
        result.queued += 1

    logger.info(
        "Auto-queue scanned %d pending requests: %d queued, %d already queued",
        result.scanned,
        result.queued,
        result.skipped,
    )
    return result


async def run_auto_queue(store: DocumentStore, interval: float) -> None:
    """Scan on a fixed interval until cancelled. Store failures are logged."""
    logger.info("Auto-queue scan every %.0f seconds", interval)
    while True:
        try:
            await auto_queue_requests(store)
        except StoreError:
            logger.exception("Auto-queue scan failed")
        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


async def _process_item(
    store: DocumentStore,
    item: QueueItem,
    admin_id: str,
    handlers: dict[QueueItemType, QueueHandler],
) -> None:
    await start_processing(store, item.id, admin_id)
    handler = handlers.get(item.type)
    if handler is None:
        logger.info("No handler for %s item %s; marking it processed", item.type.value, item.id)
        outcome = None
    else:
        outcome = await handler(item, admin_id)
    await complete_processing(
        store,
        item.id,
        outcome or {"processedAt": to_store_value(datetime.now(UTC))},
    )


async def process_batch(
    store: DocumentStore,
    items: list[QueueItem],
    admin_id: str,
    batch_size: int | None = None,
    *,
    handlers: dict[QueueItemType, QueueHandler] | None = None,
    cooldown: float | None = None,
) -> BatchResult:
    """Process ``items`` in chunks of ``batch_size``.

    Items in a chunk run concurrently; the next chunk starts after the whole
    chunk finishes and ``cooldown`` seconds have passed. There is no pause
    after the last chunk. A failing item is marked failed and counted; it
    never stops the rest of the run. Items another worker claimed first are
    skipped and counted separately.

    Args:
        store: Document store.
        items: Queue items to process, in order.
        admin_id: Worker recorded as assignee.
        batch_size: Chunk size (default ``QUEUE_BATCH_SIZE``).
        handlers: Per-type work. Types without a handler are completed as-is.
        cooldown: Seconds between chunks (default ``QUEUE_CHUNK_COOLDOWN_SECONDS``).
    """
    if batch_size is None:
        batch_size = settings.QUEUE_BATCH_SIZE
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    if cooldown is None:
        cooldown = settings.QUEUE_CHUNK_COOLDOWN_SECONDS
    handlers = handlers or {}

    result = BatchResult()

    async def _run(item: QueueItem) -> None:
        try:
            await _process_item(store, item, admin_id, handlers)
        except QueueItemClaimedError as exc:
            logger.info("Skipping queue item %s: %s", item.id, exc)
            result.skipped += 1
        except Exception as exc:
            logger.exception("Queue item %s failed", item.id)
            result.failed += 1
            result.errors.append(f"Failed to process item {item.id}: {exc}")
            try:
                await fail_processing(store, item.id, str(exc))
            except StoreError:
                logger.exception("Could not mark queue item %s failed", item.id)
        else:
            result.processed += 1

    for start in range(0, len(items), batch_size):
        chunk = items[start : start + batch_size]
        await asyncio.gather(*(_run(item) for item in chunk))
        if start + batch_size < len(items):
            await asyncio.sleep(cooldown)

    logger.info(
        "Processed %d queue items in chunks of %d: %d ok, %d failed, %d skipped",
        len(items),
        batch_size,
        result.processed,
        result.failed,
        result.skipped,
    )
    return result


async def get_queue_stats(store: DocumentStore) -> QueueStats:
    """Tally the whole queue by status and tier."""
    snapshots = await store.query(Collection.ADMIN_QUEUE)
    statuses = {s.value for s in QueueStatus}
    priorities = {p.value for p in QueuePriority}

    stats = QueueStats(total=len(snapshots), by_priority=PriorityCounts())
    for snapshot in snapshots:
        # Unknown values count toward the total only.
        status = snapshot.data.get("status")
        if status in statuses:
            setattr(stats, status, getattr(stats, status) + 1)
        priority = snapshot.data.get("priority")
        if priority in priorities:
            setattr(stats.by_priority, priority, getattr(stats.by_priority, priority) + 1)
    return stats
