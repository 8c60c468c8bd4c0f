# This project was developed with assistance from AI tools.
"""Schemas for the administrative work queue."""

from pydantic import BaseModel, Field

from . import Pagination
from .documents import QueueItem


class BatchResult(BaseModel):
    """Aggregate of one chunked queue processing run."""

    processed: int = 0
    failed: int = 0
    skipped: int = Field(default=0, description="Items another worker claimed first.")
    errors: list[str] = Field(default_factory=list)


class AutoQueueResult(BaseModel):
    scanned: int = 0
    queued: int = 0
    skipped: int = 0


class PriorityCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class QueueStats(BaseModel):
    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    by_priority: PriorityCounts = Field(default_factory=PriorityCounts)


class QueueItemListResponse(BaseModel):
    data: list[QueueItem]
    pagination: Pagination


class ProcessQueueBody(BaseModel):
    """Body for POST /queue/process."""

    limit: int = Field(default=20, gt=0, le=500)
    batch_size: int | None = Field(default=None, gt=0)
    approve_investments: bool = False
