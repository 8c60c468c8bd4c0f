# This project was developed with assistance from AI tools.
"""Schemas for bulk request and user operations."""

from typing import Literal

from db.enums import RequestStatus
from pydantic import BaseModel, Field

from . import Pagination
from .documents import InvestmentRequest


class BulkOperationResult(BaseModel):
    """Best-effort batch outcome.

    ``success`` only says the operation itself ran. Counts are per item as
    accumulated before the batch commit; a failed commit adds one trailing
    entry to ``errors`` without adjusting the counts.
    """

    success: Literal[True] = True
    processed: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class AtomicBatchResult(BaseModel):
    """All-or-nothing batch outcome. On failure nothing was written."""

    success: bool
    message: str
    processed: int = 0


class HighPriorityResponse(BaseModel):
    data: list[InvestmentRequest]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class BulkIdsBody(BaseModel):
    ids: list[str] = Field(min_length=1)


class BulkRejectBody(BulkIdsBody):
    reason: str = ""


class BulkToggleUsersBody(BulkIdsBody):
    action: Literal["activate", "deactivate"]


class ProcessByStatusBody(BaseModel):
    from_status: RequestStatus
    to_status: RequestStatus
    max_count: int | None = Field(default=None, gt=0)


class AutoApproveBody(BaseModel):
    threshold: float | None = Field(default=None, ge=0)


class AtomicTransitionBody(BulkIdsBody):
    to_status: RequestStatus
    reason: str | None = None
