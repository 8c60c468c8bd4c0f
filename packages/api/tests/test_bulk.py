# This project was developed with assistance from AI tools.
"""Tests for bulk request and user operations."""

import copy
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from db import StoreError, format_timestamp
from db.enums import Collection

from src.core.config import settings
from src.services.bulk import (
    atomic_bulk_transition,
    auto_process_low_value_requests,
    bulk_approve_requests,
    bulk_reject_requests,
    bulk_toggle_users,
    bulk_verify_documents,
    get_high_priority_requests,
    process_requests_by_status,
)

from .factories import NOW, make_request_doc, make_user_doc


def _load_requests(store, **docs):
    store.load(Collection.INVESTMENT_REQUESTS, docs)


async def _status(store, request_id):
    return (await store.get(Collection.INVESTMENT_REQUESTS, request_id)).data["status"]


# ---------------------------------------------------------------------------
# bulk_approve_requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_bulk_approve_counts_missing_id_as_failed(store):
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc(), r3=make_request_doc())

    result = await bulk_approve_requests(store, ["r1", "ghost", "r2", "r3"], "admin-1", now=NOW)

    assert result.success is True
    assert result.processed == 3
    assert result.failed == 1
    assert result.errors == ["Request ghost not found"]
    request = (await store.get(Collection.INVESTMENT_REQUESTS, "r2")).data
    assert request["status"] == "approved"
    assert request["approved_by"] == request["processedBy"] == "admin-1"
    assert request["approved_at"] == format_timestamp(NOW)


@pytest.mark.asyncio
async def test_bulk_approve_leaves_inventory_alone(store):
    _load_requests(store, r1=make_request_doc())

    await bulk_approve_requests(store, ["r1"], "admin-1")

    assert await store.query(Collection.INVESTMENTS) == []


@pytest.mark.asyncio
async def test_bulk_approve_commit_failure_appends_one_error(store):
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc())

    with patch.object(store, "_commit", AsyncMock(side_effect=StoreError("quota exceeded"))):
        result = await bulk_approve_requests(store, ["r1", "ghost", "r2"], "admin-1")

    assert result.success is True
    assert result.processed == 2
    assert result.failed == 1
    assert result.errors == ["Request ghost not found", "quota exceeded"]
    assert await _status(store, "r1") == "pending"


# ---------------------------------------------------------------------------
# bulk_reject / verify / toggle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_bulk_reject_uses_default_reason(store):
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc())

    result = await bulk_reject_requests(store, ["r1", "r2"], "admin-1")

    assert (result.processed, result.failed, result.errors) == (2, 0, [])
    request = (await store.get(Collection.INVESTMENT_REQUESTS, "r1")).data
    assert request["status"] == "rejected"
    assert request["rejection_reason"] == "Rejected by admin"


@pytest.mark.asyncio
async def test_bulk_reject_missing_id_fails_the_whole_batch(store):
    """A missing id is not pre-checked; the batch commit fails as a unit."""
    _load_requests(store, r1=make_request_doc())

    result = await bulk_reject_requests(store, ["r1", "ghost"], "admin-1", "spam")

    assert result.processed == 2
    assert result.failed == 0
    assert len(result.errors) == 1
    assert "ghost" in result.errors[0]
    assert await _status(store, "r1") == "pending"


@pytest.mark.asyncio
async def test_bulk_verify_documents_marks_users_verified(store):
    store.load(Collection.USER_PROFILES, {"u1": make_user_doc(), "u2": make_user_doc()})

    result = await bulk_verify_documents(store, ["u1", "u2"], "admin-1", now=NOW)

    assert result.processed == 2
    user = (await store.get(Collection.USER_PROFILES, "u2")).data
    assert user["identity_verified"] is True
    assert user["verified_by"] == "admin-1"
    assert user["verified_at"] == format_timestamp(NOW)


@pytest.mark.asyncio
async def test_bulk_toggle_users_deactivates(store):
    store.load(Collection.USER_PROFILES, {"u1": make_user_doc()})

    result = await bulk_toggle_users(store, ["u1"], "deactivate", "admin-1")

    assert result.processed == 1
    user = (await store.get(Collection.USER_PROFILES, "u1")).data
    assert user["status"] == "inactive"
    assert user["updated_by"] == "admin-1"


# ---------------------------------------------------------------------------
# process_requests_by_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_process_by_status_moves_oldest_first(store):
    _load_requests(
        store,
        newest=make_request_doc(created_at=NOW),
        oldest=make_request_doc(created_at=NOW - timedelta(days=3)),
        middle=make_request_doc(created_at=NOW - timedelta(days=1)),
        done=make_request_doc(status="rejected", created_at=NOW - timedelta(days=9)),
    )

    result = await process_requests_by_status(
        store, "pending", "approved", "admin-1", max_count=2, now=NOW
    )

    assert result.processed == 2
    assert await _status(store, "oldest") == "approved"
    assert await _status(store, "middle") == "approved"
    assert await _status(store, "newest") == "pending"
    assert await _status(store, "done") == "rejected"
    oldest = (await store.get(Collection.INVESTMENT_REQUESTS, "oldest")).data
    assert oldest["approved_by"] == "admin-1"


@pytest.mark.asyncio
async def test_process_by_status_without_approval_has_no_approval_stamp(store):
    _load_requests(store, r1=make_request_doc())

    await process_requests_by_status(store, "pending", "rejected", "admin-1")

    request = (await store.get(Collection.INVESTMENT_REQUESTS, "r1")).data
    assert request["status"] == "rejected"
    assert "approved_at" not in request


@pytest.mark.asyncio
async def test_process_by_status_defaults_to_configured_max(store, monkeypatch):
    monkeypatch.setattr(settings, "PROCESS_BY_STATUS_MAX", 1)
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc())

    result = await process_requests_by_status(store, "pending", "approved", "admin-1")

    assert result.processed == 1


@pytest.mark.asyncio
async def test_process_by_status_query_failure_is_one_error(store):
    with patch.object(store, "query", AsyncMock(side_effect=StoreError("index missing"))):
        result = await process_requests_by_status(store, "pending", "approved", "admin-1")

    assert result.success is True
    assert (result.processed, result.failed) == (0, 0)
    assert result.errors == ["index missing"]


# ---------------------------------------------------------------------------
# auto_process_low_value_requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_auto_process_never_approves_above_threshold(store):
    _load_requests(
        store,
        small=make_request_doc(amount_paid=5_000),
        edge=make_request_doc(amount_paid=25_000),
        large=make_request_doc(amount_paid=25_001),
        huge=make_request_doc(amount_paid=400_000),
        small_rejected=make_request_doc(amount_paid=100, status="rejected"),
    )

    result = await auto_process_low_value_requests(store, "admin-1", 25_000)

    assert result.processed == 2
    assert await _status(store, "small") == "approved"
    assert await _status(store, "edge") == "approved"
    assert await _status(store, "large") == "pending"
    assert await _status(store, "huge") == "pending"
    assert await _status(store, "small_rejected") == "rejected"


@pytest.mark.asyncio
async def test_auto_process_uses_configured_threshold(store, monkeypatch):
    monkeypatch.setattr(settings, "AUTO_APPROVE_THRESHOLD", 1_000)
    _load_requests(store, r1=make_request_doc(amount_paid=900), r2=make_request_doc(amount_paid=1_100))

    result = await auto_process_low_value_requests(store, "admin-1")

    assert result.processed == 1
    assert await _status(store, "r2") == "pending"


@pytest.mark.asyncio
async def test_auto_process_query_failure_is_reported(store):
    with patch.object(store, "query", AsyncMock(side_effect=StoreError("timeout"))):
        result = await auto_process_low_value_requests(store, "admin-1", 25_000)

    assert result.errors == ["timeout"]
    assert result.processed == 0


# ---------------------------------------------------------------------------
# get_high_priority_requests
# ---------------------------------------------------------------------------


def _triage_requests(store):
    _load_requests(
        store,
        a=make_request_doc(amount_paid=200_000),
        b=make_request_doc(
            amount_paid=80_000, referral_code="REF1", created_at=NOW - timedelta(hours=1)
        ),
        c=make_request_doc(amount_paid=60_000),
        d=make_request_doc(
            amount_paid=1_000, referral_code="REF2", created_at=NOW - timedelta(hours=2)
        ),
        e=make_request_doc(amount_paid=90_000, status="approved"),
        f=make_request_doc(amount_paid=40_000),
    )


@pytest.mark.asyncio
async def test_high_priority_merges_and_dedupes(store):
    _triage_requests(store)

    requests = await get_high_priority_requests(store, 4)

    assert [r.id for r in requests] == ["a", "b", "d"]
    assert requests[0].amount_paid == 200_000
    assert requests[2].referral_code == "REF2"


@pytest.mark.asyncio
async def test_high_priority_caps_result(store):
    _triage_requests(store)

    requests = await get_high_priority_requests(store, 1)

    assert [r.id for r in requests] == ["a"]


@pytest.mark.asyncio
async def test_high_priority_excludes_below_floor(store):
    _triage_requests(store)

    requests = await get_high_priority_requests(store, 20)

    ids = {r.id for r in requests}
    assert ids == {"a", "b", "c", "d"}


@pytest.mark.asyncio
async def test_high_priority_propagates_store_errors(store):
    with (
        patch.object(store, "query", AsyncMock(side_effect=StoreError("down"))),
        pytest.raises(StoreError),
    ):
        await get_high_priority_requests(store)


# ---------------------------------------------------------------------------
# atomic_bulk_transition
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_atomic_transition_moves_every_request(store):
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc())

    result = await atomic_bulk_transition(store, ["r1", "r2", "r1"], "rejected", "admin-1", "fraud")

    assert result.success is True
    assert result.processed == 2
    request = (await store.get(Collection.INVESTMENT_REQUESTS, "r2")).data
    assert request["status"] == "rejected"
    assert request["rejection_reason"] == "fraud"


@pytest.mark.asyncio
async def test_atomic_transition_missing_id_writes_nothing(store):
    _load_requests(store, r1=make_request_doc(), r2=make_request_doc())
    before = copy.deepcopy(store._docs)

    result = await atomic_bulk_transition(store, ["r1", "ghost", "r2"], "approved", "admin-1")

    assert result.success is False
    assert "ghost" in result.message
    assert result.processed == 0
    assert store._docs == before


@pytest.mark.asyncio
async def test_atomic_transition_refuses_large_sets(store, monkeypatch):
    monkeypatch.setattr(settings, "ATOMIC_BATCH_MAX_ITEMS", 2)

    with pytest.raises(ValueError, match="at most 2"):
        await atomic_bulk_transition(store, ["a", "b", "c"], "approved", "admin-1")
