# This project was developed with assistance from AI tools.
"""Tests for decoding and encoding dual-spelling store documents."""

from datetime import UTC, datetime

from db import DocumentSnapshot
from db.enums import QueuePriority

from src.schemas.documents import (
    InvestmentRequest,
    Plot,
    QueueItem,
    UserProfile,
    to_store_value,
)


def test_first_present_spelling_wins():
    plot = Plot.model_validate({"available_sqm": 120, "availableSqm": 999, "totalOwners": 4})

    assert plot.available_sqm == 120
    assert plot.total_owners == 4


def test_null_spelling_does_not_hide_populated_one():
    request = InvestmentRequest.model_validate({"plot_id": None, "plotId": "plot-9"})

    assert request.plot_id == "plot-9"


def test_zero_numeric_spelling_does_not_hide_populated_one():
    plot = Plot.model_validate({"available_sqm": 0, "availableSqm": 50})
    request = InvestmentRequest.model_validate(
        {"amount_paid": 0, "Amount_paid": 0, "totalAmount": 800}
    )

    assert plot.available_sqm == 50
    assert request.amount_paid == 800


def test_zero_is_kept_when_every_spelling_is_zero():
    plot = Plot.model_validate({"available_sqm": 0, "availableSqm": 0, "totalOwners": 3})

    assert plot.available_sqm == 0
    assert plot.total_owners == 3


def test_missing_numeric_fields_default_to_zero():
    user = UserProfile.model_validate({"email": "a@example.com"})

    assert user.wallet_balance == 0
    assert user.total_investments == 0


def test_amount_paid_accepts_legacy_spellings():
    assert InvestmentRequest.model_validate({"Amount_paid": 700}).amount_paid == 700
    assert InvestmentRequest.model_validate({"totalAmount": 800}).amount_paid == 800


def test_from_snapshot_carries_document_id():
    snapshot = DocumentSnapshot("investment_requests", "req-42", {"userId": "u-1"}, 3)

    request = InvestmentRequest.from_snapshot(snapshot)

    assert request.id == "req-42"
    assert request.user_id == "u-1"


def test_unknown_fields_are_ignored():
    request = InvestmentRequest.model_validate({"status": "pending_approval", "legacyFlag": True})

    assert request.status == "pending_approval"
    assert not hasattr(request, "legacyFlag")


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def test_parses_iso_string_timestamp():
    request = InvestmentRequest.model_validate({"createdAt": "2026-03-01T12:00:00.000000Z"})

    assert request.created_at == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def test_parses_exported_seconds_map():
    request = InvestmentRequest.model_validate(
        {"created_at": {"seconds": 1_772_366_400, "nanoseconds": 500_000_000}}
    )

    assert request.created_at == datetime(2026, 3, 1, 12, 0, 0, 500_000, tzinfo=UTC)


def test_naive_timestamp_is_treated_as_utc():
    request = InvestmentRequest.model_validate({"created_at": datetime(2026, 3, 1, 12, 0)})

    assert request.created_at.tzinfo is not None
    assert request.created_at == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def test_encode_writes_every_spelling():
    encoded = Plot.encode({"available_sqm": 80, "total_owners": 5, "name": "Block C"})

    assert encoded == {
        "available_sqm": 80,
        "availableSqm": 80,
        "Total_owners": 5,
        "totalOwners": 5,
        "name": "Block C",
    }


def test_encode_renders_enums_and_timestamps():
    encoded = QueueItem.encode(
        {"priority": QueuePriority.HIGH, "created_at": datetime(2026, 3, 1, tzinfo=UTC)}
    )

    assert encoded["priority"] == "high"
    assert encoded["createdAt"] == encoded["created_at"] == "2026-03-01T00:00:00.000000Z"


def test_to_store_value_recurses_into_containers():
    value = to_store_value({"when": [datetime(2026, 3, 1, tzinfo=UTC)], "tier": QueuePriority.LOW})

    assert value == {"when": ["2026-03-01T00:00:00.000000Z"], "tier": "low"}


def test_spellings_of_plain_field_is_its_name():
    assert InvestmentRequest.spellings("status") == ("status",)
    assert InvestmentRequest.spellings("processed_by") == ("processed_by", "processedBy")
