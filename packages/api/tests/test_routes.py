# This project was developed with assistance from AI tools.
"""HTTP-level tests: status mapping, role checks and error bodies."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

from db import StoreError
from db.enums import Collection

from .factories import make_request_doc, seed_approval_world

APPROVE_BODY = {
    "user_id": "user-1",
    "plot_id": "plot-1",
    "project_id": "project-1",
    "amount_paid": 10_000,
    "sqm_purchased": 10,
    "price_per_sqm": 1_000,
}


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Welcome to SubX Admin API"}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


def test_health_reports_store_ok(client):
    resp = client.get("/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "store": "ok"}


def test_health_reports_unreachable_store(client, store):
    with patch.object(store, "ping", AsyncMock(side_effect=StoreError("refused"))):
        resp = client.get("/health/")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unhealthy"


# ---------------------------------------------------------------------------
# Single request transitions
# ---------------------------------------------------------------------------


def test_approve_returns_applied_side_effects(client, store):
    seed_approval_world(store)

    resp = client.post("/api/investment-requests/req-1/approve", json=APPROVE_BODY)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["fully_consistent"] is True
    assert body["skipped"] == []
    assert body["investment_id"]


def test_approve_unverified_is_409(client, store):
    seed_approval_world(store)

    resp = client.post(
        "/api/investment-requests/req-1/approve",
        json={**APPROVE_BODY, "identity_verified": False},
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["title"] == "Conflict"
    assert "must be verified first" in body["detail"]


def test_approve_missing_request_is_404(client):
    resp = client.post("/api/investment-requests/ghost/approve", json=APPROVE_BODY)
    assert resp.status_code == 404


def test_approve_store_failure_is_503(client, store):
    seed_approval_world(store)

    with patch.object(store, "_commit", AsyncMock(side_effect=StoreError("unavailable"))):
        resp = client.post("/api/investment-requests/req-1/approve", json=APPROVE_BODY)

    assert resp.status_code == 503
    assert resp.json()["status"] == 503


def test_approve_rejects_negative_amount(client, store):
    seed_approval_world(store)

    resp = client.post(
        "/api/investment-requests/req-1/approve", json={**APPROVE_BODY, "amount_paid": -5}
    )

    assert resp.status_code == 422
    assert resp.json()["status"] == 422


def test_reject_missing_request_is_404(client):
    resp = client.post("/api/investment-requests/ghost/reject", json={"reason": "dup"})
    assert resp.status_code == 404


def test_reject_records_reason(client, store):
    seed_approval_world(store)

    resp = client.post("/api/investment-requests/req-1/reject", json={})

    assert resp.status_code == 200
    assert resp.json()["message"] == "Investment request rejected successfully."


def test_sub_admin_cannot_approve(sub_admin_client, store):
    seed_approval_world(store)

    resp = sub_admin_client.post("/api/investment-requests/req-1/approve", json=APPROVE_BODY)

    assert resp.status_code == 403


def test_sub_admin_can_verify_and_read_status(sub_admin_client, store):
    store.load(
        Collection.INVESTMENT_REQUESTS,
        {"req-1": make_request_doc(identity_verified=False, payment_verified=False)},
    )

    resp = sub_admin_client.post(
        "/api/investment-requests/req-1/verify",
        json={"identity_verified": True, "payment_verified": True},
    )
    assert resp.status_code == 200

    resp = sub_admin_client.get("/api/investment-requests/req-1/document-status")
    assert resp.status_code == 200
    assert resp.json()["ready_for_approval"] is True


def test_document_status_missing_request_is_404(client):
    resp = client.get("/api/investment-requests/ghost/document-status")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Investment request not found"


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


def test_bulk_approve_reports_counts(client, store):
    store.load(Collection.INVESTMENT_REQUESTS, {"r1": make_request_doc()})

    resp = client.post("/api/bulk/requests/approve", json={"ids": ["r1", "ghost"]})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "processed": 1,
        "failed": 1,
        "errors": ["Request ghost not found"],
    }


def test_bulk_approve_requires_ids(client):
    resp = client.post("/api/bulk/requests/approve", json={"ids": []})
    assert resp.status_code == 422


def test_atomic_transition_over_limit_is_400(client):
    ids = [f"r{n}" for n in range(30)]

    resp = client.post(
        "/api/bulk/requests/atomic-transition", json={"ids": ids, "to_status": "approved"}
    )

    assert resp.status_code == 400
    assert "at most" in resp.json()["detail"]


def test_sub_admin_can_list_high_priority(sub_admin_client, store):
    store.load(Collection.INVESTMENT_REQUESTS, {"big": make_request_doc(amount_paid=90_000)})

    resp = sub_admin_client.get("/api/bulk/requests/high-priority", params={"max_requests": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["data"]] == ["big"]
    assert body["pagination"]["limit"] == 5


def test_sub_admin_cannot_bulk_toggle_users(sub_admin_client):
    resp = sub_admin_client.post(
        "/api/bulk/users/toggle", json={"ids": ["u1"], "action": "deactivate"}
    )
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


def test_auto_queue_then_process_with_approval(client, store):
    seed_approval_world(store, request=make_request_doc(created_at=datetime.now(UTC)))

    resp = client.post("/api/queue/auto-queue")
    assert resp.status_code == 200
    assert resp.json()["queued"] == 1

    resp = client.get("/api/queue/items")
    assert resp.status_code == 200
    assert [i["item_id"] for i in resp.json()["data"]] == ["req-1"]

    resp = client.post("/api/queue/process", json={"approve_investments": True})
    assert resp.status_code == 200
    assert resp.json()["processed"] == 1

    request = store._docs[(Collection.INVESTMENT_REQUESTS.value, "req-1")][0]
    assert request["status"] == "approved"

    stats = client.get("/api/queue/stats").json()
    assert stats["completed"] == 1
    assert stats["pending"] == 0


def test_queue_stats_store_failure_is_503(client, store):
    with patch.object(store, "query", AsyncMock(side_effect=StoreError("down"))):
        resp = client.get("/api/queue/stats")

    assert resp.status_code == 503
    assert resp.json()["detail"] == "Document store unavailable."


def test_sub_admin_cannot_process_queue(sub_admin_client):
    resp = sub_admin_client.post("/api/queue/process", json={})
    assert resp.status_code == 403


def test_error_body_echoes_request_id_and_path(client):
    resp = client.get(
        "/api/investment-requests/ghost/document-status", headers={"X-Request-ID": "trace-7"}
    )

    body = resp.json()
    assert body["title"] == "Not Found"
    assert body["request_id"] == "trace-7"
    assert body["instance"] == "/api/investment-requests/ghost/document-status"


def test_queue_items_reports_full_page(client, store):
    store.load(
        Collection.ADMIN_QUEUE,
        {
            "q1": {"status": "pending", "priority": "high", "itemId": "r1"},
            "q2": {"status": "pending", "priority": "low", "itemId": "r2"},
        },
    )

    body = client.get("/api/queue/items", params={"limit": 2}).json()

    assert [i["id"] for i in body["data"]] == ["q1", "q2"]
    assert body["pagination"]["has_more"] is True
