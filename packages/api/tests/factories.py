# This project was developed with assistance from AI tools.
"""Shared test factory functions for store documents.

Documents are built in the dual-spelling layout upstream writers use, so
tests exercise the same decoding path as production data.
"""

from datetime import UTC, datetime

from db import MemoryDocumentStore, format_timestamp
from db.enums import Collection

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_request_doc(
    user_id="user-1",
    plot_id="plot-1",
    project_id="project-1",
    amount_paid=10_000,
    sqm_purchased=10,
    price_per_sqm=1_000,
    referral_code=None,
    referral_commission=0,
    status="pending",
    identity_verified=True,
    payment_verified=True,
    documents_uploaded=True,
    created_at=NOW,
    **extra,
):
    """Create an investment request document.

    Args:
        user_id: Investor id.
        plot_id: Plot the area is bought from.
        project_id: Project credited with the revenue.
        amount_paid: Paid amount, stored under ``amount_paid`` and ``Amount_paid``.
        sqm_purchased: Purchased area.
        price_per_sqm: Unit price.
        referral_code: Optional referral code.
        referral_commission: Commission owed on the referral.
        status: Request status.
        identity_verified: Stored identity flag.
        payment_verified: Stored payment flag.
        documents_uploaded: Stored upload flag.
        created_at: Creation time, stored under both spellings.
        **extra: Additional raw fields.

    Returns:
        dict ready for ``MemoryDocumentStore.load``.
    """
    doc = {
        "user_id": user_id,
        "userId": user_id,
        "user_email": f"{user_id}@example.com",
        "plot_id": plot_id,
        "plotId": plot_id,
        "plot_name": f"Plot {plot_id}",
        "project_id": project_id,
        "projectId": project_id,
        "amount_paid": amount_paid,
        "Amount_paid": amount_paid,
        "sqm_purchased": sqm_purchased,
        "sqm": sqm_purchased,
        "price_per_sqm": price_per_sqm,
        "pricePerSqm": price_per_sqm,
        "status": status,
        "identity_verified": identity_verified,
        "payment_verified": payment_verified,
        "documents_uploaded": documents_uploaded,
    }
    if referral_code is not None:
        doc["referral_code"] = referral_code
        doc["referralCode"] = referral_code
        doc["referral_commission"] = referral_commission
        doc["referralCommission"] = referral_commission
    if created_at is not None:
        doc["created_at"] = format_timestamp(created_at)
        doc["createdAt"] = format_timestamp(created_at)
    doc.update(extra)
    return doc


def make_plot_doc(available_sqm=500, total_owners=3, project_id="project-1"):
    return {
        "name": "Sunrise Block A",
        "project_id": project_id,
        "available_sqm": available_sqm,
        "availableSqm": available_sqm,
        "Total_owners": total_owners,
        "totalOwners": total_owners,
    }


def make_user_doc(total_investment=0, portfolio_sqm=0, wallet_balance=50_000, total_investments=0):
    return {
        "email": "investor@example.com",
        "status": "active",
        "total_investment": total_investment,
        "totalInvestment": total_investment,
        "portfolio_sqm": portfolio_sqm,
        "portfolioSqm": portfolio_sqm,
        "wallet_balance": wallet_balance,
        "walletBalance": wallet_balance,
        "total_investments": total_investments,
        "totalInvestments": total_investments,
    }


def make_project_doc(total_revenue=100_000, total_investors=5):
    return {
        "name": "Lekki Gardens",
        "total_revenue": total_revenue,
        "totalRevenue": total_revenue,
        "total_investors": total_investors,
        "totalInvestors": total_investors,
    }


def seed_approval_world(
    store: MemoryDocumentStore,
    request_id="req-1",
    *,
    request=None,
    plot=None,
    user=None,
    project=None,
) -> None:
    """Load a request with its plot, user and project.

    Pass ``False`` for plot, user or project to leave that document out.
    """
    store.load(Collection.INVESTMENT_REQUESTS, {request_id: request or make_request_doc()})
    if plot is not False:
        store.load(Collection.PLOTS, {"plot-1": plot or make_plot_doc()})
    if user is not False:
        store.load(Collection.USER_PROFILES, {"user-1": user or make_user_doc()})
    if project is not False:
        store.load(Collection.PROJECTS, {"project-1": project or make_project_doc()})
