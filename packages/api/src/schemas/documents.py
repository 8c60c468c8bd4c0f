# This project was developed with assistance from AI tools.
"""Canonical document types and the dual-spelling store adapter.

Upstream writers store most fields under two spellings (``available_sqm``
and ``availableSqm``, ``Total_owners`` and ``totalOwners`` ...). Each field
below lists every accepted spelling in its ``AliasChoices``:

* ``from_snapshot()`` decodes once into the canonical model. The first
  spelling present with a non-null value wins. A zero numeric spelling
  yields to a later non-zero one.
* ``encode()`` expands canonical attribute names back to every spelling
  for writing.

Business logic only ever touches canonical attribute names.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Self

from db import DocumentSnapshot, format_timestamp
from db.enums import QueueItemType, QueuePriority, QueueStatus
from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def _parse_timestamp(value: Any) -> Any:
    """Accept ISO strings, epoch seconds and exported ``{seconds, nanoseconds}`` maps."""
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return value
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=UTC)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime) and value.tzinfo is None:
        # Naive values are UTC.
        return value.replace(tzinfo=UTC)
    return value


Timestamp = Annotated[datetime | None, BeforeValidator(_parse_timestamp)]


def _spelled(*names: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(*names))


def to_store_value(value: Any) -> Any:
    """Render a python value the way the store keeps it."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_store_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_store_value(v) for v in value]
    return value


class StoreDocument(BaseModel):
    """Base for every decoded document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_spellings(cls, data: Any) -> Any:
        # A null spelling, or a zero numeric one, must not hide a populated later spelling.
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        for name, field in cls.model_fields.items():
            if field.annotation not in (int, float):
                continue
            present = [key for key in cls.spellings(name) if key in data]
            if len(present) > 1 and any(data[key] for key in present):
                for key in present:
                    if not data[key]:
                        del data[key]
        return data

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Self:
        return cls.model_validate({**snapshot.data, "id": snapshot.id})

    @classmethod
    def spellings(cls, name: str) -> tuple[str, ...]:
        """Every stored spelling of canonical field ``name``."""
        field = cls.model_fields.get(name)
        alias = field.validation_alias if field else None
        if isinstance(alias, AliasChoices):
            return tuple(choice for choice in alias.choices if isinstance(choice, str))
        return (name,)

    @classmethod
    def encode(cls, updates: dict[str, Any]) -> dict[str, Any]:
        """Expand canonical field names to every stored spelling."""
        encoded: dict[str, Any] = {}
        for name, value in updates.items():
            stored = to_store_value(value)
            for key in cls.spellings(name):
                encoded[key] = stored
        return encoded


class InvestmentRequest(StoreDocument):
    """A pending claim to buy land area in a plot."""

    user_id: str | None = _spelled("user_id", "userId")
    user_email: str | None = _spelled("user_email", "userEmail")
    user_name: str | None = _spelled("user_name", "userName")
    plot_id: str | None = _spelled("plot_id", "plotId")
    plot_name: str | None = _spelled("plot_name", "plotName")
    project_id: str | None = _spelled("project_id", "projectId")
    amount_paid: float = Field(
        default=0, validation_alias=AliasChoices("amount_paid", "Amount_paid", "totalAmount")
    )
    sqm_purchased: float = Field(default=0, validation_alias=AliasChoices("sqm_purchased", "sqm"))
    price_per_sqm: float = Field(
        default=0, validation_alias=AliasChoices("price_per_sqm", "pricePerSqm")
    )
    referral_code: str | None = _spelled("referral_code", "referralCode")
    referral_commission: float = Field(
        default=0, validation_alias=AliasChoices("referral_commission", "referralCommission")
    )
    # Kept as a plain string: upstream also writes values such as "pending_approval".
    status: str = "pending"
    identity_verified: bool = False
    payment_verified: bool = False
    documents_uploaded: bool = False
    verification_notes: str = ""
    created_at: Timestamp = _spelled("created_at", "createdAt")
    processed_at: Timestamp = _spelled("processed_at", "processedAt")
    processed_by: str | None = _spelled("processed_by", "processedBy")
    investment_id: str | None = _spelled("investment_id", "investmentId")


class Investment(StoreDocument):
    """Realized record of an approved request."""

    user_id: str | None = _spelled("user_id", "userId")
    plot_id: str | None = _spelled("plot_id", "plotId")
    project_id: str | None = _spelled("project_id", "projectId")
    amount_paid: float = Field(default=0, validation_alias=AliasChoices("amount_paid", "Amount_paid"))
    sqm_purchased: float = Field(default=0, validation_alias=AliasChoices("sqm_purchased", "sqm"))
    price_per_sqm: float = Field(
        default=0, validation_alias=AliasChoices("price_per_sqm", "pricePerSqm")
    )
    status: str = "active"
    investment_type: str = "plot_purchase"
    created_at: Timestamp = _spelled("created_at", "createdAt")
    approved_at: Timestamp = None
    approved_by: str | None = None
    completed_at: Timestamp = None
    completed_by: str | None = None
    referral_code: str | None = None
    referral_commission: float = 0
    source: str | None = None
    original_request_id: str | None = None


class Plot(StoreDocument):
    """Sellable land parcel."""

    name: str | None = None
    project_id: str | None = _spelled("project_id", "projectId")
    available_sqm: float = Field(
        default=0, validation_alias=AliasChoices("available_sqm", "availableSqm")
    )
    total_owners: int = Field(default=0, validation_alias=AliasChoices("Total_owners", "totalOwners"))
    last_updated: Timestamp = _spelled("last_updated", "lastUpdated")


class UserProfile(StoreDocument):
    """Investor profile aggregates touched by approvals and bulk user actions."""

    email: str | None = None
    status: str | None = None
    referral_code: str | None = None
    identity_verified: bool = False
    total_investment: float = Field(
        default=0, validation_alias=AliasChoices("total_investment", "totalInvestment")
    )
    portfolio_sqm: float = Field(
        default=0, validation_alias=AliasChoices("portfolio_sqm", "portfolioSqm")
    )
    wallet_balance: float = Field(
        default=0, validation_alias=AliasChoices("wallet_balance", "walletBalance")
    )
    total_investments: int = Field(
        default=0, validation_alias=AliasChoices("total_investments", "totalInvestments")
    )
    last_investment_date: Timestamp = _spelled("last_investment_date", "lastInvestmentDate")


class Project(StoreDocument):
    """Development project aggregates."""

    name: str | None = None
    total_revenue: float = Field(
        default=0, validation_alias=AliasChoices("total_revenue", "totalRevenue")
    )
    total_investors: int = Field(
        default=0, validation_alias=AliasChoices("total_investors", "totalInvestors")
    )
    last_investment_date: Timestamp = _spelled("last_investment_date", "lastInvestmentDate")


class Referral(StoreDocument):
    """Commission earned through a referral code on an approved investment."""

    referral_code: str
    investor_user_id: str | None = None
    referrer_id: str | None = None
    referrer_resolution: str = "pending"
    commission_amount: float = Field(
        default=0, validation_alias=AliasChoices("commission_amount", "commission")
    )
    investment_amount: float = 0
    status: str = "earned"
    type: str = "investment_commission"
    investment_id: str | None = None
    request_id: str | None = None
    created_at: Timestamp = None
    processed_at: Timestamp = None


class QueueItem(StoreDocument):
    """Administrative work-queue entry."""

    type: QueueItemType = QueueItemType.INVESTMENT
    priority: QueuePriority = QueuePriority.MEDIUM
    status: QueueStatus = QueueStatus.PENDING
    item_id: str | None = _spelled("item_id", "itemId")
    assigned_to: str | None = _spelled("assigned_to", "assignedTo")
    created_at: Timestamp = _spelled("created_at", "createdAt")
    started_at: Timestamp = _spelled("started_at", "startedAt")
    processed_at: Timestamp = _spelled("processed_at", "processedAt")
    metadata: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
