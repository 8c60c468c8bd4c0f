# This project was developed with assistance from AI tools.
"""Schemas for the investment approval workflow."""

import enum

from pydantic import BaseModel, Field, computed_field


class SideEffect(str, enum.Enum):
    """One of the writes an approval performs."""

    REQUEST_STATUS = "request_status"
    INVESTMENT_RECORD = "investment_record"
    PLOT_INVENTORY = "plot_inventory"
    USER_PORTFOLIO = "user_portfolio"
    REFERRAL_COMMISSION = "referral_commission"
    PROJECT_STATISTICS = "project_statistics"


class ApprovalError(str, enum.Enum):
    VERIFICATION_REQUIRED = "verification_required"
    NOT_FOUND = "not_found"
    TRANSACTION_FAILED = "transaction_failed"
    INVALID_STATUS = "invalid_status"


class ApprovalInput(BaseModel):
    """Everything needed to approve one investment request.

    Verification flags left as None fall back to the flags stored on the
    request document.
    """

    request_id: str
    user_id: str
    plot_id: str
    project_id: str
    amount_paid: float = Field(ge=0)
    sqm_purchased: float = Field(ge=0)
    price_per_sqm: float = Field(default=0, ge=0)
    referral_code: str | None = None
    referral_commission: float = Field(default=0, ge=0)
    admin_id: str
    identity_verified: bool | None = None
    payment_verified: bool | None = None
    verification_notes: str = ""


class ApprovalResult(BaseModel):
    """Outcome of an approval, listing which related updates were applied."""

    success: bool
    message: str
    request_id: str
    investment_id: str | None = None
    applied: list[SideEffect] = Field(default_factory=list)
    skipped: list[SideEffect] = Field(default_factory=list)
    error: ApprovalError | None = None

    @computed_field
    @property
    def fully_consistent(self) -> bool:
        """True when the approval succeeded and no related update was skipped."""
        return self.success and not self.skipped


class ActionResult(BaseModel):
    """Outcome of a single non-approval transition."""

    success: bool
    message: str
    error: ApprovalError | None = None


class DocumentStatus(BaseModel):
    """Verification readiness of one request."""

    documents_uploaded: bool
    identity_verified: bool
    payment_verified: bool
    ready_for_approval: bool


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class ApproveRequestBody(BaseModel):
    """Body for POST /investment-requests/{id}/approve."""

    user_id: str
    plot_id: str
    project_id: str
    amount_paid: float = Field(ge=0)
    sqm_purchased: float = Field(ge=0)
    price_per_sqm: float = Field(default=0, ge=0)
    referral_code: str | None = None
    referral_commission: float = Field(default=0, ge=0)
    identity_verified: bool | None = None
    payment_verified: bool | None = None
    verification_notes: str = ""


class RejectRequestBody(BaseModel):
    reason: str | None = None


class CompleteInvestmentBody(BaseModel):
    investment_id: str


class VerifyDocumentsBody(BaseModel):
    identity_verified: bool
    payment_verified: bool
    verification_notes: str = ""
