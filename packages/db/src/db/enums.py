# This project was developed with assistance from AI tools.
"""
Domain enums for the investment administration lifecycle.

Shared domain types used by both the document store (db package)
and Pydantic schemas (api package).
"""

import enum


class Collection(str, enum.Enum):
    INVESTMENT_REQUESTS = "investment_requests"
    INVESTMENTS = "investments"
    PLOTS = "plots"
    USER_PROFILES = "user_profiles"
    PROJECTS = "projects"
    REFERRALS = "referrals"
    ADMIN_QUEUE = "admin_queue"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class InvestmentStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    EARNED = "earned"
    PAID = "paid"
    CANCELLED = "cancelled"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class QueueItemType(str, enum.Enum):
    INVESTMENT = "investment"
    VERIFICATION = "verification"
    WITHDRAWAL = "withdrawal"
    USER_MANAGEMENT = "user_management"


class QueuePriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank -- lower is more urgent."""
        return {QueuePriority.HIGH: 0, QueuePriority.MEDIUM: 1, QueuePriority.LOW: 2}[self]


class QueueStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def active_statuses(cls) -> frozenset["QueueStatus"]:
        """Statuses that mean a queue entry still owns its work item."""
        return frozenset({cls.PENDING, cls.PROCESSING})


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SUB_ADMIN = "sub_admin"
