# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, get_store
from .documents import (
    DocumentSnapshot,
    FieldFilter,
    Order,
    format_timestamp,
    new_document_id,
)
from .enums import (
    Collection,
    InvestmentStatus,
    QueueItemType,
    QueuePriority,
    QueueStatus,
    ReferralStatus,
    RequestStatus,
    UserRole,
    UserStatus,
)
from .errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    StoreError,
    StoreUnavailableError,
    TransactionConflictError,
    TransactionUsageError,
)
from .memory import MemoryDocumentStore
from .models import DocumentRecord
from .store import DocumentStore, Transaction, WriteBatch

__all__ = [
    "Base",
    "get_store",
    "__version__",
    # Store
    "DocumentStore",
    "MemoryDocumentStore",
    "Transaction",
    "WriteBatch",
    "DocumentRecord",
    "DocumentSnapshot",
    "FieldFilter",
    "Order",
    "format_timestamp",
    "new_document_id",
    # Enums
    "Collection",
    "InvestmentStatus",
    "QueueItemType",
    "QueuePriority",
    "QueueStatus",
    "ReferralStatus",
    "RequestStatus",
    "UserRole",
    "UserStatus",
    # Errors
    "StoreError",
    "StoreUnavailableError",
    "DocumentNotFoundError",
    "DocumentExistsError",
    "TransactionConflictError",
    "TransactionUsageError",
]
