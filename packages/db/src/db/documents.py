# This project was developed with assistance from AI tools.
"""Value types shared by every document store backend.

Documents are flat JSON objects addressed by ``(collection, id)``. Queries
are expressed with :class:`FieldFilter` and :class:`Order`, which each
backend translates into its own form.
"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in"]

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20

# Fixed-width UTC rendering keeps string order equal to chronological order.
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def new_document_id() -> str:
    """Generate a random 20-character document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a store timestamp string (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class FieldFilter:
    """A single ``field <op> value`` predicate.

    ``FieldFilter(name, "!=", None)`` matches documents where the field is
    present and not null.
    """

    field: str
    op: FilterOp
    value: Any = None


@dataclass(frozen=True)
class Order:
    """Sort key for a query. Documents missing the field sort last."""

    field: str
    descending: bool = False
    numeric: bool = False


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document as read from the store, with the version it was read at."""

    collection: str
    id: str
    data: dict[str, Any] = field(default_factory=dict)
    version: int = 0


@dataclass(frozen=True)
class WriteOp:
    """A buffered write, applied by a batch or transaction commit."""

    kind: Literal["create", "set", "update"]
    collection: str
    doc_id: str
    data: dict[str, Any]
