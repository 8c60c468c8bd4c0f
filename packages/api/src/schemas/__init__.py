# This project was developed with assistance from AI tools.
"""Shared schema components."""

from pydantic import BaseModel


class Pagination(BaseModel):
    """List metadata. Admin lists are capped reads, not offset pages."""

    total: int
    offset: int = 0
    limit: int
    has_more: bool = False

    @classmethod
    def capped(cls, returned: int, limit: int) -> "Pagination":
        """Metadata for a list read with ``limit``; a full page may have more."""
        return cls(total=returned, limit=limit, has_more=returned >= limit)
