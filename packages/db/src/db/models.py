# This project was developed with assistance from AI tools.
"""
Document storage table.

Every collection lives in one table keyed by ``(collection, id)``; the
document body is a JSONB object and ``version`` increments on every write
so transactions can detect concurrent modification.
"""

from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB

from .database import Base


class DocumentRecord(Base):
    """One document in one collection."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSONB, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DocumentRecord(collection='{self.collection}', id='{self.id}', version={self.version})>"
