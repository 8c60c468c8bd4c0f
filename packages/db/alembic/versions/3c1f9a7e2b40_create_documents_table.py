# This project was developed with assistance from AI tools.
"""create documents table

Revision ID: 3c1f9a7e2b40
Revises:
Create Date: 2026-10-12 09:41:27.402118

"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "3c1f9a7e2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(64), nullable=False),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("collection", "id"),
    )
    # Status sweeps and the queue dedup check filter on these.
    op.create_index(
        "ix_documents_collection_status",
        "documents",
        ["collection", sa.text("(data ->> 'status')")],
    )
    op.create_index(
        "ix_documents_queue_item",
        "documents",
        ["collection", sa.text("(data ->> 'itemId')")],
        postgresql_where=sa.text("collection = 'admin_queue'"),
    )


def downgrade() -> None:
    op.drop_index("ix_documents_queue_item", table_name="documents")
    op.drop_index("ix_documents_collection_status", table_name="documents")
    op.drop_table("documents")
