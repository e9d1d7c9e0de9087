"""Create resources and embeddings tables

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "20261019_0900"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Enable pgvector and create the knowledge base tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "resources",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source_file", sa.String(500), nullable=True),
        sa.Column("policy_number", sa.String(50), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_resources_policy_number", "resources", ["policy_number"])

    op.create_table(
        "embeddings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "resource_id",
            sa.String(36),
            sa.ForeignKey("resources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("vector", Vector(), nullable=False),
    )
    op.create_index("ix_embeddings_resource_id", "embeddings", ["resource_id"])


def downgrade() -> None:
    """Drop the knowledge base tables."""
    op.drop_index("ix_embeddings_resource_id", table_name="embeddings")
    op.drop_table("embeddings")
    op.drop_index("ix_resources_policy_number", table_name="resources")
    op.drop_table("resources")
