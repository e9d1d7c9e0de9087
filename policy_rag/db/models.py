"""SQLAlchemy database models.

Two tables back the knowledge base: ``resources`` (one row per ingested
document or fact) and ``embeddings`` (one row per chunk vector).
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Resource(Base):
    """A document or fact contributed to the knowledge base.

    Content is immutable once written; corrections are new resources.
    """
    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Provenance for citations (absent for inline user-supplied facts)
    source_file: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    policy_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    embeddings = relationship(
        "Embedding",
        back_populates="resource",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_resources_policy_number", "policy_number"),
    )


class Embedding(Base):
    """A chunk of resource text paired with its embedding vector."""
    __tablename__ = "embeddings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    resource_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Dimensionality is fixed by the embedding model; enforced by ResourceStore
    vector = mapped_column(Vector(), nullable=False)

    # Relationships
    resource = relationship("Resource", back_populates="embeddings")

    __table_args__ = (
        Index("ix_embeddings_resource_id", "resource_id"),
    )
