"""Relational persistence for resources and their chunk embeddings."""

from policy_rag.db.models import Base, Embedding, Resource
from policy_rag.db.repository import EmbeddingRecord, ResourceStore, SimilarChunk

__all__ = [
    "Base",
    "Embedding",
    "EmbeddingRecord",
    "Resource",
    "ResourceStore",
    "SimilarChunk",
]
