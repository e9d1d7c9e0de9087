"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local .env file).
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from policy_rag.rag.embedder import EmbeddingConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================
    # Application
    # ============================================
    app_name: str = "Policy RAG Assistant"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # ============================================
    # Database (PostgreSQL + pgvector)
    # ============================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "policy_rag"

    # Explicit DATABASE_URL takes precedence if set
    database_url: str | None = None

    @property
    def get_database_url(self) -> str:
        """Get database URL - explicit or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # ============================================
    # Embeddings (OpenAI)
    # ============================================
    openai_api_key: str = ""
    openai_base_url: str | None = None
    embedding_model: str = Field(
        default="text-embedding-ada-002", description="OpenAI embedding model name"
    )
    embedding_dimensions: int = Field(
        default=1536, description="Embedding vector dimensions (must match model)"
    )
    embedding_batch_size: int = 100
    embedding_timeout_seconds: float = 120.0

    # ============================================
    # Chunking
    # ============================================
    chunk_max_chars: int = 1000
    chunk_min_chars: int = 100

    # ============================================
    # Retrieval
    # ============================================
    retrieval_similarity_threshold: float = 0.3
    retrieval_limit: int = 8

    # ============================================
    # Document parsing (LlamaParse)
    # ============================================
    llama_cloud_api_key: str = ""
    llama_parse_base_url: str = "https://api.cloud.llamaindex.ai/api/v1"
    parse_poll_interval_seconds: float = 5.0
    parse_max_attempts: int = 60

    # Default timeout applied to ingest/retrieve calls (None = no timeout)
    operation_timeout_seconds: float | None = None

    def embedding_config(self) -> "EmbeddingConfig":
        """Build the explicit embedding configuration for the embedder factory."""
        from policy_rag.rag.embedder import EmbeddingConfig

        return EmbeddingConfig(
            model=self.embedding_model,
            dimensions=self.embedding_dimensions,
            batch_size=self.embedding_batch_size,
            api_key=self.openai_api_key,
            base_url=self.openai_base_url,
            timeout_seconds=self.embedding_timeout_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
