"""Alembic environment for the policy knowledge base.

The target database comes from ``policy_rag`` settings (``DATABASE_URL`` or
the ``POSTGRES_*`` parts); the asyncpg URL is rewritten to psycopg because
migrations run synchronously. ``Base.metadata`` covers the ``resources`` and
``embeddings`` tables; the pgvector extension itself is created by the
initial revision.
"""

from logging.config import fileConfig

from pgvector.sqlalchemy import Vector
from sqlalchemy import create_engine, pool

from alembic import context
from policy_rag.core.config import get_settings
from policy_rag.db.models import Base

# Alembic Config object
config = context.config

settings = get_settings()

# Convert async URL to sync for Alembic
# postgresql+asyncpg:// -> postgresql+psycopg://
sync_url = settings.get_database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://")
config.set_main_option("sqlalchemy.url", sync_url)

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Autogenerate compares against the policy_rag models
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the resources/embeddings DDL as SQL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations to the configured PostgreSQL database."""
    connectable = create_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        # Reflect existing vector columns as pgvector types during autogenerate
        connection.dialect.ischema_names["vector"] = Vector

        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
