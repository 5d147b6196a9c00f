"""Alembic migration environment configuration (sync SQLAlchemy)."""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# Import Base first
from db.base import Base

# Import all models here so Alembic can detect them for autogenerate
# Auth models
from apps.api.auth.models import ActivityLog, User  # noqa: F401

# Clinical trial models
from db.models import (  # noqa: F401
    ExcelDataRow,
    ExcelFile,
    FormSubmission,
    PageMigrationLog,
    ShipmentAcknowledgment,
    Stage,
    Study,
    StudyDesign,
    StudyPhase,
    StudyType,
)

# this is the Alembic Config object
config = context.config

# Database URL: DATABASE_URL env var, then alembic.ini, then application settings
database_url = os.getenv("DATABASE_URL")
if database_url:
    config.set_main_option("sqlalchemy.url", database_url)
elif not config.get_main_option("sqlalchemy.url"):
    from apps.api.config import get_settings

    config.set_main_option("sqlalchemy.url", get_settings().database_url)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL without a connection."""
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
    """Run migrations in 'online' mode (sync)."""
    connectable = create_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
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
