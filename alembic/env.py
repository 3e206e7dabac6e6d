from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context

from db.base import Base
from db.config import load_env_files, normalize_database_url, resolve_database_url
from db.models import (  # noqa: F401  imports trigger Base.metadata registration
    Parent,
    SchoolClass,
    Student,
    Subject,
    Teacher,
    UserAccount,
)
from db.session import create_db_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    """
    First of: ``-x db_url=...``, ALEMBIC_DATABASE_URL, ``sqlalchemy.url`` in
    alembic.ini, then the application's DATABASE_URL.
    """

    load_env_files()
    overrides = (
        context.get_x_argument(as_dictionary=True).get("db_url"),
        os.getenv("ALEMBIC_DATABASE_URL"),
        config.get_main_option("sqlalchemy.url"),
    )
    for candidate in overrides:
        if candidate and candidate.strip():
            return normalize_database_url(candidate)
    return resolve_database_url()


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_db_engine(_migration_url(), pooled=False)
    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER most constraints in place.
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                render_as_batch=connection.dialect.name == "sqlite",
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
