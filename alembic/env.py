"""Alembic environment for the DentaCare schema.

The database URL is taken from, in order:
    alembic -x db_url=postgresql://... upgrade head
    ALEMBIC_DATABASE_URL or DATABASE_URL
    the application settings (.env)

Async driver URLs are rewritten to their sync equivalents; migrations
always run on a plain psycopg2 / sqlite connection.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.dentacare import models  # noqa: E402, F401  (registers every table)
from src.dentacare.db.session import Base  # noqa: E402

SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("db_url")
    url = url or os.environ.get("ALEMBIC_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if not url:
        from src.dentacare.core.config import get_settings

        url = get_settings().DATABASE_URL

    parsed = make_url(url)
    driver = SYNC_DRIVERS.get(parsed.drivername)
    return parsed.set(drivername=driver).render_as_string(hide_password=False) if driver else url


def run_migrations_offline() -> None:
    """Emit SQL to stdout (`alembic upgrade head --sql`) for DBA review."""
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
