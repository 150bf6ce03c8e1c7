"""
Alembic environment configuration for the Site Index.

Migrations run synchronously through psycopg2; the application itself uses
asyncpg.
"""

from logging.config import fileConfig
import os
import sys

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection
from alembic import context
from dotenv import load_dotenv, find_dotenv

# Make the siteindex package importable when running from backend/
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from siteindex.models import Base  # noqa: E402

config = context.config

load_dotenv(
    find_dotenv() or os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
)

database_url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
if not database_url:
    raise ValueError(
        "DATABASE_URL environment variable or sqlalchemy.url in alembic.ini is required but not set"
    )

# Use the sync driver for migrations
database_url = database_url.replace("postgresql+asyncpg://", "postgresql://")
config.set_main_option("sqlalchemy.url", database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live database connection."""
    connectable = create_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )

    try:
        with connectable.connect() as connection:
            do_run_migrations(connection)
    except Exception as e:
        raise RuntimeError(f"Migration failed: {str(e)}") from e
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
