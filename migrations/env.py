"""
Alembic environment configuration for the HKI dashboard.

The database URL comes from the application settings (``DATABASE_URL`` or
``.env``); migrations run over the synchronous driver.
"""

from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

# Load environment variables from .env before the settings are built
load_dotenv(Path(__file__).parent.parent / ".env")

from hkidash.core.config import settings  # noqa: E402
from hkidash.db.base import Base  # noqa: E402
import hkidash.models  # noqa: E402,F401  registers every table on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

SYNC_DATABASE_URL = settings.sync_database_url
config.set_main_option("sqlalchemy.url", SYNC_DATABASE_URL)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=SYNC_DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations online."""
    engine = create_engine(SYNC_DATABASE_URL, poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
