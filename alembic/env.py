import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

# Ensure the project root is in the Python path
sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from bloodnet.config import settings
from bloodnet.db.base import Base
from bloodnet.models import City, Hospital, BloodBank, BloodInventory, BloodRequest  # noqa

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
target_metadata = Base.metadata

db_url = settings.DATABASE_URL or config.get_main_option("sqlalchemy.url")

# Ensure async format for PostgreSQL
if db_url.startswith("postgresql://"):
    db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

IS_SQLITE = db_url.startswith("sqlite")

engine_options = {}
if not IS_SQLITE:
    engine_options = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "connect_args": {
            "server_settings": {"application_name": "alembic_migration"},
            "command_timeout": 60,
        },
    }


def do_run_migrations(sync_connection):
    context.configure(
        connection=sync_connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations():
    """Run migrations in 'online' mode using async engine."""
    connectable = create_async_engine(db_url, **engine_options)

    try:
        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    offline_url = db_url.replace("+asyncpg", "").replace("+aiosqlite", "")

    context.configure(
        url=offline_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
