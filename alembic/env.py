"""
Alembic environment for the school database, SQLite or PostgreSQL.

- Async migrations (aiosqlite / asyncpg)
- Batch mode on SQLite, where ALTER TABLE is limited
- The URL comes from the application config (DB_URL or the SQLite default)
"""

import asyncio
from logging.config import fileConfig
from pathlib import Path
from sqlalchemy.engine import Connection, make_url
from alembic import context
from dotenv import load_dotenv

# Load environment variables from .env file before the app config reads them
load_dotenv()

from app.core.config import config as app_config  # noqa: E402
from app.core.db.base import Base  # noqa: E402
from app.core.db.engine import build_engine  # noqa: E402
from app.core.db import models  # noqa: E402,F401  registers every table on Base.metadata

# this is the Alembic Config object
config = context.config

db_url = app_config.database_url
config.set_main_option("sqlalchemy.url", db_url)

is_sqlite = db_url.startswith("sqlite")
if is_sqlite:
    database = make_url(db_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL without connecting, for review before applying."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    url = config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No database URL configured")

    # Same engine setup as the app, SQLite PRAGMAs included
    connectable = build_engine(url)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
