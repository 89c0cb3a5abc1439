"""
Alembic environment for the postcode lookup schema.

Tables under migration control:
  • profiles               (0001) account, hashed API key, daily quota,
                                  allowed domains, admin flag
  • api_usage              (0002) append-only lookup log, FK → profiles
  • residential_addresses  (0003) address book merged into search results

The URL is read from postcode_api.core.config.settings, so `alembic`
and the app always agree on DATABASE_URL. Migrations run through the
async engine; on SQLite (local dev) they use batch mode so ALTERs work.
"""

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from postcode_api.core.config import settings
from postcode_api.core.database import Base

# Every model module must be imported for Base.metadata to see its table
import postcode_api.models.address  # noqa: F401
import postcode_api.models.profile  # noqa: F401
import postcode_api.models.usage  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _context_options(url: str) -> dict[str, Any]:
    """Options shared by offline and online runs."""
    return {
        "target_metadata": target_metadata,
        # Catch String(64) → String(128) style changes on autogenerate
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


# ── Offline: emit SQL to stdout ─────────────────────────────
def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


# ── Online: run against the live database ───────────────────
def _migrate(connection: Connection) -> None:
    context.configure(
        connection=connection,
        **_context_options(settings.DATABASE_URL),
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
