import asyncio
import sys
from logging.config import fileConfig

# asyncpg is incompatible with ProactorEventLoop (Windows default in Python 3.8+).
# Switch to SelectorEventLoop so that asyncpg connections work correctly.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from alembic import context

# Import Base and models so Alembic can detect table metadata
from portal.core.config import settings
from portal.core.database import Base, make_engine
import portal.models.db_models  # noqa: F401 (registers ORM models with Base.metadata)

# Alembic Config object
config = context.config

# Override sqlalchemy.url with the value from our Settings
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations without a live database connection (generates SQL script)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    # SQLite can only alter tables by copying them.
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Create an async engine and run migrations through a sync connection."""
    kwargs = {}
    if settings.DATABASE_URL.startswith("postgresql"):
        # Docker-hosted PostgreSQL has no SSL configured by default.
        kwargs["connect_args"] = {"ssl": False}
    engine = make_engine(settings.DATABASE_URL, **kwargs)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
