"""
Alembic migration environment for the reservation schema.
Runs offline (SQL script) or online against DATABASE_URL_SYNC; `-x url=...`
overrides the target database.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from chargeshare.db.base import Base
from chargeshare.models import Account, Charger, Booking, BookingRequest  # noqa: F401 - Import models for autogenerate
from chargeshare.core.config import get_settings

config = context.config
settings = get_settings()

url = context.get_x_argument(as_dictionary=True).get("url", settings.DATABASE_URL_SYNC)
config.set_main_option("sqlalchemy.url", url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options(dialect_name: str) -> dict:
    # SQLite cannot ALTER constraints in place.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Generate SQL script without connecting to the database."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url.split(":", 1)[0]),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live database connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(connection.dialect.name))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
