import os
import sys
from logging.config import fileConfig
from sqlalchemy import engine_from_config, make_url, pool
from alembic import context

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from app.models.base import Base
from app.models import PONumberSequence, Product, ProductBatch, PurchaseOrder, PurchaseOrderItem, Supplier  # noqa: F401
from app.core.config import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def get_sync_url() -> str:
    """alembic.ini wins; otherwise the application URL with its async driver swapped for the sync default"""
    configured = config.get_main_option("sqlalchemy.url")
    if configured:
        return configured
    url = make_url(settings.DATABASE_URL)
    if url.drivername in ("postgresql+asyncpg", "sqlite+aiosqlite"):
        url = url.set(drivername=url.drivername.split("+")[0])
    return url.render_as_string(hide_password=False)

def configure_context(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=get_sync_url().startswith("sqlite"),
        **kwargs,
    )

def run_migrations_offline() -> None:
    """Emit SQL for the target revision without a live connection"""
    configure_context(url=get_sync_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    if settings.ENVIRONMENT.lower() == "production" and "downgrade" in sys.argv:
        raise RuntimeError("🚫 Downgrades are blocked in production!")

    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = get_sync_url()
    print("🔍 Alembic is using DB URL:", make_url(section["sqlalchemy.url"]).render_as_string(hide_password=True))

    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        configure_context(connection=connection)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
