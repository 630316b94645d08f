"""Alembic environment — every signal-desk table lives in one schema.

The database URL comes from ``alembic -x url=...`` when given, otherwise from
the app config (``config.yaml`` plus ``SIGNAL_DESK_DATABASE_URL``), so
migrations and the API always target the same database.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text

from signal_desk.config import config_path, load_config
from signal_desk.db import Base, psycopg_url
from signal_desk.db.tables.signals import SCHEMA

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)


def database_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("url")
    return psycopg_url(url or load_config(config_path()).database.url)


def owned_by_signal_desk(obj, name, type_, reflected, compare_to) -> bool:
    return type_ != "table" or obj.schema == SCHEMA


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        include_schemas=True,
        include_object=owned_by_signal_desk,
        version_table_schema=SCHEMA,
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
        connection.commit()
        _configure(connection=connection)
