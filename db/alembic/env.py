# Nombre de archivo: env.py
# Ubicación de archivo: db/alembic/env.py
# Descripción: Script de arranque para ejecutar migraciones Alembic del almacén de despachos

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
import db.models  # noqa: F401  registra las tablas en la metadata

config = context.config
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

section = config.get_section(config.config_ini_section)
if section is None:
    section = {}
url_override = os.getenv("DESPACHOS_DATABASE_URL")
if not section.get("sqlalchemy.url"):
    if url_override:
        section["sqlalchemy.url"] = url_override
    else:
        from core.config import get_settings

        section["sqlalchemy.url"] = get_settings().resolved_database_url

config.set_section_option(config.config_ini_section, "sqlalchemy.url", section["sqlalchemy.url"])

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
