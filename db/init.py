# Nombre de archivo: init.py
# Ubicación de archivo: db/init.py
# Descripción: Creación de tablas y cuentas semilla del almacén de despachos

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from core.auth import hash_password
from db.base import Base
from db.models import Usuario

logger = logging.getLogger(__name__)

# (username, nombre, role)
USUARIOS_SEMILLA = (
    ("supervisor", "Supervisor Principal", "supervisor"),
    ("despachador", "Despachador Principal", "dispatcher"),
)


def init_db(
    engine: Engine,
    session_factory: sessionmaker[Session],
    *,
    seed_password: str,
    bcrypt_rounds: int = 12,
    now: datetime | None = None,
) -> int:
    """Crea las tablas si no existen y carga las cuentas semilla en una base vacía.

    Returns:
        Cantidad de usuarios semilla creados (0 si la tabla ya tenía datos).
    """

    Base.metadata.create_all(engine)
    with session_factory() as session:
        existentes = session.scalar(select(func.count()).select_from(Usuario)) or 0
        if existentes:
            logger.debug("action=init_db seed=skip usuarios=%s", existentes)
            return 0
        marca = now or datetime.now()
        password_hash = hash_password(seed_password, rounds=bcrypt_rounds)
        for username, nombre, role in USUARIOS_SEMILLA:
            session.add(
                Usuario(
                    username=username,
                    nombre=nombre,
                    role=role,
                    password_hash=password_hash,
                    is_active=True,
                    created_at=marca,
                )
            )
        session.commit()
    logger.info("action=init_db seed=created usuarios=%s", len(USUARIOS_SEMILLA))
    return len(USUARIOS_SEMILLA)


__all__ = ["USUARIOS_SEMILLA", "init_db"]
