# Nombre de archivo: context.py
# Ubicación de archivo: api/app/context.py
# Descripción: Contexto de aplicación (engine, almacenes, servicios y difusor) creado una sola vez

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.auth import AuthService, BcryptCredentialVerifier
from core.config import Settings, get_settings
from core.despachos.broadcast import Broadcaster
from core.despachos.search import SqlDespachoSearch
from core.despachos.service import DespachoService
from core.despachos.storage import DatabaseDespachoStorage
from core.usuarios.service import UsuarioService
from core.usuarios.storage import DatabaseUsuarioStorage
from core.utils.fechas import PoliticaFecha
from db.init import init_db
from db.session import create_db_engine, create_session_factory


@dataclass(slots=True)
class AppContext:
    settings: Settings
    logger: logging.Logger
    engine: Engine
    session_factory: sessionmaker[Session]
    politica: PoliticaFecha
    broadcaster: Broadcaster
    despachos: DespachoService
    usuarios: UsuarioService
    auth: AuthService

    def close(self) -> None:
        self.engine.dispose()


def build_context(settings: Settings | None = None, *, logger: logging.Logger | None = None) -> AppContext:
    """Arma todas las dependencias del servidor y prepara la base (tablas + semillas)."""

    settings = settings or get_settings()
    logger = logger or logging.getLogger(settings.service_name)
    politica = PoliticaFecha.desde_settings(settings)

    engine = create_db_engine(settings.resolved_database_url)
    session_factory = create_session_factory(engine)
    init_db(
        engine,
        session_factory,
        seed_password=settings.resolved_seed_password,
        bcrypt_rounds=settings.bcrypt_rounds,
        now=politica.ahora(),
    )

    broadcaster = Broadcaster(queue_size=settings.ws_queue_size, logger=logger.getChild("broadcast"))
    usuarios_storage = DatabaseUsuarioStorage(session_factory)
    despachos = DespachoService(
        DatabaseDespachoStorage(session_factory),
        usuarios_storage,
        SqlDespachoSearch(session_factory, politica),
        broadcaster,
        politica,
        logger=logger.getChild("despachos"),
    )
    usuarios = UsuarioService(
        usuarios_storage,
        politica,
        bcrypt_rounds=settings.bcrypt_rounds,
        logger=logger.getChild("usuarios"),
    )
    auth = AuthService(
        usuarios_storage,
        BcryptCredentialVerifier(settings.resolved_fallback_password, logger=logger.getChild("auth")),
        politica,
        auto_provision=settings.auto_provision_users,
        bcrypt_rounds=settings.bcrypt_rounds,
        logger=logger.getChild("auth"),
    )
    logger.info(
        "action=build_context database=%s timezone_mode=%s fallback_password=%s auto_provision=%s",
        engine.url.render_as_string(hide_password=True),
        politica.modo.value,
        settings.allow_fallback_password,
        settings.auto_provision_users,
    )
    return AppContext(
        settings=settings,
        logger=logger,
        engine=engine,
        session_factory=session_factory,
        politica=politica,
        broadcaster=broadcaster,
        despachos=despachos,
        usuarios=usuarios,
        auth=auth,
    )


__all__ = ["AppContext", "build_context"]
