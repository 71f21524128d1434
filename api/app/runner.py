# Nombre de archivo: runner.py
# Ubicación de archivo: api/app/runner.py
# Descripción: Arranque del servidor de despachos (logging, bind del puerto y Uvicorn)

"""Motor de arranque del servidor de despachos.

El puerto se reserva antes de preparar la base: si no se puede escuchar, el
proceso informa el motivo y termina con código 1.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import sys

import uvicorn

from api.app.context import build_context
from api.app.main import create_app
from core.config import Settings, get_settings
from core.logging import setup_logging

LOGGER = logging.getLogger(__name__)


def bind_socket(host: str, port: int) -> socket.socket:
    """Abre el socket de escucha; lanza ``OSError`` si el puerto no está disponible."""

    familia = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(familia, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


async def serve(settings: Settings, sock: socket.socket) -> None:
    logger = logging.getLogger(settings.service_name)
    app = create_app(build_context(settings, logger=logger))
    config = uvicorn.Config(
        app,
        log_level=settings.log_level.lower(),
        ws="auto",
    )
    server = uvicorn.Server(config=config)
    await server.serve(sockets=[sock])


def main() -> None:
    settings = get_settings()
    setup_logging(settings.service_name, settings.log_level, enable_file=settings.log_to_file)
    try:
        sock = bind_socket(settings.host, settings.port)
    except OSError as exc:
        LOGGER.error("action=startup status=bind_failed host=%s port=%s error=%s", settings.host, settings.port, exc)
        sys.exit(1)
    LOGGER.info("action=startup status=listening host=%s port=%s", settings.host, settings.port)
    try:
        asyncio.run(serve(settings, sock))
    except Exception as exc:  # pragma: no cover - rutas críticas de arranque
        LOGGER.error("action=startup status=failed error=%s", exc)
        sys.exit(1)
    finally:
        sock.close()


if __name__ == "__main__":
    main()
