# Nombre de archivo: deps.py
# Ubicación de archivo: api/app/deps.py
# Descripción: Dependencias FastAPI para acceder al contexto de la aplicación

from fastapi import Request
from starlette.requests import HTTPConnection

from api.app.context import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def context_from_connection(conn: HTTPConnection) -> AppContext:
    """Variante para WebSocket (no recibe ``Request``)."""

    return conn.app.state.context


__all__ = ["context_from_connection", "get_context"]
