# Nombre de archivo: middlewares.py
# Ubicación de archivo: core/middlewares.py
# Descripción: Correlación de solicitudes del servidor de despachos (X-Request-ID en logs y respuestas)

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from core.logging import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"

# El cliente de escritorio envía su propio id para correlacionar reintentos
_REQUEST_ID_VALIDO = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def request_id_de(valor: str | None) -> str:
    """Reutiliza el id recibido si es seguro para logs; si no, genera uno nuevo."""

    if valor and _REQUEST_ID_VALIDO.match(valor):
        return valor
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        request_id = request_id_de(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = ["REQUEST_ID_HEADER", "RequestIDMiddleware", "request_id_de"]
