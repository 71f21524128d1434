# Nombre de archivo: errors.py
# Ubicación de archivo: api/app/errors.py
# Descripción: Conversión de errores a la respuesta {success: false, error, code}

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import DespachoError, StorageFailure, describir_errores

logger = logging.getLogger("despachos.api")


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, "code": code})


async def _despacho_error(request: Request, exc: DespachoError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(
            "action=request_failed path=%s error=%s", request.url.path, exc.message, exc_info=exc
        )
    else:
        logger.info(
            "action=request_rejected path=%s code=%s error=%s", request.url.path, exc.code, exc.message
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_json())


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    mensaje = describir_errores(exc.errors())
    logger.info("action=request_rejected path=%s code=VALIDATION_ERROR error=%s", request.url.path, mensaje)
    return error_response(400, mensaje, "VALIDATION_ERROR")


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    mensaje = exc.detail if isinstance(exc.detail, str) else "Error en la solicitud"
    return error_response(exc.status_code, mensaje, "HTTP_ERROR")


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("action=request_failed path=%s error=%s", request.url.path, exc)
    return error_response(500, "Error interno del servidor", "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DespachoError, _despacho_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected_error)


__all__ = ["error_response", "register_exception_handlers"]
