# Nombre de archivo: health.py
# Ubicación de archivo: api/app/routes/health.py
# Descripción: Endpoints de health y verificación de DB

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from api.app.context import AppContext
from api.app.deps import get_context

logger = logging.getLogger("despachos.api")

router = APIRouter(tags=["health"])


def db_health(engine: Engine) -> dict[str, Any]:
    """Realiza un SELECT 1 y devuelve info básica."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            server_version = conn.exec_driver_sql("SELECT sqlite_version()").scalar()
    except SQLAlchemyError as exc:
        logger.warning("action=db_health status=error error=%s", exc)
        return {"db": "error", "detail": str(exc)}
    return {"db": "ok", "server_version": server_version}


@router.get("/health")
async def health(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {
        "status": "ok",
        "service": ctx.settings.service_name,
        "timestamp": ctx.politica.serializar(ctx.politica.ahora()),
        "sessions": ctx.broadcaster.sesiones_activas,
    }


@router.get("/db-check")
async def db_check(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    resultado = await asyncio.to_thread(db_health, ctx.engine)
    return {"success": resultado["db"] == "ok", **resultado}
