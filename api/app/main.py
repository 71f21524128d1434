# Nombre de archivo: main.py
# Ubicación de archivo: api/app/main.py
# Descripción: Aplicación FastAPI principal (REST de despachos, usuarios, auth y WebSocket)

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.app.context import AppContext, build_context
from api.app.errors import register_exception_handlers
from api.app.routes.auth import router as auth_router
from api.app.routes.despachos import router as despachos_router
from api.app.routes.health import router as health_router
from api.app.routes.usuarios import router as usuarios_router
from api.app.routes.ws import router as ws_router
from core.config import Settings
from core.middlewares import REQUEST_ID_HEADER, RequestIDMiddleware


def create_app(context: AppContext | None = None, *, settings: Settings | None = None) -> FastAPI:
    """Crea la aplicación; el contexto se arma una sola vez y vive en ``app.state``."""

    ctx = context or build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx.logger.info("action=startup host=%s port=%s", ctx.settings.host, ctx.settings.port)
        yield
        ctx.logger.info("action=shutdown sesiones=%s", ctx.broadcaster.sesiones_activas)
        ctx.close()

    app = FastAPI(title="Despachos API", version="1.0.0", lifespan=lifespan)
    app.state.context = ctx
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.settings.origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(despachos_router)
    app.include_router(usuarios_router)
    app.include_router(ws_router)
    return app


__all__ = ["create_app"]
