# Nombre de archivo: auth.py
# Ubicación de archivo: api/app/routes/auth.py
# Descripción: Login y logout de usuarios (sin tokens de sesión)

from typing import Any

from fastapi import APIRouter, Depends

from api.app.context import AppContext
from api.app.deps import get_context
from core.usuarios.schemas import LoginRequest

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(datos: LoginRequest, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    usuario = await ctx.auth.login(datos.username, datos.password)
    return {
        "success": True,
        "data": {
            "user": {
                "id": usuario.id,
                "username": usuario.username,
                "name": usuario.nombre,
                "role": usuario.role.value,
            },
            "remember": datos.remember,
        },
    }


@router.post("/logout")
async def logout() -> dict[str, Any]:
    return {"success": True, "message": "Sesión cerrada correctamente"}
