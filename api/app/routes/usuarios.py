# Nombre de archivo: usuarios.py
# Ubicación de archivo: api/app/routes/usuarios.py
# Descripción: Endpoints REST de usuarios (la baja es lógica)

from typing import Any

from fastapi import APIRouter, Depends, status

from api.app.context import AppContext
from api.app.deps import get_context
from core.usuarios.schemas import UsuarioActualizar, UsuarioCrear, serializar_usuario

router = APIRouter(prefix="/users", tags=["usuarios"])


@router.get("")
async def listar_usuarios(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    usuarios = await ctx.usuarios.listar()
    data = [serializar_usuario(u, ctx.politica) for u in usuarios]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/role/{role}")
async def usuarios_por_rol(role: str, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    usuarios = await ctx.usuarios.por_rol(role)
    data = [serializar_usuario(u, ctx.politica) for u in usuarios]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/{usuario_id}")
async def obtener_usuario(usuario_id: int, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    usuario = await ctx.usuarios.obtener(usuario_id)
    return {"success": True, "data": serializar_usuario(usuario, ctx.politica)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def crear_usuario(datos: UsuarioCrear, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    usuario = await ctx.usuarios.crear(datos)
    return {
        "success": True,
        "data": serializar_usuario(usuario, ctx.politica),
        "message": "Usuario creado correctamente",
    }


@router.put("/{usuario_id}")
async def actualizar_usuario(
    usuario_id: int, datos: UsuarioActualizar, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    usuario = await ctx.usuarios.actualizar(usuario_id, datos)
    return {
        "success": True,
        "data": serializar_usuario(usuario, ctx.politica),
        "message": "Usuario actualizado correctamente",
    }


@router.delete("/{usuario_id}")
async def desactivar_usuario(usuario_id: int, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    await ctx.usuarios.desactivar(usuario_id)
    return {"success": True, "message": "Usuario desactivado correctamente"}
