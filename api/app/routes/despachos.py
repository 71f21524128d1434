# Nombre de archivo: despachos.py
# Ubicación de archivo: api/app/routes/despachos.py
# Descripción: Endpoints REST de despachos (listado, búsqueda, CRUD y cambio de estado)

"""Rutas de despachos.

Las rutas fijas (``/search`` y ``/stats``) se declaran antes de ``/{despacho_id}``
para que no queden capturadas por el parámetro de ruta.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status

from api.app.context import AppContext
from api.app.deps import get_context
from core.despachos.schemas import CambioEstado, DespachoActualizar, DespachoCrear, FiltroDespachos
from core.errors import validar_payload

router = APIRouter(prefix="/tickets", tags=["despachos"])


@router.get("")
async def listar_despachos(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    despachos = await ctx.despachos.listar()
    data = [ctx.despachos.serializar(d) for d in despachos]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/search")
async def buscar_despachos(
    q: Optional[str] = None,
    status_: Optional[str] = Query(default=None, alias="status"),
    dispatcher_id: Optional[str] = Query(default=None, alias="dispatcherId"),
    supervisor_id: Optional[str] = Query(default=None, alias="supervisorId"),
    date_from: Optional[str] = Query(default=None, alias="dateFrom"),
    date_to: Optional[str] = Query(default=None, alias="dateTo"),
    offset: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_dir: Optional[str] = Query(default=None, alias="sortDir"),
    ctx: AppContext = Depends(get_context),
) -> dict[str, Any]:
    crudo = {
        "q": q,
        "status": status_,
        "dispatcherId": dispatcher_id,
        "supervisorId": supervisor_id,
        "dateFrom": date_from,
        "dateTo": date_to,
        "offset": offset,
        "limit": limit,
        "sortBy": sort_by,
        "sortDir": sort_dir,
    }
    # Los parámetros vacíos (?status=) se tratan como ausentes
    filtro = validar_payload(FiltroDespachos, {k: v for k, v in crudo.items() if v not in (None, "")})
    resultado = await ctx.despachos.buscar(filtro)
    return {"success": True, **resultado.to_json(ctx.politica)}


@router.get("/stats")
async def estadisticas(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {"success": True, "data": await ctx.despachos.estadisticas()}


@router.get("/{despacho_id}")
async def obtener_despacho(despacho_id: int, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    despacho = await ctx.despachos.obtener(despacho_id)
    return {"success": True, "data": ctx.despachos.serializar(despacho)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def crear_despacho(datos: DespachoCrear, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    despacho = await ctx.despachos.crear(datos)
    return {
        "success": True,
        "data": ctx.despachos.serializar(despacho),
        "message": "Despacho creado correctamente",
    }


@router.put("/{despacho_id}")
async def actualizar_despacho(
    despacho_id: int, cambios: DespachoActualizar, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    despacho = await ctx.despachos.actualizar(despacho_id, cambios)
    return {
        "success": True,
        "data": ctx.despachos.serializar(despacho),
        "message": "Despacho actualizado correctamente",
    }


@router.patch("/{despacho_id}/status")
async def cambiar_estado(
    despacho_id: int, cambio: CambioEstado, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    despacho = await ctx.despachos.cambiar_estado(despacho_id, cambio)
    return {
        "success": True,
        "data": ctx.despachos.serializar(despacho),
        "message": "Estado actualizado correctamente",
    }


@router.delete("/{despacho_id}")
async def eliminar_despacho(despacho_id: int, ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    await ctx.despachos.eliminar(despacho_id)
    return {"success": True, "message": "Despacho eliminado correctamente"}
