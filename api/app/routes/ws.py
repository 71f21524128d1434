# Nombre de archivo: ws.py
# Ubicación de archivo: api/app/routes/ws.py
# Descripción: Canal WebSocket de despachos (resumen inicial, eventos en vivo y comandos)

"""Canal en tiempo real de despachos.

Cada conexión es un actor con tres tareas:

* lector: recibe mensajes del cliente y los deja en la cola de entrada;
* procesador: atiende los comandos de a uno, en orden de llegada;
* escritor: vacía la suscripción del :class:`Broadcaster` hacia el socket.

Las respuestas propias de la sesión (``tickets:data`` y ``tickets:error``)
viajan por la misma suscripción que los eventos globales, así que el cliente
las recibe en orden con el resto. Formato de mensaje en ambos sentidos:
``{"event": nombre, "data": payload}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from api.app.context import AppContext
from api.app.deps import context_from_connection
from core.despachos.broadcast import (
    COMANDO_ACTUALIZAR,
    COMANDO_CONSULTA,
    COMANDO_ESTADO,
    EVENTO_DATOS,
    EVENTO_ERROR,
    EVENTO_RESUMEN,
    DespachoEvent,
    Suscripcion,
)
from core.despachos.schemas import CambioEstado, DespachoActualizar, FiltroDespachos
from core.errors import DespachoError, ValidationError, validar_payload

router = APIRouter()

WS_FORBIDDEN = 4403


def _id_despacho(data: Dict[str, Any]) -> int:
    valor = data.get("id")
    if isinstance(valor, bool):
        raise ValidationError("El id del despacho es requerido")
    try:
        return int(valor)
    except (TypeError, ValueError) as exc:
        raise ValidationError("El id del despacho es requerido") from exc


class SesionDespachos:
    """Sesión de un cliente; la suscripción al difusor se toma al crearla y se libera en ``ejecutar``."""

    def __init__(self, websocket: WebSocket, ctx: AppContext, logger: logging.Logger) -> None:
        self._ws = websocket
        self._ctx = ctx
        self._logger = logger
        self._entrada: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue()
        self._suscripcion: Suscripcion = ctx.broadcaster.subscribe()

    async def ejecutar(self) -> None:
        broadcaster = self._ctx.broadcaster
        sid = self._suscripcion.sid
        self._logger.info("action=ws_connected sid=%s activas=%s", sid, broadcaster.sesiones_activas)
        tareas: list[asyncio.Task[None]] = []
        try:
            resumen = await self._ctx.despachos.estadisticas()
            await self._ws.send_json(DespachoEvent(EVENTO_RESUMEN, resumen).to_json())
            tareas = [
                asyncio.create_task(self._lector(), name=f"ws-{sid}-lector"),
                asyncio.create_task(self._procesador(), name=f"ws-{sid}-procesador"),
                asyncio.create_task(self._escritor(), name=f"ws-{sid}-escritor"),
            ]
            hechas, _ = await asyncio.wait(tareas, return_when=asyncio.FIRST_COMPLETED)
            for tarea in hechas:
                exc = None if tarea.cancelled() else tarea.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    self._logger.error("action=ws_error sid=%s error=%s", sid, exc, exc_info=exc)
        except WebSocketDisconnect:
            pass
        finally:
            for tarea in tareas:
                tarea.cancel()
            await asyncio.gather(*tareas, return_exceptions=True)
            broadcaster.unsubscribe(self._suscripcion)
            self._logger.info("action=ws_disconnected sid=%s activas=%s", sid, broadcaster.sesiones_activas)

    async def _lector(self) -> None:
        try:
            while True:
                texto = await self._ws.receive_text()
                try:
                    mensaje = json.loads(texto)
                except json.JSONDecodeError:
                    mensaje = None
                if not isinstance(mensaje, dict):
                    self._responder_error(ValidationError("Mensaje inválido"))
                    continue
                await self._entrada.put(mensaje)
        except WebSocketDisconnect:
            return
        finally:
            self._entrada.put_nowait(None)

    async def _procesador(self) -> None:
        while True:
            mensaje = await self._entrada.get()
            if mensaje is None:
                return
            await self._procesar(mensaje)

    async def _escritor(self) -> None:
        while True:
            evento = await self._suscripcion.recibir()
            if evento is None:
                # Sesión cortada por desborde de la cola de salida
                await self._ws.close(code=status.WS_1013_TRY_AGAIN_LATER)
                return
            await self._ws.send_json(evento.to_json())

    async def _procesar(self, mensaje: Dict[str, Any]) -> None:
        evento = mensaje.get("event")
        data = mensaje.get("data")
        servicio = self._ctx.despachos
        try:
            if evento == COMANDO_CONSULTA:
                filtro = validar_payload(FiltroDespachos, data)
                resultado = await servicio.buscar(filtro)
                self._entregar(DespachoEvent(EVENTO_DATOS, resultado.to_json(self._ctx.politica)))
            elif evento in (COMANDO_ACTUALIZAR, COMANDO_ESTADO):
                if not isinstance(data, dict):
                    raise ValidationError("El payload debe ser un objeto")
                despacho_id = _id_despacho(data)
                campos = {k: v for k, v in data.items() if k != "id"}
                if evento == COMANDO_ACTUALIZAR:
                    await servicio.actualizar(despacho_id, validar_payload(DespachoActualizar, campos))
                else:
                    await servicio.cambiar_estado(despacho_id, validar_payload(CambioEstado, campos))
            else:
                raise ValidationError(f"Evento desconocido: {evento}")
        except DespachoError as exc:
            self._responder_error(exc)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("action=ws_command_failed event=%s error=%s", evento, exc)
            self._entregar(
                DespachoEvent(EVENTO_ERROR, {"message": "Error interno del servidor", "code": "INTERNAL_ERROR"})
            )

    def _responder_error(self, exc: DespachoError) -> None:
        self._logger.info("action=ws_command_rejected code=%s error=%s", exc.code, exc.message)
        self._entregar(DespachoEvent(EVENTO_ERROR, {"message": exc.message, "code": exc.code}))

    def _entregar(self, evento: DespachoEvent) -> None:
        if not self._suscripcion.entregar(evento):
            self._ctx.broadcaster.unsubscribe(self._suscripcion)


@router.websocket("/ws")
async def despachos_ws(websocket: WebSocket) -> None:
    ctx = context_from_connection(websocket)
    logger = ctx.logger.getChild("ws")
    origin = websocket.headers.get("origin")
    await websocket.accept()
    if ctx.settings.origins and origin and origin not in ctx.settings.origins:
        logger.warning("action=ws_unauthorized origin=%s", origin)
        await websocket.send_json(
            DespachoEvent(EVENTO_ERROR, {"message": "Origen no autorizado", "code": "WS_FORBIDDEN"}).to_json()
        )
        await websocket.close(code=WS_FORBIDDEN, reason="Origen no autorizado")
        return
    await SesionDespachos(websocket, ctx, logger).ejecutar()


__all__ = ["SesionDespachos", "router"]
