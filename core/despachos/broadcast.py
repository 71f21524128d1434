# Nombre de archivo: broadcast.py
# Ubicación de archivo: core/despachos/broadcast.py
# Descripción: Difusión en tiempo real de eventos de despachos (pub/sub en proceso)

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.errors import BroadcastFailure

EVENTO_CREADO = "ticket:created"
EVENTO_ACTUALIZADO = "ticket:updated"
EVENTO_ELIMINADO = "ticket:deleted"
EVENTO_RESUMEN = "tickets:snapshot"
EVENTO_DATOS = "tickets:data"
EVENTO_ERROR = "tickets:error"

COMANDO_CONSULTA = "tickets:request"
COMANDO_ACTUALIZAR = "ticket:update"
COMANDO_ESTADO = "ticket:status"


@dataclass(slots=True)
class DespachoEvent:
    """Evento saliente con el formato ``{"event": ..., "data": ...}``."""

    type: str
    data: Any

    def to_json(self) -> Dict[str, Any]:
        return {"event": self.type, "data": self.data}


Listener = Callable[[DespachoEvent], None]


class Suscripcion:
    """Cola de salida de una sesión conectada.

    ``recibir`` devuelve ``None`` cuando la suscripción fue cerrada (por
    desborde o por baja explícita).
    """

    def __init__(self, sid: int, queue_size: int) -> None:
        self.sid = sid
        self._queue: asyncio.Queue[Optional[DespachoEvent]] = asyncio.Queue(maxsize=queue_size)
        self.cerrada = False

    def entregar(self, evento: DespachoEvent) -> bool:
        if self.cerrada:
            return False
        try:
            self._queue.put_nowait(evento)
        except asyncio.QueueFull:
            return False
        return True

    def cerrar(self) -> None:
        if self.cerrada:
            return
        self.cerrada = True
        # Se descarta lo pendiente para que el centinela siempre entre
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def recibir(self) -> Optional[DespachoEvent]:
        return await self._queue.get()

    def pendientes(self) -> int:
        return self._queue.qsize()


class Broadcaster:
    """Fan-out de eventos a todas las sesiones y observadores registrados.

    ``publish`` es sincrónico: encola el evento en cada suscripción en el orden
    de llamada, por lo que cada sesión recibe los eventos en el mismo orden en
    que el servidor aplicó los cambios. Una sesión cuya cola se llena se da de
    baja y se cierra; los errores de observadores se registran y se ignoran.
    """

    def __init__(self, *, queue_size: int = 1000, logger: logging.Logger | None = None) -> None:
        self._queue_size = queue_size
        self._logger = logger or logging.getLogger(__name__)
        self._suscripciones: Dict[int, Suscripcion] = {}
        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)

    @property
    def sesiones_activas(self) -> int:
        return len(self._suscripciones)

    def subscribe(self) -> Suscripcion:
        suscripcion = Suscripcion(next(self._ids), self._queue_size)
        self._suscripciones[suscripcion.sid] = suscripcion
        self._logger.debug("action=broadcast_subscribe sid=%s activas=%s", suscripcion.sid, self.sesiones_activas)
        return suscripcion

    def unsubscribe(self, suscripcion: Suscripcion) -> None:
        if self._suscripciones.pop(suscripcion.sid, None) is not None:
            self._logger.debug("action=broadcast_unsubscribe sid=%s activas=%s", suscripcion.sid, self.sesiones_activas)
        suscripcion.cerrar()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, evento: DespachoEvent) -> int:
        """Entrega el evento a todas las sesiones; devuelve cuántas lo recibieron."""

        entregados = 0
        for suscripcion in list(self._suscripciones.values()):
            if suscripcion.entregar(evento):
                entregados += 1
                continue
            self._logger.warning(
                "action=broadcast_overflow sid=%s event=%s pendientes=%s",
                suscripcion.sid,
                evento.type,
                suscripcion.pendientes(),
            )
            self.unsubscribe(suscripcion)
        for listener in list(self._listeners):
            try:
                listener(evento)
            except Exception as exc:  # noqa: BLE001
                fallo = BroadcastFailure(f"Observador falló con {evento.type}: {exc}")
                self._logger.warning("action=broadcast_listener error=%s", fallo.message, exc_info=True)
        self._logger.debug("action=broadcast_publish event=%s sesiones=%s", evento.type, entregados)
        return entregados


__all__ = [
    "Broadcaster",
    "COMANDO_ACTUALIZAR",
    "COMANDO_CONSULTA",
    "COMANDO_ESTADO",
    "DespachoEvent",
    "EVENTO_ACTUALIZADO",
    "EVENTO_CREADO",
    "EVENTO_DATOS",
    "EVENTO_ELIMINADO",
    "EVENTO_ERROR",
    "EVENTO_RESUMEN",
    "Listener",
    "Suscripcion",
]
