# Nombre de archivo: service.py
# Ubicación de archivo: core/despachos/service.py
# Descripción: Ciclo de vida de despachos (altas, cambios de estado, ediciones y bajas)

"""Reglas de negocio de los despachos.

Cualquier estado puede pasar a cualquier otro; las únicas exigencias son de
campos:

* ``cancelled`` requiere ``motivo_cancelacion`` no vacío.
* ``pending`` acepta una ``descripcion`` nueva (lo que falta entregar).
* Al salir de ``cancelled`` el motivo se borra.

Cada mutación se persiste y se publica bajo el mismo candado, de modo que el
orden de los eventos coincide con el orden en que se aplicaron los cambios.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Coroutine, Dict, List, Optional, Set, TypeVar

from core.despachos.broadcast import (
    EVENTO_ACTUALIZADO,
    EVENTO_CREADO,
    EVENTO_ELIMINADO,
    Broadcaster,
    DespachoEvent,
)
from core.despachos.schemas import (
    ESTADOS_VALIDOS,
    CambioEstado,
    DespachoActualizar,
    DespachoCrear,
    DespachoResponse,
    EstadoDespacho,
    FiltroDespachos,
    ResultadoBusqueda,
    serializar_despacho,
)
from core.despachos.search import TicketSearch
from core.despachos.storage import DespachoStorage
from core.errors import BroadcastFailure, DuplicateInvoice, NotFound, ValidationError
from core.usuarios.storage import UsuarioStorage
from core.utils.fechas import PoliticaFecha

_UN_MS = timedelta(milliseconds=1)

T = TypeVar("T")


def _validar_estado(estado: Optional[str]) -> str:
    if estado not in ESTADOS_VALIDOS:
        raise ValidationError(f"Estado inválido. Valores válidos: {', '.join(ESTADOS_VALIDOS)}")
    return estado


def _texto_requerido(valor: Optional[str], campo: str) -> str:
    limpio = (valor or "").strip()
    if not limpio:
        raise ValidationError(f"El campo {campo} es requerido")
    return limpio


def _motivo_requerido(motivo: Optional[str]) -> str:
    limpio = (motivo or "").strip()
    if not limpio:
        raise ValidationError("El motivo de cancelación es requerido para cancelar un despacho")
    return limpio


class DespachoService:
    def __init__(
        self,
        storage: DespachoStorage,
        usuarios: UsuarioStorage,
        buscador: TicketSearch,
        broadcaster: Broadcaster,
        politica: PoliticaFecha,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage
        self._usuarios = usuarios
        self._buscador = buscador
        self._broadcaster = broadcaster
        self._politica = politica
        self._logger = logger or logging.getLogger(__name__)
        self._lock = asyncio.Lock()
        self._en_curso: Set[asyncio.Task[Any]] = set()

    @property
    def politica(self) -> PoliticaFecha:
        return self._politica

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    # --- Consultas --------------------------------------------------------------------

    async def listar(self) -> List[DespachoResponse]:
        """Todos los despachos en el orden por defecto (fecha desc, alta desc)."""

        resultado = await self._buscador.buscar(FiltroDespachos(), paginar=False)
        return resultado.despachos

    async def buscar(self, filtro: FiltroDespachos) -> ResultadoBusqueda:
        return await self._buscador.buscar(filtro)

    async def obtener(self, despacho_id: int) -> DespachoResponse:
        despacho = await self._storage.obtener(despacho_id)
        if despacho is None:
            raise NotFound("Despacho no encontrado")
        return despacho

    async def estadisticas(self) -> Dict[str, int]:
        conteo = await self._storage.contar_por_estado()
        return {"pending": conteo.get("pending", 0), "inProgress": conteo.get("in_progress", 0)}

    def serializar(self, despacho: DespachoResponse) -> Dict[str, Any]:
        return serializar_despacho(despacho, self._politica)

    # --- Mutaciones -------------------------------------------------------------------

    async def crear(self, datos: DespachoCrear) -> DespachoResponse:
        return await self._en_serie(self._crear(datos))

    async def cambiar_estado(self, despacho_id: int, cambio: CambioEstado) -> DespachoResponse:
        return await self._en_serie(self._cambiar_estado(despacho_id, cambio))

    async def actualizar(self, despacho_id: int, cambios: DespachoActualizar) -> DespachoResponse:
        return await self._en_serie(self._actualizar(despacho_id, cambios))

    async def eliminar(self, despacho_id: int) -> None:
        await self._en_serie(self._eliminar(despacho_id))

    async def _crear(self, datos: DespachoCrear) -> DespachoResponse:
        estado = _validar_estado(datos.estado or EstadoDespacho.PENDING.value)
        valores: Dict[str, Any] = {
            "id_factura": _texto_requerido(datos.id_factura, "invoiceId"),
            "nombre": _texto_requerido(datos.nombre, "clientName"),
            "fecha": self._fecha(datos.fecha),
            "descripcion": datos.descripcion or "",
            "estado": estado,
            "despachador_id": datos.despachador_id,
            "supervisor_id": datos.supervisor_id,
            "notas": datos.notas,
            "motivo_cancelacion": None,
        }
        if estado == EstadoDespacho.CANCELLED.value:
            valores["motivo_cancelacion"] = _motivo_requerido(datos.motivo_cancelacion)

        if await self._storage.existe_factura(valores["id_factura"]):
            raise DuplicateInvoice()
        valores["despachador_username"] = await self._resolver_usuario(datos.despachador_id)
        valores["supervisor_username"] = await self._resolver_usuario(datos.supervisor_id)
        marca = self._politica.ahora()
        valores["created_at"] = marca
        valores["updated_at"] = marca
        despacho = await self._storage.insertar(valores)
        self._emitir(EVENTO_CREADO, self.serializar(despacho))
        self._logger.info(
            "action=despacho_create id=%s id_factura=%s estado=%s", despacho.id, despacho.id_factura, estado
        )
        return despacho

    async def _cambiar_estado(self, despacho_id: int, cambio: CambioEstado) -> DespachoResponse:
        nuevo = _validar_estado(cambio.estado)
        actual = await self.obtener(despacho_id)
        valores: Dict[str, Any] = {"estado": nuevo, "motivo_cancelacion": None}
        if nuevo == EstadoDespacho.CANCELLED.value:
            valores["motivo_cancelacion"] = _motivo_requerido(cambio.motivo_cancelacion)
        elif nuevo == EstadoDespacho.PENDING.value and cambio.descripcion is not None:
            valores["descripcion"] = cambio.descripcion
        valores["updated_at"] = self._marca(actual.updated_at)
        despacho = await self._aplicar(despacho_id, valores)
        self._logger.info(
            "action=despacho_status id=%s desde=%s hacia=%s", despacho_id, actual.estado.value, nuevo
        )
        return despacho

    async def _actualizar(self, despacho_id: int, cambios: DespachoActualizar) -> DespachoResponse:
        campos = cambios.campos()
        if not campos:
            raise ValidationError("No hay campos para actualizar")
        valores = self._normalizar_cambios(campos)

        actual = await self.obtener(despacho_id)
        estado = valores.get("estado", actual.estado.value)
        if estado == EstadoDespacho.CANCELLED.value:
            motivo = campos["motivo_cancelacion"] if "motivo_cancelacion" in campos else actual.motivo_cancelacion
            valores["motivo_cancelacion"] = _motivo_requerido(motivo)
        else:
            valores["motivo_cancelacion"] = None
        if "id_factura" in valores and await self._storage.existe_factura(
            valores["id_factura"], excluir_id=despacho_id
        ):
            raise DuplicateInvoice()
        if "despachador_id" in valores:
            valores["despachador_username"] = await self._resolver_usuario(valores["despachador_id"])
        if "supervisor_id" in valores:
            valores["supervisor_username"] = await self._resolver_usuario(valores["supervisor_id"])
        valores["updated_at"] = self._marca(actual.updated_at)
        despacho = await self._aplicar(despacho_id, valores)
        self._logger.info("action=despacho_update id=%s fields=%s", despacho_id, ",".join(sorted(campos)))
        return despacho

    async def _eliminar(self, despacho_id: int) -> None:
        if not await self._storage.eliminar(despacho_id):
            raise NotFound("Despacho no encontrado")
        self._emitir(EVENTO_ELIMINADO, {"id": despacho_id})
        self._logger.info("action=despacho_delete id=%s", despacho_id)

    # --- Auxiliares -------------------------------------------------------------------

    async def _en_serie(self, mutacion: Coroutine[Any, Any, T]) -> T:
        """Ejecuta la mutación en su propia tarea, de a una por vez.

        Si el llamador se cancela (por ejemplo, una sesión WebSocket que se
        cierra) la tarea sigue hasta persistir y publicar el evento.
        """

        tarea = asyncio.ensure_future(self._con_candado(mutacion))
        self._en_curso.add(tarea)
        tarea.add_done_callback(self._mutacion_terminada)
        return await asyncio.shield(tarea)

    async def _con_candado(self, mutacion: Coroutine[Any, Any, T]) -> T:
        async with self._lock:
            return await mutacion

    def _mutacion_terminada(self, tarea: asyncio.Task[Any]) -> None:
        self._en_curso.discard(tarea)
        if not tarea.cancelled() and tarea.exception() is not None:
            self._logger.debug("action=despacho_mutation status=failed error=%s", tarea.exception())

    async def _aplicar(self, despacho_id: int, valores: Dict[str, Any]) -> DespachoResponse:
        despacho = await self._storage.actualizar(despacho_id, valores)
        if despacho is None:
            raise NotFound("Despacho no encontrado")
        self._emitir(EVENTO_ACTUALIZADO, self.serializar(despacho))
        return despacho

    def _normalizar_cambios(self, campos: Dict[str, Any]) -> Dict[str, Any]:
        valores = dict(campos)
        valores.pop("motivo_cancelacion", None)
        if "id_factura" in valores:
            valores["id_factura"] = _texto_requerido(valores["id_factura"], "invoiceId")
        if "nombre" in valores:
            valores["nombre"] = _texto_requerido(valores["nombre"], "clientName")
        if "fecha" in valores:
            if valores["fecha"] is None:
                raise ValidationError("La fecha es requerida")
            valores["fecha"] = self._fecha(valores["fecha"])
        if "descripcion" in valores and valores["descripcion"] is None:
            valores["descripcion"] = ""
        if "estado" in valores:
            valores["estado"] = _validar_estado(valores["estado"])
        return valores

    def _fecha(self, valor: Any) -> datetime:
        try:
            return self._politica.a_almacenamiento(valor)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Fecha inválida: {valor}") from exc

    def _marca(self, previo: Optional[datetime]) -> datetime:
        """Marca de actualización estrictamente posterior a la anterior."""

        ahora = self._politica.ahora()
        if previo is not None and ahora <= previo:
            return previo + _UN_MS
        return ahora

    async def _resolver_usuario(self, usuario_id: Optional[int]) -> Optional[str]:
        if usuario_id is None:
            return None
        usuario = await self._usuarios.obtener(usuario_id)
        if usuario is None:
            self._logger.debug("action=resolve_user id=%s result=not_found", usuario_id)
            return None
        return usuario.username

    def _emitir(self, tipo: str, data: Any) -> None:
        try:
            self._broadcaster.publish(DespachoEvent(tipo, data))
        except Exception as exc:  # noqa: BLE001
            fallo = BroadcastFailure(f"No se pudo emitir {tipo}: {exc}")
            self._logger.error("action=broadcast_failure event=%s error=%s", tipo, fallo.message, exc_info=True)


__all__ = ["DespachoService"]
