# Nombre de archivo: search.py
# Ubicación de archivo: core/despachos/search.py
# Descripción: Búsqueda filtrada y paginada de despachos (SQL y espejo en memoria)

"""Motor de búsqueda de despachos.

Un único filtro tipado (:class:`FiltroDespachos`) y dos adaptadores
intercambiables que devuelven exactamente el mismo resultado para los mismos
datos:

* :class:`SqlDespachoSearch` traduce el filtro a predicados SQLAlchemy
  parametrizados (:func:`construir_condiciones`).
* :class:`InMemoryDespachoSearch` evalúa el predicado :func:`coincide` sobre el
  espejo local.

Reglas comunes:

* ``q`` busca subcadena sin distinguir mayúsculas (``str.casefold``) en
  factura, cliente o descripción. En SQLite se usa la función ``casefold``
  registrada por :mod:`db.session`; los comodines de LIKE se escapan.
* El rango de fechas es inclusivo por día calendario local.
* Orden: campo pedido y desempate fijo por ``created_at`` desc e ``id`` desc.
  Los textos se comparan por punto de código (colación BINARY en SQLite).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol

from sqlalchemy import String, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from core.despachos.schemas import CampoOrden, DespachoResponse, FiltroDespachos, ResultadoBusqueda
from core.despachos.storage import InMemoryDespachoStorage, fila_a_despacho
from core.errors import StorageFailure
from core.utils.fechas import PoliticaFecha
from db.models import Despacho
from db.session import session_scope

_COLUMNAS_TEXTO = (Despacho.id_factura, Despacho.nombre, Despacho.descripcion)

_COLUMNA_ORDEN = {
    CampoOrden.FECHA: Despacho.fecha,
    CampoOrden.ID_FACTURA: Despacho.id_factura,
    CampoOrden.NOMBRE: Despacho.nombre,
}

_ATRIBUTO_ORDEN: dict[CampoOrden, Callable[[DespachoResponse], Any]] = {
    CampoOrden.FECHA: lambda d: d.fecha,
    CampoOrden.ID_FACTURA: lambda d: d.id_factura,
    CampoOrden.NOMBRE: lambda d: d.nombre,
}


class TicketSearch(Protocol):
    """Capacidad de búsqueda; cualquier backend conforme es intercambiable."""

    async def buscar(self, filtro: FiltroDespachos, *, paginar: bool = True) -> ResultadoBusqueda:
        """Despachos que cumplen el filtro, ordenados y (opcionalmente) paginados."""


# --- Backend SQL ----------------------------------------------------------------------


def construir_condiciones(filtro: FiltroDespachos, politica: PoliticaFecha) -> List[ColumnElement[bool]]:
    """Traduce el filtro a predicados parametrizados (se combinan con AND)."""

    condiciones: List[ColumnElement[bool]] = []
    texto = filtro.texto
    if texto:
        condiciones.append(
            or_(
                *(
                    func.casefold(columna, type_=String).contains(texto, autoescape=True)
                    for columna in _COLUMNAS_TEXTO
                )
            )
        )
    if filtro.estado is not None:
        condiciones.append(Despacho.estado == filtro.estado.value)
    if filtro.despachador_id is not None:
        condiciones.append(Despacho.despachador_id == filtro.despachador_id)
    if filtro.supervisor_id is not None:
        condiciones.append(Despacho.supervisor_id == filtro.supervisor_id)
    desde, hasta = politica.limites_dia(filtro.fecha_desde, filtro.fecha_hasta)
    if desde is not None:
        condiciones.append(Despacho.fecha >= desde)
    if hasta is not None:
        condiciones.append(Despacho.fecha <= hasta)
    return condiciones


def construir_orden(filtro: FiltroDespachos) -> List[ColumnElement[Any]]:
    columna = _COLUMNA_ORDEN[filtro.orden]
    principal = columna.desc() if filtro.descendente else columna.asc()
    return [principal, Despacho.created_at.desc(), Despacho.id.desc()]


@dataclass
class SqlDespachoSearch(TicketSearch):
    """Búsqueda contra la base SQLite (sincrónica encapsulada en hilos)."""

    session_factory: sessionmaker[Session]
    politica: PoliticaFecha

    async def buscar(self, filtro: FiltroDespachos, *, paginar: bool = True) -> ResultadoBusqueda:
        return await asyncio.to_thread(self._buscar_sync, filtro, paginar)

    def _buscar_sync(self, filtro: FiltroDespachos, paginar: bool) -> ResultadoBusqueda:
        condicion = and_(True, *construir_condiciones(filtro, self.politica))
        total_stmt = select(func.count()).select_from(Despacho).where(condicion)
        stmt = select(Despacho).where(condicion).order_by(*construir_orden(filtro))
        if paginar:
            stmt = stmt.offset(filtro.offset).limit(filtro.limit)
        try:
            with session_scope(self.session_factory) as session:
                total = int(session.scalar(total_stmt) or 0)
                despachos = [fila_a_despacho(fila) for fila in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StorageFailure("Error al buscar despachos") from exc
        return _resultado(despachos, total, filtro, paginar)


# --- Backend en memoria ---------------------------------------------------------------


def coincide(
    despacho: DespachoResponse,
    filtro: FiltroDespachos,
    limites: tuple[Optional[datetime], Optional[datetime]],
) -> bool:
    """Predicado equivalente a :func:`construir_condiciones` para un registro."""

    texto = filtro.texto
    if texto and not any(
        texto in (valor or "").casefold()
        for valor in (despacho.id_factura, despacho.nombre, despacho.descripcion)
    ):
        return False
    if filtro.estado is not None and despacho.estado != filtro.estado:
        return False
    if filtro.despachador_id is not None and despacho.despachador_id != filtro.despachador_id:
        return False
    if filtro.supervisor_id is not None and despacho.supervisor_id != filtro.supervisor_id:
        return False
    desde, hasta = limites
    if desde is not None and despacho.fecha < desde:
        return False
    if hasta is not None and despacho.fecha > hasta:
        return False
    return True


def ordenar(despachos: List[DespachoResponse], filtro: FiltroDespachos) -> List[DespachoResponse]:
    # Orden estable en pasadas: desempates primero, campo principal al final
    resultado = sorted(despachos, key=lambda d: d.id, reverse=True)
    resultado.sort(key=lambda d: d.created_at, reverse=True)
    resultado.sort(key=_ATRIBUTO_ORDEN[filtro.orden], reverse=filtro.descendente)
    return resultado


@dataclass
class InMemoryDespachoSearch(TicketSearch):
    """Búsqueda sobre el espejo local con la misma semántica que la SQL."""

    storage: InMemoryDespachoStorage
    politica: PoliticaFecha

    async def buscar(self, filtro: FiltroDespachos, *, paginar: bool = True) -> ResultadoBusqueda:
        limites = self.politica.limites_dia(filtro.fecha_desde, filtro.fecha_hasta)
        encontrados = [d for d in self.storage.registros() if coincide(d, filtro, limites)]
        ordenados = ordenar(encontrados, filtro)
        pagina = ordenados[filtro.offset : filtro.offset + filtro.limit] if paginar else ordenados
        return _resultado([d.model_copy() for d in pagina], len(ordenados), filtro, paginar)


def _resultado(
    despachos: List[DespachoResponse], total: int, filtro: FiltroDespachos, paginar: bool
) -> ResultadoBusqueda:
    if paginar:
        return ResultadoBusqueda(despachos=despachos, total=total, offset=filtro.offset, limit=filtro.limit)
    return ResultadoBusqueda(despachos=despachos, total=total, offset=0, limit=total)


__all__ = [
    "InMemoryDespachoSearch",
    "SqlDespachoSearch",
    "TicketSearch",
    "coincide",
    "construir_condiciones",
    "construir_orden",
    "ordenar",
]
