# Nombre de archivo: storage.py
# Ubicación de archivo: core/despachos/storage.py
# Descripción: Persistencia de despachos (SQLite vía SQLAlchemy o espejo en memoria)

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from core.despachos.schemas import ESTADOS_VALIDOS, DespachoResponse
from core.errors import DuplicateInvoice, StorageFailure, ValidationError
from core.utils.fechas import PoliticaFecha
from db.models import Despacho
from db.session import session_scope

CAMPOS_DESPACHO = (
    "id_factura",
    "nombre",
    "fecha",
    "descripcion",
    "estado",
    "despachador_id",
    "despachador_username",
    "supervisor_id",
    "supervisor_username",
    "notas",
    "motivo_cancelacion",
    "created_at",
    "updated_at",
)

_CAMPOS_FECHA = ("fecha", "created_at", "updated_at")


class DespachoStorage(Protocol):
    """Contrato para la persistencia de despachos.

    Las implementaciones validan por sí mismas la unicidad de la factura y el
    conjunto de estados, independientemente del servicio que las use.
    """

    async def obtener(self, despacho_id: int) -> Optional[DespachoResponse]:
        """Despacho por id o ``None``."""

    async def listar(self) -> List[DespachoResponse]:
        """Todos los despachos sin orden garantizado."""

    async def existe_factura(self, id_factura: str, *, excluir_id: int | None = None) -> bool:
        """Indica si otro despacho ya usa el número de factura."""

    async def insertar(self, valores: Dict[str, Any]) -> DespachoResponse:
        """Crea el despacho y devuelve el registro con su id asignado."""

    async def actualizar(self, despacho_id: int, valores: Dict[str, Any]) -> Optional[DespachoResponse]:
        """Aplica los valores; ``None`` si el id no existe."""

    async def eliminar(self, despacho_id: int) -> bool:
        """Borrado físico; ``False`` si el id no existe."""

    async def contar_por_estado(self) -> Dict[str, int]:
        """Cantidad de despachos por estado (todos los estados presentes)."""


def fila_a_despacho(fila: Despacho) -> DespachoResponse:
    return DespachoResponse(id=fila.id, **{campo: getattr(fila, campo) for campo in CAMPOS_DESPACHO})


def _solo_campos(valores: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in valores.items() if k in CAMPOS_DESPACHO}


@dataclass
class DatabaseDespachoStorage(DespachoStorage):
    """Persistencia SQLAlchemy (sincrónica encapsulada en hilos)."""

    session_factory: sessionmaker[Session]

    async def obtener(self, despacho_id: int) -> Optional[DespachoResponse]:
        return await asyncio.to_thread(self._obtener_sync, despacho_id)

    async def listar(self) -> List[DespachoResponse]:
        return await asyncio.to_thread(self._listar_sync)

    async def existe_factura(self, id_factura: str, *, excluir_id: int | None = None) -> bool:
        return await asyncio.to_thread(self._existe_factura_sync, id_factura, excluir_id)

    async def insertar(self, valores: Dict[str, Any]) -> DespachoResponse:
        return await asyncio.to_thread(self._insertar_sync, valores)

    async def actualizar(self, despacho_id: int, valores: Dict[str, Any]) -> Optional[DespachoResponse]:
        return await asyncio.to_thread(self._actualizar_sync, despacho_id, valores)

    async def eliminar(self, despacho_id: int) -> bool:
        return await asyncio.to_thread(self._eliminar_sync, despacho_id)

    async def contar_por_estado(self) -> Dict[str, int]:
        return await asyncio.to_thread(self._contar_por_estado_sync)

    # --- Métodos privados sincrónicos -------------------------------------------------

    @contextmanager
    def _transaccion(self) -> Iterator[Session]:
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except IntegrityError as exc:
            texto = str(exc.orig).lower()
            if "unique" in texto:
                raise DuplicateInvoice() from exc
            if "check" in texto:
                raise ValidationError(f"Estado inválido. Valores válidos: {', '.join(ESTADOS_VALIDOS)}") from exc
            if "not null" in texto:
                raise ValidationError("Faltan campos requeridos del despacho") from exc
            raise StorageFailure("Error de integridad al guardar el despacho") from exc
        except SQLAlchemyError as exc:
            raise StorageFailure("Error al acceder a la base de despachos") from exc

    def _obtener_sync(self, despacho_id: int) -> Optional[DespachoResponse]:
        with self._transaccion() as session:
            fila = session.get(Despacho, despacho_id)
            return fila_a_despacho(fila) if fila else None

    def _listar_sync(self) -> List[DespachoResponse]:
        with self._transaccion() as session:
            return [fila_a_despacho(fila) for fila in session.scalars(select(Despacho))]

    def _existe_factura_sync(self, id_factura: str, excluir_id: int | None) -> bool:
        stmt = select(Despacho.id).where(Despacho.id_factura == id_factura)
        if excluir_id is not None:
            stmt = stmt.where(Despacho.id != excluir_id)
        with self._transaccion() as session:
            return session.scalar(stmt.limit(1)) is not None

    def _insertar_sync(self, valores: Dict[str, Any]) -> DespachoResponse:
        with self._transaccion() as session:
            fila = Despacho(**_solo_campos(valores))
            session.add(fila)
            session.flush()
            return fila_a_despacho(fila)

    def _actualizar_sync(self, despacho_id: int, valores: Dict[str, Any]) -> Optional[DespachoResponse]:
        with self._transaccion() as session:
            fila = session.get(Despacho, despacho_id)
            if fila is None:
                return None
            for campo, valor in _solo_campos(valores).items():
                setattr(fila, campo, valor)
            session.flush()
            return fila_a_despacho(fila)

    def _eliminar_sync(self, despacho_id: int) -> bool:
        with self._transaccion() as session:
            fila = session.get(Despacho, despacho_id)
            if fila is None:
                return False
            session.delete(fila)
            return True

    def _contar_por_estado_sync(self) -> Dict[str, int]:
        conteo = {estado: 0 for estado in ESTADOS_VALIDOS}
        stmt = select(Despacho.estado, func.count()).group_by(Despacho.estado)
        with self._transaccion() as session:
            for estado, cantidad in session.execute(stmt):
                conteo[estado] = int(cantidad)
        return conteo


class InMemoryDespachoStorage(DespachoStorage):
    """Espejo en memoria: réplica independiente, útil offline y en pruebas.

    No hay protocolo de sincronización con el servidor más allá de la recarga
    completa (``cargar``). Las fechas con zona (por ejemplo ``...Z`` en modo
    ``utc_offset``) se guardan como hora de almacenamiento naive según la
    política, igual que en SQLite.
    """

    def __init__(
        self, registros: Iterable[DespachoResponse] = (), *, politica: PoliticaFecha | None = None
    ) -> None:
        self._politica = politica or PoliticaFecha()
        self._registros: Dict[int, DespachoResponse] = {}
        self._counter = 0
        self.cargar(registros)

    def cargar(self, registros: Iterable[DespachoResponse]) -> None:
        """Reemplaza todo el contenido (recarga completa desde el servidor)."""

        copias = {}
        for registro in registros:
            fechas = self._normalizar_fechas(registro.model_dump(include=set(_CAMPOS_FECHA)))
            copias[registro.id] = registro.model_copy(update=fechas)
        self._registros = copias
        self._counter = max(self._registros, default=0)

    def _normalizar_fechas(self, valores: Dict[str, Any]) -> Dict[str, Any]:
        normalizados = dict(valores)
        for campo in _CAMPOS_FECHA:
            valor = normalizados.get(campo)
            if isinstance(valor, datetime) and valor.tzinfo is not None:
                normalizados[campo] = self._politica.a_almacenamiento(valor)
        return normalizados

    def registros(self) -> List[DespachoResponse]:
        return list(self._registros.values())

    def _validar(self, registro: Dict[str, Any], despacho_id: int | None) -> None:
        if registro.get("estado") not in ESTADOS_VALIDOS:
            raise ValidationError(f"Estado inválido. Valores válidos: {', '.join(ESTADOS_VALIDOS)}")
        for campo in ("id_factura", "nombre", "fecha", "created_at"):
            if registro.get(campo) is None:
                raise ValidationError("Faltan campos requeridos del despacho")
        for otro in self._registros.values():
            if otro.id != despacho_id and otro.id_factura == registro["id_factura"]:
                raise DuplicateInvoice()

    async def obtener(self, despacho_id: int) -> Optional[DespachoResponse]:
        registro = self._registros.get(despacho_id)
        return registro.model_copy() if registro else None

    async def listar(self) -> List[DespachoResponse]:
        return [r.model_copy() for r in self._registros.values()]

    async def existe_factura(self, id_factura: str, *, excluir_id: int | None = None) -> bool:
        return any(r.id_factura == id_factura and r.id != excluir_id for r in self._registros.values())

    async def insertar(self, valores: Dict[str, Any]) -> DespachoResponse:
        registro = self._normalizar_fechas(_solo_campos(valores))
        registro["descripcion"] = registro.get("descripcion") or ""
        registro.setdefault("estado", "pending")
        self._validar(registro, None)
        self._counter += 1
        despacho = DespachoResponse(id=self._counter, **registro)
        self._registros[despacho.id] = despacho
        return despacho.model_copy()

    async def actualizar(self, despacho_id: int, valores: Dict[str, Any]) -> Optional[DespachoResponse]:
        actual = self._registros.get(despacho_id)
        if actual is None:
            return None
        registro = {**actual.model_dump(exclude={"id"}), **self._normalizar_fechas(_solo_campos(valores))}
        self._validar(registro, despacho_id)
        despacho = DespachoResponse(id=despacho_id, **registro)
        self._registros[despacho_id] = despacho
        return despacho.model_copy()

    async def eliminar(self, despacho_id: int) -> bool:
        return self._registros.pop(despacho_id, None) is not None

    async def contar_por_estado(self) -> Dict[str, int]:
        conteo = {estado: 0 for estado in ESTADOS_VALIDOS}
        for registro in self._registros.values():
            conteo[registro.estado.value] += 1
        return conteo


__all__ = [
    "CAMPOS_DESPACHO",
    "DatabaseDespachoStorage",
    "DespachoStorage",
    "InMemoryDespachoStorage",
    "fila_a_despacho",
]
