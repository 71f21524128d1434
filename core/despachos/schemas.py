# Nombre de archivo: schemas.py
# Ubicación de archivo: core/despachos/schemas.py
# Descripción: Modelos Pydantic de despachos, filtros de búsqueda y resultados paginados

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.utils.fechas import PoliticaFecha


class EstadoDespacho(str, Enum):
    """Estados del ciclo de vida; cualquier estado puede pasar a cualquier otro."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ESTADOS_VALIDOS = tuple(e.value for e in EstadoDespacho)


class CampoOrden(str, Enum):
    FECHA = "scheduledAt"
    ID_FACTURA = "invoiceId"
    NOMBRE = "clientName"


class DireccionOrden(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DespachoResponse(BaseModel):
    """Registro completo de un despacho (nombres de campo en el formato del cliente)."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    id_factura: str = Field(alias="invoiceId")
    nombre: str = Field(alias="clientName")
    fecha: datetime = Field(alias="scheduledAt")
    descripcion: str = Field(default="", alias="description")
    estado: EstadoDespacho = Field(alias="status")
    despachador_id: Optional[int] = Field(default=None, alias="dispatcherId")
    despachador_username: Optional[str] = Field(default=None, alias="dispatcherName")
    supervisor_id: Optional[int] = Field(default=None, alias="supervisorId")
    supervisor_username: Optional[str] = Field(default=None, alias="supervisorName")
    notas: Optional[str] = Field(default=None, alias="notes")
    motivo_cancelacion: Optional[str] = Field(default=None, alias="cancellationReason")
    created_at: datetime = Field(alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class DespachoCrear(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    id_factura: str = Field(alias="invoiceId", min_length=1, max_length=64)
    nombre: str = Field(alias="clientName", min_length=1, max_length=255)
    fecha: datetime | date | str = Field(alias="scheduledAt")
    descripcion: Optional[str] = Field(default=None, alias="description")
    estado: Optional[str] = Field(default=None, alias="status")
    despachador_id: Optional[int] = Field(default=None, alias="dispatcherId")
    supervisor_id: Optional[int] = Field(default=None, alias="supervisorId")
    notas: Optional[str] = Field(default=None, alias="notes")
    motivo_cancelacion: Optional[str] = Field(default=None, alias="cancellationReason")


class DespachoActualizar(BaseModel):
    """Actualización parcial: solo se aplican los campos presentes en el payload."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id_factura: Optional[str] = Field(default=None, alias="invoiceId", max_length=64)
    nombre: Optional[str] = Field(default=None, alias="clientName", max_length=255)
    fecha: datetime | date | str | None = Field(default=None, alias="scheduledAt")
    descripcion: Optional[str] = Field(default=None, alias="description")
    estado: Optional[str] = Field(default=None, alias="status")
    despachador_id: Optional[int] = Field(default=None, alias="dispatcherId")
    supervisor_id: Optional[int] = Field(default=None, alias="supervisorId")
    notas: Optional[str] = Field(default=None, alias="notes")
    motivo_cancelacion: Optional[str] = Field(default=None, alias="cancellationReason")

    def campos(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CambioEstado(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    estado: str = Field(alias="status")
    motivo_cancelacion: Optional[str] = Field(default=None, alias="cancellationReason")
    descripcion: Optional[str] = Field(default=None, alias="description")


class FiltroDespachos(BaseModel):
    """Filtro tipado compartido por los dos motores de búsqueda (todos los criterios con AND)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    q: Optional[str] = None
    estado: Optional[EstadoDespacho] = Field(default=None, alias="status")
    despachador_id: Optional[int] = Field(default=None, alias="dispatcherId")
    supervisor_id: Optional[int] = Field(default=None, alias="supervisorId")
    fecha_desde: Optional[date] = Field(default=None, alias="dateFrom")
    fecha_hasta: Optional[date] = Field(default=None, alias="dateTo")
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=10, ge=1, le=500)
    orden: CampoOrden = Field(default=CampoOrden.FECHA, alias="sortBy")
    direccion: Optional[DireccionOrden] = Field(default=None, alias="sortDir")

    @property
    def texto(self) -> Optional[str]:
        if self.q is None:
            return None
        return self.q.strip().casefold() or None

    @property
    def descendente(self) -> bool:
        if self.direccion is None:
            return self.orden is CampoOrden.FECHA
        return self.direccion is DireccionOrden.DESC


@dataclass(slots=True)
class ResultadoBusqueda:
    despachos: list[DespachoResponse]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_json(self, politica: PoliticaFecha) -> dict[str, Any]:
        data = [serializar_despacho(d, politica) for d in self.despachos]
        return {
            "data": data,
            "count": len(data),
            "total": self.total,
            "offset": self.offset,
            "limit": self.limit,
            "hasMore": self.has_more,
        }


def serializar_despacho(despacho: DespachoResponse, politica: PoliticaFecha) -> dict[str, Any]:
    data = despacho.model_dump(
        by_alias=True, mode="json", exclude={"fecha", "created_at", "updated_at"}
    )
    data["scheduledAt"] = politica.serializar(despacho.fecha)
    data["createdAt"] = politica.serializar(despacho.created_at)
    data["updatedAt"] = politica.serializar(despacho.updated_at)
    return data


__all__ = [
    "CambioEstado",
    "CampoOrden",
    "DespachoActualizar",
    "DespachoCrear",
    "DespachoResponse",
    "DireccionOrden",
    "ESTADOS_VALIDOS",
    "EstadoDespacho",
    "FiltroDespachos",
    "ResultadoBusqueda",
    "serializar_despacho",
]
