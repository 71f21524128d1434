# Nombre de archivo: fechas.py
# Ubicación de archivo: core/utils/fechas.py
# Descripción: Política horaria de despachos (hora local naive vs UTC con offset fijo)

"""Conversión de fechas entre lo que envía el cliente y lo que se almacena.

Existen dos criterios y se elige por configuración (``DESPACHOS_TIMEZONE_MODE``):

``naive_local``
    La hora de pared local se guarda tal cual, sin zona. Los valores con zona
    se convierten primero a la hora local de la máquina.

``utc_offset``
    La hora de pared se interpreta con un offset fijo (por defecto UTC-4) y se
    guarda en UTC. Al serializar se agrega el sufijo ``Z``.

En ambos modos los valores almacenados son ``datetime`` naive con precisión de
milisegundos, de modo que el orden lexicográfico en SQLite coincide con el
orden cronológico.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

FIN_DE_DIA = time(23, 59, 59, 999000)


class ModoHorario(str, Enum):
    NAIVE_LOCAL = "naive_local"
    UTC_OFFSET = "utc_offset"


def truncar_ms(valor: datetime) -> datetime:
    return valor.replace(microsecond=valor.microsecond // 1000 * 1000)


def parsear_fecha(valor: datetime | date | str) -> datetime:
    """Convierte ``YYYY-MM-DD``, ISO 8601 (con o sin zona) o ``date`` a ``datetime``.

    Raises:
        ValueError: si el valor no representa una fecha válida.
    """

    if isinstance(valor, datetime):
        return valor
    if isinstance(valor, date):
        return datetime.combine(valor, time.min)
    texto = str(valor).strip() if valor is not None else ""
    if not texto:
        raise ValueError("La fecha es requerida")
    if texto[-1] in ("Z", "z"):
        texto = texto[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(texto)
    except ValueError as exc:
        raise ValueError(f"Fecha inválida: {valor}") from exc


@dataclass(frozen=True, slots=True)
class PoliticaFecha:
    modo: ModoHorario = ModoHorario.NAIVE_LOCAL
    utc_offset_hours: float = -4.0

    @classmethod
    def desde_settings(cls, settings) -> "PoliticaFecha":
        return cls(modo=ModoHorario(settings.timezone_mode), utc_offset_hours=settings.utc_offset_hours)

    @property
    def zona_local(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset_hours))

    @property
    def es_utc(self) -> bool:
        return self.modo is ModoHorario.UTC_OFFSET

    def ahora(self) -> datetime:
        """Marca temporal actual en el formato de almacenamiento."""

        if self.es_utc:
            return truncar_ms(datetime.now(timezone.utc).replace(tzinfo=None))
        return truncar_ms(datetime.now())

    def a_almacenamiento(self, valor: datetime | date | str) -> datetime:
        dt = parsear_fecha(valor)
        if self.es_utc:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=self.zona_local)
            return truncar_ms(dt.astimezone(timezone.utc).replace(tzinfo=None))
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return truncar_ms(dt)

    def limites_dia(
        self, desde: date | None, hasta: date | None
    ) -> tuple[datetime | None, datetime | None]:
        """Rango inclusivo [desde 00:00:00.000, hasta 23:59:59.999] en días calendario locales."""

        inicio = self.a_almacenamiento(datetime.combine(desde, time.min)) if desde else None
        fin = self.a_almacenamiento(datetime.combine(hasta, FIN_DE_DIA)) if hasta else None
        return inicio, fin

    def serializar(self, valor: datetime | None) -> str | None:
        if valor is None:
            return None
        texto = valor.isoformat(timespec="milliseconds")
        return f"{texto}Z" if self.es_utc else texto


__all__ = ["FIN_DE_DIA", "ModoHorario", "PoliticaFecha", "parsear_fecha", "truncar_ms"]
