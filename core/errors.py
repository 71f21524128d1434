# Nombre de archivo: errors.py
# Ubicación de archivo: core/errors.py
# Descripción: Taxonomía de errores del dominio de despachos y usuarios

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

_LOC_IGNORADAS = {"body", "query", "path"}

M = TypeVar("M", bound=BaseModel)


class DespachoError(Exception):
    """Error base; cada subclase define el código HTTP y el código de error."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_json(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(DespachoError):
    status_code = 400
    code = "VALIDATION_ERROR"


class DuplicateInvoice(DespachoError):
    status_code = 400
    code = "DUPLICATE_INVOICE"

    def __init__(self, message: str = "Ya existe un despacho con este número de factura") -> None:
        super().__init__(message)


class DuplicateUsername(DespachoError):
    status_code = 409
    code = "DUPLICATE_USERNAME"

    def __init__(self, message: str = "El usuario ya existe") -> None:
        super().__init__(message)


class NotFound(DespachoError):
    status_code = 404
    code = "NOT_FOUND"


class AuthenticationError(DespachoError):
    status_code = 401
    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Credenciales inválidas") -> None:
        super().__init__(message)


class StorageFailure(DespachoError):
    status_code = 500
    code = "STORAGE_FAILURE"


class BroadcastFailure(DespachoError):
    """Fallo al emitir un evento; se registra y nunca se propaga al llamador."""

    code = "BROADCAST_FAILURE"


def describir_errores(errores: Iterable[Mapping[str, Any]]) -> str:
    """Resume errores de validación de pydantic en un mensaje corto."""

    faltantes: list[str] = []
    otros: list[str] = []
    for error in errores:
        loc = [str(p) for p in error.get("loc", ()) if p not in _LOC_IGNORADAS]
        campo = ".".join(loc) or "payload"
        if error.get("type") == "missing":
            faltantes.append(campo)
        else:
            otros.append(f"{campo}: {error.get('msg', 'valor inválido')}")
    if faltantes:
        return f"Campos requeridos: {', '.join(faltantes)}"
    return "; ".join(otros) or "Solicitud inválida"


def validar_payload(modelo: type[M], datos: Any) -> M:
    """Valida un payload suelto (WebSocket, query) y lo convierte en ``ValidationError``."""

    try:
        return modelo.model_validate(datos if datos is not None else {})
    except PydanticValidationError as exc:
        raise ValidationError(describir_errores(exc.errors())) from exc


__all__ = [
    "AuthenticationError",
    "BroadcastFailure",
    "DespachoError",
    "DuplicateInvoice",
    "DuplicateUsername",
    "NotFound",
    "StorageFailure",
    "ValidationError",
    "describir_errores",
    "validar_payload",
]
