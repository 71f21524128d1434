# Nombre de archivo: schemas.py
# Ubicación de archivo: core/usuarios/schemas.py
# Descripción: Modelos Pydantic de usuarios (despachadores y supervisores) y login

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.utils.fechas import PoliticaFecha


class RolUsuario(str, Enum):
    DISPATCHER = "dispatcher"
    SUPERVISOR = "supervisor"


ROLES_VALIDOS = tuple(r.value for r in RolUsuario)


class UsuarioResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    nombre: str = Field(alias="name")
    role: RolUsuario
    is_active: bool = Field(default=True, alias="isActive")
    created_at: datetime = Field(alias="createdAt")
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")
    # Nunca sale en las respuestas
    password_hash: str = Field(default="", exclude=True)


class UsuarioCrear(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1)
    nombre: str = Field(alias="name", min_length=1, max_length=255)
    role: str


class UsuarioActualizar(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nombre: Optional[str] = Field(default=None, alias="name", max_length=255)
    role: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    password: Optional[str] = None

    def campos(self) -> dict[str, Any]:
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = None
    password: Optional[str] = None
    remember: bool = False


def serializar_usuario(usuario: UsuarioResponse, politica: PoliticaFecha) -> dict[str, Any]:
    data = usuario.model_dump(by_alias=True, mode="json", exclude={"created_at", "last_login"})
    data["createdAt"] = politica.serializar(usuario.created_at)
    data["lastLogin"] = politica.serializar(usuario.last_login)
    return data


__all__ = [
    "LoginRequest",
    "ROLES_VALIDOS",
    "RolUsuario",
    "UsuarioActualizar",
    "UsuarioCrear",
    "UsuarioResponse",
    "serializar_usuario",
]
