# Nombre de archivo: service.py
# Ubicación de archivo: core/usuarios/service.py
# Descripción: Altas, consultas y bajas lógicas de usuarios

from __future__ import annotations

import logging
from typing import List

from core.auth import hash_password
from core.errors import NotFound, ValidationError
from core.usuarios.schemas import ROLES_VALIDOS, UsuarioActualizar, UsuarioCrear, UsuarioResponse
from core.usuarios.storage import UsuarioStorage
from core.utils.fechas import PoliticaFecha


def _validar_rol(role: str) -> str:
    if role not in ROLES_VALIDOS:
        raise ValidationError(f"Rol inválido. Valores válidos: {', '.join(ROLES_VALIDOS)}")
    return role


class UsuarioService:
    def __init__(
        self,
        storage: UsuarioStorage,
        politica: PoliticaFecha,
        *,
        bcrypt_rounds: int = 12,
        logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage
        self._politica = politica
        self._rounds = bcrypt_rounds
        self._logger = logger or logging.getLogger(__name__)

    async def listar(self) -> List[UsuarioResponse]:
        return await self._storage.listar()

    async def por_rol(self, role: str) -> List[UsuarioResponse]:
        return await self._storage.listar(role=_validar_rol(role))

    async def obtener(self, usuario_id: int) -> UsuarioResponse:
        usuario = await self._storage.obtener(usuario_id)
        if usuario is None:
            raise NotFound("Usuario no encontrado")
        return usuario

    async def crear(self, datos: UsuarioCrear) -> UsuarioResponse:
        usuario = await self._storage.insertar(
            {
                "username": datos.username,
                "nombre": datos.nombre,
                "role": _validar_rol(datos.role),
                "password_hash": hash_password(datos.password, rounds=self._rounds),
                "is_active": True,
                "created_at": self._politica.ahora(),
            }
        )
        self._logger.info("action=user_create id=%s username=%s role=%s", usuario.id, usuario.username, usuario.role.value)
        return usuario

    async def actualizar(self, usuario_id: int, datos: UsuarioActualizar) -> UsuarioResponse:
        campos = datos.campos()
        if not campos:
            raise ValidationError("No hay campos para actualizar")
        if "role" in campos:
            _validar_rol(campos["role"])
        if "password" in campos:
            campos["password_hash"] = hash_password(campos.pop("password"), rounds=self._rounds)
        usuario = await self._storage.actualizar(usuario_id, campos)
        if usuario is None:
            raise NotFound("Usuario no encontrado")
        self._logger.info("action=user_update id=%s fields=%s", usuario_id, ",".join(sorted(campos)))
        return usuario

    async def desactivar(self, usuario_id: int) -> UsuarioResponse:
        usuario = await self._storage.actualizar(usuario_id, {"is_active": False})
        if usuario is None:
            raise NotFound("Usuario no encontrado")
        self._logger.info("action=user_deactivate id=%s", usuario_id)
        return usuario


__all__ = ["UsuarioService"]
