# Nombre de archivo: auth.py
# Ubicación de archivo: core/auth.py
# Descripción: Hashing bcrypt, verificación de credenciales intercambiable y login de usuarios

from __future__ import annotations

import logging
import secrets
from typing import Optional, Protocol

import bcrypt

from core.errors import AuthenticationError, ValidationError
from core.usuarios.schemas import RolUsuario, UsuarioResponse
from core.usuarios.storage import UsuarioStorage
from core.utils.fechas import PoliticaFecha

LOGGER = logging.getLogger(__name__)

_BCRYPT_MAX_BYTES = 72
_BCRYPT_DEFAULT_COST = 12


def _normalize_length(password: str) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) <= _BCRYPT_MAX_BYTES:
        return password
    LOGGER.warning(
        "action=hash_password truncated_to=%s reason=bcrypt_limit",
        _BCRYPT_MAX_BYTES,
    )
    return encoded[:_BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def _to_bytes(password: str) -> bytes:
    return _normalize_length(password).encode("utf-8")


def hash_password(password: str, *, rounds: int = _BCRYPT_DEFAULT_COST) -> str:
    """Genera un hash bcrypt usando únicamente la librería `bcrypt`."""

    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verifica la contraseña contra un hash bcrypt (hash inválido => False)."""

    try:
        result = bcrypt.checkpw(_to_bytes(password), hashed.encode("utf-8"))
    except ValueError as exc:
        LOGGER.warning("action=verify_password error=invalid_hash detail=%s", exc)
        return False
    return bool(result)


class CredentialVerifier(Protocol):
    """Decide si una contraseña en claro corresponde al usuario."""

    def verify(self, usuario: UsuarioResponse, password: str) -> bool:
        ...


class BcryptCredentialVerifier:
    """Verificador por defecto: hash bcrypt y, si está habilitada, contraseña fallback."""

    def __init__(self, fallback_password: Optional[str] = None, logger: logging.Logger | None = None) -> None:
        self._fallback = fallback_password
        self._logger = logger or LOGGER

    def verify(self, usuario: UsuarioResponse, password: str) -> bool:
        if usuario.password_hash and verify_password(password, usuario.password_hash):
            return True
        if self._fallback and secrets.compare_digest(password.encode("utf-8"), self._fallback.encode("utf-8")):
            self._logger.warning("action=login fallback_password=used username=%s", usuario.username)
            return True
        return False


def rol_por_username(username: str) -> RolUsuario:
    nombre = username.lower()
    if "supervisor" in nombre or "admin" in nombre:
        return RolUsuario.SUPERVISOR
    return RolUsuario.DISPATCHER


class AuthService:
    """Login de usuarios con verificación intercambiable y alta automática opcional."""

    def __init__(
        self,
        usuarios: UsuarioStorage,
        verifier: CredentialVerifier,
        politica: PoliticaFecha,
        *,
        auto_provision: bool = False,
        bcrypt_rounds: int = _BCRYPT_DEFAULT_COST,
        logger: logging.Logger | None = None,
    ) -> None:
        self._usuarios = usuarios
        self._verifier = verifier
        self._politica = politica
        self._auto_provision = auto_provision
        self._rounds = bcrypt_rounds
        self._logger = logger or LOGGER

    async def login(self, username: Optional[str], password: Optional[str]) -> UsuarioResponse:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("Username y password son requeridos")

        usuario = await self._usuarios.por_username(username)
        if usuario is None and self._auto_provision:
            usuario = await self._provisionar(username, password)
        elif usuario is None or not usuario.is_active:
            self._logger.info("action=login result=rejected reason=unknown_or_inactive username=%s", username)
            raise AuthenticationError()
        elif not self._verifier.verify(usuario, password):
            self._logger.info("action=login result=rejected reason=bad_password username=%s", username)
            raise AuthenticationError()

        actualizado = await self._usuarios.actualizar(usuario.id, {"last_login": self._politica.ahora()})
        self._logger.info("action=login result=ok username=%s role=%s", username, usuario.role.value)
        return actualizado or usuario

    async def _provisionar(self, username: str, password: str) -> UsuarioResponse:
        rol = rol_por_username(username)
        usuario = await self._usuarios.insertar(
            {
                "username": username,
                "nombre": username,
                "role": rol.value,
                "password_hash": hash_password(password, rounds=self._rounds),
                "is_active": True,
                "created_at": self._politica.ahora(),
            }
        )
        self._logger.info("action=login auto_provision=created username=%s role=%s", username, rol.value)
        return usuario


__all__ = [
    "AuthService",
    "BcryptCredentialVerifier",
    "CredentialVerifier",
    "hash_password",
    "rol_por_username",
    "verify_password",
]
