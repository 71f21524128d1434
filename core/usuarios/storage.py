# Nombre de archivo: storage.py
# Ubicación de archivo: core/usuarios/storage.py
# Descripción: Persistencia de usuarios (SQLite vía SQLAlchemy o memoria)

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from core.errors import DuplicateUsername, StorageFailure, ValidationError
from core.usuarios.schemas import ROLES_VALIDOS, UsuarioResponse
from db.models import Usuario
from db.session import session_scope

_CAMPOS = ("username", "nombre", "role", "password_hash", "is_active", "created_at", "last_login")


class UsuarioStorage(Protocol):
    """Contrato para la persistencia de usuarios."""

    async def obtener(self, usuario_id: int) -> Optional[UsuarioResponse]:
        """Usuario por id (activo o no)."""

    async def por_username(self, username: str) -> Optional[UsuarioResponse]:
        """Usuario por username exacto."""

    async def listar(self, *, role: str | None = None) -> List[UsuarioResponse]:
        """Usuarios ordenados por nombre, opcionalmente filtrados por rol."""

    async def insertar(self, valores: Dict[str, Any]) -> UsuarioResponse:
        """Crea el usuario; ``DuplicateUsername`` si el username existe."""

    async def actualizar(self, usuario_id: int, valores: Dict[str, Any]) -> Optional[UsuarioResponse]:
        """Aplica los valores; ``None`` si el id no existe."""


def _a_schema(fila: Usuario) -> UsuarioResponse:
    return UsuarioResponse(
        id=fila.id,
        username=fila.username,
        nombre=fila.nombre,
        role=fila.role,
        is_active=bool(fila.is_active),
        created_at=fila.created_at,
        last_login=fila.last_login,
        password_hash=fila.password_hash,
    )


@dataclass
class DatabaseUsuarioStorage(UsuarioStorage):
    """Persistencia SQLAlchemy (sincrónica encapsulada en hilos)."""

    session_factory: sessionmaker[Session]

    async def obtener(self, usuario_id: int) -> Optional[UsuarioResponse]:
        return await asyncio.to_thread(self._obtener_sync, usuario_id)

    async def por_username(self, username: str) -> Optional[UsuarioResponse]:
        return await asyncio.to_thread(self._por_username_sync, username)

    async def listar(self, *, role: str | None = None) -> List[UsuarioResponse]:
        return await asyncio.to_thread(self._listar_sync, role)

    async def insertar(self, valores: Dict[str, Any]) -> UsuarioResponse:
        return await asyncio.to_thread(self._insertar_sync, valores)

    async def actualizar(self, usuario_id: int, valores: Dict[str, Any]) -> Optional[UsuarioResponse]:
        return await asyncio.to_thread(self._actualizar_sync, usuario_id, valores)

    # --- Métodos privados sincrónicos -------------------------------------------------

    @contextmanager
    def _transaccion(self) -> Iterator[Session]:
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except IntegrityError as exc:
            texto = str(exc.orig).lower()
            if "unique" in texto:
                raise DuplicateUsername() from exc
            if "check" in texto:
                raise ValidationError("Rol inválido") from exc
            raise StorageFailure("Error de integridad al guardar el usuario") from exc
        except SQLAlchemyError as exc:
            raise StorageFailure("Error al acceder a la base de usuarios") from exc

    def _obtener_sync(self, usuario_id: int) -> Optional[UsuarioResponse]:
        with self._transaccion() as session:
            fila = session.get(Usuario, usuario_id)
            return _a_schema(fila) if fila else None

    def _por_username_sync(self, username: str) -> Optional[UsuarioResponse]:
        with self._transaccion() as session:
            fila = session.scalar(select(Usuario).where(Usuario.username == username))
            return _a_schema(fila) if fila else None

    def _listar_sync(self, role: str | None) -> List[UsuarioResponse]:
        stmt = select(Usuario).order_by(Usuario.nombre, Usuario.id)
        if role is not None:
            stmt = stmt.where(Usuario.role == role)
        with self._transaccion() as session:
            return [_a_schema(fila) for fila in session.scalars(stmt)]

    def _insertar_sync(self, valores: Dict[str, Any]) -> UsuarioResponse:
        with self._transaccion() as session:
            fila = Usuario(**{k: v for k, v in valores.items() if k in _CAMPOS})
            session.add(fila)
            session.flush()
            return _a_schema(fila)

    def _actualizar_sync(self, usuario_id: int, valores: Dict[str, Any]) -> Optional[UsuarioResponse]:
        with self._transaccion() as session:
            fila = session.get(Usuario, usuario_id)
            if fila is None:
                return None
            for campo, valor in valores.items():
                if campo in _CAMPOS:
                    setattr(fila, campo, valor)
            session.flush()
            return _a_schema(fila)


class InMemoryUsuarioStorage(UsuarioStorage):
    """Implementación en memoria útil para pruebas unitarias."""

    def __init__(self) -> None:
        self._usuarios: Dict[int, Dict[str, Any]] = {}
        self._counter = 0

    def _validar(self, registro: Dict[str, Any], usuario_id: int | None) -> None:
        if registro["role"] not in ROLES_VALIDOS:
            raise ValidationError("Rol inválido")
        for otro_id, otro in self._usuarios.items():
            if otro_id != usuario_id and otro["username"] == registro["username"]:
                raise DuplicateUsername()

    async def obtener(self, usuario_id: int) -> Optional[UsuarioResponse]:
        registro = self._usuarios.get(usuario_id)
        return UsuarioResponse(**registro) if registro else None

    async def por_username(self, username: str) -> Optional[UsuarioResponse]:
        for registro in self._usuarios.values():
            if registro["username"] == username:
                return UsuarioResponse(**registro)
        return None

    async def listar(self, *, role: str | None = None) -> List[UsuarioResponse]:
        registros = [r for r in self._usuarios.values() if role is None or r["role"] == role]
        registros.sort(key=lambda r: (r["nombre"], r["id"]))
        return [UsuarioResponse(**r) for r in registros]

    async def insertar(self, valores: Dict[str, Any]) -> UsuarioResponse:
        registro = {campo: valores.get(campo) for campo in _CAMPOS}
        registro["is_active"] = True if registro["is_active"] is None else registro["is_active"]
        self._validar(registro, None)
        self._counter += 1
        registro["id"] = self._counter
        self._usuarios[self._counter] = registro
        return UsuarioResponse(**registro)

    async def actualizar(self, usuario_id: int, valores: Dict[str, Any]) -> Optional[UsuarioResponse]:
        actual = self._usuarios.get(usuario_id)
        if actual is None:
            return None
        registro = {**actual, **{k: v for k, v in valores.items() if k in _CAMPOS}}
        self._validar(registro, usuario_id)
        self._usuarios[usuario_id] = registro
        return UsuarioResponse(**registro)


__all__ = ["DatabaseUsuarioStorage", "InMemoryUsuarioStorage", "UsuarioStorage"]
