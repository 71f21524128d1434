# Nombre de archivo: __init__.py
# Ubicación de archivo: core/usuarios/__init__.py
# Descripción: Dominio de usuarios (despachadores y supervisores)

from .schemas import LoginRequest, RolUsuario, UsuarioActualizar, UsuarioCrear, UsuarioResponse
from .storage import DatabaseUsuarioStorage, InMemoryUsuarioStorage, UsuarioStorage

__all__ = [
    "DatabaseUsuarioStorage",
    "InMemoryUsuarioStorage",
    "LoginRequest",
    "RolUsuario",
    "UsuarioActualizar",
    "UsuarioCrear",
    "UsuarioResponse",
    "UsuarioStorage",
]
