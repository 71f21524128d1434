# Nombre de archivo: __init__.py
# Ubicación de archivo: db/models/__init__.py
# Descripción: Registra todos los modelos en la metadata compartida

from .cliente import Cliente
from .despacho import ESTADOS_DESPACHO, Despacho
from .usuario import ROLES_USUARIO, Usuario

__all__ = ["Cliente", "Despacho", "ESTADOS_DESPACHO", "ROLES_USUARIO", "Usuario"]
