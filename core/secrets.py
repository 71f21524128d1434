# Nombre de archivo: secrets.py
# Ubicación de archivo: core/secrets.py
# Descripción: Lectura de secretos (contraseñas semilla/fallback) desde entorno o archivos montados

"""Lectura de secretos para el servidor de despachos.

Primero se consulta la variable de entorno ``name``. Si no está definida se
busca un archivo con el nombre en minúsculas dentro del directorio de secretos
(``DESPACHOS_SECRETS_DIR``, por defecto ``/run/secrets``).
"""

import os
from pathlib import Path
from typing import Optional

DEFAULT_SECRETS_DIR = "/run/secrets"


def secrets_dir() -> Path:
    return Path(os.getenv("DESPACHOS_SECRETS_DIR", DEFAULT_SECRETS_DIR))


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """Obtiene el secreto ``name`` o ``default`` si no está disponible."""

    value = os.getenv(name)
    if value:
        return value

    secret_file = secrets_dir() / name.lower()
    try:
        content = secret_file.read_text(encoding="utf-8").strip()
    except (FileNotFoundError, NotADirectoryError, PermissionError):
        return default
    return content or default
