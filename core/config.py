# Nombre de archivo: config.py
# Ubicación de archivo: core/config.py
# Descripción: Configuración centralizada (entorno) del servidor de despachos

"""Configuración central del servidor de despachos.

Todas las variables usan el prefijo ``DESPACHOS_`` (por ejemplo
``DESPACHOS_PORT=3000``). La base SQLite vive en el directorio de datos del
usuario según la plataforma, salvo que se indique ``DESPACHOS_DATABASE_URL``.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.secrets import get_secret

APP_DIR_NAME = "vencedora-despachos"
DB_FILE_NAME = "vencedora-despachos.db"


def default_data_dir() -> Path:
    """Resuelve el directorio de datos del usuario según la plataforma."""

    electron_dir = os.getenv("ELECTRON_USER_DATA")
    if electron_dir:
        return Path(electron_dir)
    if sys.platform == "win32" and os.getenv("APPDATA"):
        return Path(os.environ["APPDATA"]) / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    xdg = os.getenv("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


class Settings(BaseSettings):
    """Parámetros configurables del servidor."""

    service_name: str = Field(default="despachos", description="Nombre lógico del servicio (logger raíz)")
    host: str = Field(default="127.0.0.1", description="Host de escucha HTTP/WebSocket")
    port: int = Field(default=3000, description="Puerto de escucha HTTP/WebSocket")
    log_level: str = Field(default="INFO", description="Nivel de logging")
    log_to_file: bool | None = Field(default=None, description="Fuerza logs a archivo (None: según ENV)")
    data_dir: Path = Field(default_factory=default_data_dir, description="Directorio de datos del usuario")
    database_url: str | None = Field(default=None, description="URL SQLAlchemy; si falta se usa SQLite en data_dir")
    timezone_mode: Literal["naive_local", "utc_offset"] = Field(
        default="naive_local",
        description="naive_local: guarda hora local tal cual; utc_offset: convierte a UTC con offset fijo",
    )
    utc_offset_hours: float = Field(default=-4.0, description="Offset fijo de la hora local (modo utc_offset)")
    allow_fallback_password: bool = Field(
        default=False,
        description="Acepta la contraseña fallback para cualquier usuario activo (confirmar antes de habilitar)",
    )
    fallback_password: str | None = Field(default=None, description="Contraseña fallback (solo si está habilitada)")
    auto_provision_users: bool = Field(default=False, description="Crea usuarios desconocidos en el primer login")
    seed_password: str | None = Field(default=None, description="Contraseña de las cuentas semilla")
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)
    allowed_origins: str = Field(default="", description="Orígenes permitidos separados por coma (CORS y WebSocket)")
    ws_queue_size: int = Field(default=1000, ge=1, description="Eventos pendientes por sesión antes de cortarla")

    model_config = SettingsConfigDict(env_prefix="DESPACHOS_", case_sensitive=False)

    @property
    def origins(self) -> list[str]:
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()]

    @property
    def database_path(self) -> Path:
        return self.data_dir / DB_FILE_NAME

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"

    @property
    def resolved_seed_password(self) -> str:
        return self.seed_password or get_secret("DESPACHOS_SEED_PASSWORD") or "admin123"

    @property
    def resolved_fallback_password(self) -> str | None:
        if not self.allow_fallback_password:
            return None
        return self.fallback_password or get_secret("DESPACHOS_FALLBACK_PASSWORD") or "admin123"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna settings cacheados para reutilizar en el proyecto."""

    return Settings()


__all__ = ["Settings", "default_data_dir", "get_settings"]
