# Nombre de archivo: test_config.py
# Ubicación de archivo: tests/test_config.py
# Descripción: Pruebas de la configuración por entorno y de la lectura de secretos

from __future__ import annotations

from pathlib import Path

from core.config import DB_FILE_NAME, Settings, default_data_dir
from core.secrets import get_secret


def test_variables_con_prefijo(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DESPACHOS_PORT", "4100")
    monkeypatch.setenv("DESPACHOS_TIMEZONE_MODE", "utc_offset")
    monkeypatch.setenv("DESPACHOS_DATA_DIR", str(tmp_path))
    settings = Settings()
    assert settings.port == 4100
    assert settings.timezone_mode == "utc_offset"
    assert settings.resolved_database_url == f"sqlite:///{tmp_path / DB_FILE_NAME}"


def test_database_url_explicita_tiene_prioridad(tmp_path: Path) -> None:
    settings = Settings(data_dir=tmp_path, database_url="sqlite:///otra.db")
    assert settings.resolved_database_url == "sqlite:///otra.db"


def test_origenes_separados_por_coma() -> None:
    settings = Settings(allowed_origins=" http://a.local, ,http://b.local ")
    assert settings.origins == ["http://a.local", "http://b.local"]
    assert Settings(allowed_origins="").origins == []


def test_directorio_de_datos_electron(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ELECTRON_USER_DATA", str(tmp_path))
    assert default_data_dir() == tmp_path


def test_fallback_deshabilitado_por_defecto(monkeypatch) -> None:
    monkeypatch.setenv("DESPACHOS_FALLBACK_PASSWORD", "clave-env")
    assert Settings().resolved_fallback_password is None
    assert Settings(allow_fallback_password=True).resolved_fallback_password == "clave-env"
    assert Settings(allow_fallback_password=True, fallback_password="x").resolved_fallback_password == "x"


def test_secretos_desde_archivo(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DESPACHOS_SEED_PASSWORD", raising=False)
    monkeypatch.setenv("DESPACHOS_SECRETS_DIR", str(tmp_path))
    (tmp_path / "despachos_seed_password").write_text("desde-archivo\n", encoding="utf-8")
    assert get_secret("DESPACHOS_SEED_PASSWORD") == "desde-archivo"
    assert Settings().resolved_seed_password == "desde-archivo"
    assert get_secret("NO_EXISTE", "defecto") == "defecto"
