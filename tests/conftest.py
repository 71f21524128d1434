# Nombre de archivo: conftest.py
# Ubicación de archivo: tests/conftest.py
# Descripción: Configuraciones comunes para Pytest (PYTHONPATH, settings, contexto y servicios)

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:  # pragma: no cover - inicialización
    sys.path.insert(0, str(ROOT_DIR))

from fastapi.testclient import TestClient  # noqa: E402

from api.app.context import build_context  # noqa: E402
from api.app.main import create_app  # noqa: E402
from core.config import Settings  # noqa: E402
from core.despachos.broadcast import Broadcaster  # noqa: E402
from core.despachos.search import InMemoryDespachoSearch  # noqa: E402
from core.despachos.service import DespachoService  # noqa: E402
from core.despachos.storage import InMemoryDespachoStorage  # noqa: E402
from core.usuarios.storage import InMemoryUsuarioStorage  # noqa: E402
from core.utils.fechas import PoliticaFecha  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        bcrypt_rounds=4,
        log_to_file=False,
        seed_password="admin123",
        allowed_origins="",
    )


@pytest.fixture
def context(settings: Settings):
    ctx = build_context(settings)
    yield ctx
    ctx.close()


@pytest.fixture
def client(context):
    app = create_app(context)
    with TestClient(app) as test_client:
        yield test_client


def servicio_en_memoria(politica: PoliticaFecha | None = None) -> DespachoService:
    politica = politica or PoliticaFecha()
    storage = InMemoryDespachoStorage(politica=politica)
    return DespachoService(
        storage,
        InMemoryUsuarioStorage(),
        InMemoryDespachoSearch(storage, politica),
        Broadcaster(),
        politica,
    )


@pytest.fixture(params=["sql", "memoria"])
def servicio(request, context) -> DespachoService:
    """Servicio de despachos sobre cada backend (SQLite y espejo en memoria)."""

    if request.param == "sql":
        return context.despachos
    return servicio_en_memoria(context.politica)
