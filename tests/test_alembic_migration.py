# Nombre de archivo: test_alembic_migration.py
# Ubicación de archivo: tests/test_alembic_migration.py
# Descripción: Verifica que la migración inicial crea y elimina el esquema de despachos

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


def _config(url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT / "db" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    cfg.attributes["configure_logger"] = False
    return cfg


def test_upgrade_y_downgrade(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'migracion.db'}"
    cfg = _config(url)

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"usuarios", "despachos", "clientes"} <= set(inspector.get_table_names())
        columnas = {c["name"] for c in inspector.get_columns("despachos")}
        assert {"id_factura", "estado", "motivo_cancelacion", "updated_at"} <= columnas
        unicas = inspector.get_unique_constraints("despachos")
        assert any(u["column_names"] == ["id_factura"] for u in unicas)

        command.downgrade(cfg, "base")
        restantes = set(inspect(engine).get_table_names())
        assert not {"usuarios", "despachos", "clientes"} & restantes
    finally:
        engine.dispose()
