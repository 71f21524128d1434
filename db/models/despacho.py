# Nombre de archivo: despacho.py
# Ubicación de archivo: db/models/despacho.py
# Descripción: Modelo SQLAlchemy para despachos (tickets de entrega)

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text

from db.base import Base

ESTADOS_DESPACHO = ("pending", "in_progress", "completed", "cancelled")


class Despacho(Base):
    """Despacho con su ciclo de vida; los usernames se guardan desnormalizados."""

    __tablename__ = "despachos"
    __table_args__ = (
        CheckConstraint(
            "estado IN ('pending', 'in_progress', 'completed', 'cancelled')",
            name="estado",
        ),
        Index("ix_despachos_fecha_created_at", "fecha", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    id_factura = Column(String(64), nullable=False, unique=True)
    nombre = Column(String(255), nullable=False)
    fecha = Column(DateTime, nullable=False)
    descripcion = Column(Text, nullable=False, default="")
    estado = Column(String(16), nullable=False, default="pending", index=True)
    despachador_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True, index=True)
    despachador_username = Column(String(64), nullable=True)
    supervisor_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True, index=True)
    supervisor_username = Column(String(64), nullable=True)
    notas = Column(Text, nullable=True)
    motivo_cancelacion = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)
