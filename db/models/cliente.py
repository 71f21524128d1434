# Nombre de archivo: cliente.py
# Ubicación de archivo: db/models/cliente.py
# Descripción: Modelo SQLAlchemy para clientes (reservado, sin uso en el núcleo de despachos)

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String

from db.base import Base


class Cliente(Base):
    __tablename__ = "clientes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nombre = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    telefono = Column(String(64), nullable=True)
    direccion = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)
