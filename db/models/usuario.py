# Nombre de archivo: usuario.py
# Ubicación de archivo: db/models/usuario.py
# Descripción: Modelo SQLAlchemy para usuarios (despachadores y supervisores)

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from db.base import Base

ROLES_USUARIO = ("dispatcher", "supervisor")


class Usuario(Base):
    __tablename__ = "usuarios"
    __table_args__ = (
        CheckConstraint("role IN ('dispatcher', 'supervisor')", name="role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True)
    nombre = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)
    last_login = Column(DateTime, nullable=True)
