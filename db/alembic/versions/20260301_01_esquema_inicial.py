"""
# Nombre de archivo: 20260301_01_esquema_inicial.py
# Ubicación de archivo: db/alembic/versions/20260301_01_esquema_inicial.py
# Descripción: Crea las tablas usuarios, despachos y clientes con sus restricciones
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260301_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "usuarios",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("nombre", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_usuarios"),
        sa.UniqueConstraint("username", name="uq_usuarios_username"),
        sa.CheckConstraint("role IN ('dispatcher', 'supervisor')", name="ck_usuarios_role"),
    )
    op.create_index("ix_usuarios_role", "usuarios", ["role"])

    op.create_table(
        "despachos",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("id_factura", sa.String(length=64), nullable=False),
        sa.Column("nombre", sa.String(length=255), nullable=False),
        sa.Column("fecha", sa.DateTime(), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=False),
        sa.Column("estado", sa.String(length=16), nullable=False),
        sa.Column("despachador_id", sa.Integer(), nullable=True),
        sa.Column("despachador_username", sa.String(length=64), nullable=True),
        sa.Column("supervisor_id", sa.Integer(), nullable=True),
        sa.Column("supervisor_username", sa.String(length=64), nullable=True),
        sa.Column("notas", sa.Text(), nullable=True),
        sa.Column("motivo_cancelacion", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_despachos"),
        sa.UniqueConstraint("id_factura", name="uq_despachos_id_factura"),
        sa.CheckConstraint(
            "estado IN ('pending', 'in_progress', 'completed', 'cancelled')",
            name="ck_despachos_estado",
        ),
        sa.ForeignKeyConstraint(
            ["despachador_id"], ["usuarios.id"], name="fk_despachos_despachador_id_usuarios"
        ),
        sa.ForeignKeyConstraint(
            ["supervisor_id"], ["usuarios.id"], name="fk_despachos_supervisor_id_usuarios"
        ),
    )
    op.create_index("ix_despachos_estado", "despachos", ["estado"])
    op.create_index("ix_despachos_despachador_id", "despachos", ["despachador_id"])
    op.create_index("ix_despachos_supervisor_id", "despachos", ["supervisor_id"])
    op.create_index("ix_despachos_fecha_created_at", "despachos", ["fecha", "created_at"])

    op.create_table(
        "clientes",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("nombre", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("telefono", sa.String(length=64), nullable=True),
        sa.Column("direccion", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_clientes"),
    )
    op.create_index("ix_clientes_nombre", "clientes", ["nombre"])


def downgrade() -> None:
    op.drop_index("ix_clientes_nombre", table_name="clientes")
    op.drop_table("clientes")
    op.drop_index("ix_despachos_fecha_created_at", table_name="despachos")
    op.drop_index("ix_despachos_supervisor_id", table_name="despachos")
    op.drop_index("ix_despachos_despachador_id", table_name="despachos")
    op.drop_index("ix_despachos_estado", table_name="despachos")
    op.drop_table("despachos")
    op.drop_index("ix_usuarios_role", table_name="usuarios")
    op.drop_table("usuarios")
