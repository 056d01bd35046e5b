"""create bancos, movimientos and audit_log

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bancos",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("nombre", sa.String(100), nullable=False),
        sa.Column("capital_actual", sa.Numeric(19, 4), nullable=False),
        sa.Column("activo", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_table(
        "movimientos",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "banco_id", sa.String(50),
            sa.ForeignKey("bancos.id"), nullable=False,
        ),
        sa.Column(
            "tipo",
            sa.Enum(
                "INGRESO", "GASTO",
                name="movimiento_tipo_enum", create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("monto", sa.Numeric(19, 4), nullable=False),
        sa.Column("concepto", sa.String(200), nullable=False),
        sa.Column("fecha", sa.DateTime(), nullable=False),
        sa.Column("referencia", sa.String(100), nullable=True),
        sa.Column("categoria", sa.String(50), nullable=True),
        sa.Column("notas", sa.String(500), nullable=True),
        sa.Column("transferencia_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_movimientos_banco_id", "movimientos", ["banco_id"])
    op.create_index("ix_movimientos_fecha", "movimientos", ["fecha"])
    op.create_index(
        "ix_movimientos_transferencia_id", "movimientos", ["transferencia_id"]
    )
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_index("ix_movimientos_transferencia_id", table_name="movimientos")
    op.drop_index("ix_movimientos_fecha", table_name="movimientos")
    op.drop_index("ix_movimientos_banco_id", table_name="movimientos")
    op.drop_table("movimientos")
    sa.Enum(name="movimiento_tipo_enum").drop(op.get_bind(), checkfirst=True)
    op.drop_table("bancos")
