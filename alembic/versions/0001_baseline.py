"""esquema inicial: productos, usuarios, ventas, ventas_detalle, eventos

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None

ESTADOS = ("Por Hilandar", "Conos Devanados", "Conos Veteados")


def upgrade() -> None:
    op.create_table(
        "usuarios",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("nombre", sa.String(200), nullable=False),
        sa.Column("dni", sa.String(8), nullable=False, unique=True),
        sa.Column("telefono", sa.String(30)),
        sa.Column("perfil", sa.String(40)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "productos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("nombre", sa.String(200), nullable=False),
        sa.Column("color", sa.String(80), nullable=False),
        sa.Column("descripcion", sa.Text()),
        sa.Column("estado", sa.Enum(*ESTADOS, name="estadoproducto", native_enum=False, length=40),
                  nullable=False),
        sa.Column("precio_base", sa.Numeric(12, 2), nullable=False),
        sa.Column("precio_uni", sa.Numeric(12, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("cantidad", sa.Integer()),
        sa.Column("fecha_ingreso", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_productos_estado", "productos", ["estado"])
    op.create_index("ix_productos_stock", "productos", ["stock"])
    op.create_table(
        "ventas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cliente_id", sa.Integer(), sa.ForeignKey("usuarios.id"), nullable=False),
        sa.Column("fecha_venta", sa.DateTime(), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("vendedor", sa.String(120), nullable=False),
        sa.Column("codigo_qr", sa.String(64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_ventas_fecha_venta", "ventas", ["fecha_venta"])
    op.create_table(
        "ventas_detalle",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("venta_id", sa.Integer(), sa.ForeignKey("ventas.id"), nullable=False),
        sa.Column("producto_id", sa.Integer(), sa.ForeignKey("productos.id", ondelete="SET NULL")),
        sa.Column("cantidad", sa.Integer(), nullable=False),
        sa.Column("precio_unitario", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "eventos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tipo", sa.String(60), nullable=False),
        sa.Column("descripcion", sa.String(500), nullable=False),
        sa.Column("fecha", sa.DateTime(), nullable=False),
        sa.Column("usuario", sa.String(120)),
    )
    op.create_index("ix_eventos_fecha", "eventos", ["fecha"])


def downgrade() -> None:
    op.drop_index("ix_eventos_fecha", table_name="eventos")
    op.drop_table("eventos")
    op.drop_table("ventas_detalle")
    op.drop_index("ix_ventas_fecha_venta", table_name="ventas")
    op.drop_table("ventas")
    op.drop_index("ix_productos_stock", table_name="productos")
    op.drop_index("ix_productos_estado", table_name="productos")
    op.drop_table("productos")
    op.drop_table("usuarios")
