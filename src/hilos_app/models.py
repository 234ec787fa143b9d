from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .errors import StateError

MONEY = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Base declarativa común para todos los modelos."""
    pass


class EstadoProducto(str, enum.Enum):
    """Ciclo de vida de un producto en el taller."""

    POR_HILANDAR = "Por Hilandar"        # materia prima, se mide por cantidad
    CONOS_DEVANADOS = "Conos Devanados"  # producto terminado tipo A
    CONOS_VETEADOS = "Conos Veteados"    # producto terminado tipo B

    @property
    def is_processed(self) -> bool:
        return self is not EstadoProducto.POR_HILANDAR

    @classmethod
    def parse(cls, value: "EstadoProducto | str") -> "EstadoProducto":
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Estado desconocido: {value!r}")


PROCESSED_STATES = (EstadoProducto.CONOS_DEVANADOS, EstadoProducto.CONOS_VETEADOS)


class Customer(Base):
    """Cliente del roster; el personal con perfil también inicia sesión con nombre + DNI."""

    __tablename__ = "usuarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    dni: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    telefono: Mapped[str | None] = mapped_column(String(30))
    perfil: Mapped[str | None] = mapped_column(String(40))  # Administrador / Vendedor / Almacenero
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    ventas: Mapped[List["Sale"]] = relationship("Sale", back_populates="cliente")

    def __repr__(self) -> str:  # pragma: no cover
        return f"Customer(id={self.id!r}, nombre={self.nombre!r}, dni={self.dni!r})"


class Product(Base):
    __tablename__ = "productos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    color: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    descripcion: Mapped[str | None] = mapped_column(Text)
    estado: Mapped[EstadoProducto] = mapped_column(
        Enum(
            EstadoProducto,
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=40,
            validate_strings=True,
        ),
        nullable=False,
        default=EstadoProducto.POR_HILANDAR,
        index=True,
    )
    precio_base: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    precio_uni: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    cantidad: Mapped[int | None] = mapped_column(Integer)  # cantidad cruda, solo en "Por Hilandar"
    fecha_ingreso: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    @property
    def en_proceso(self) -> bool:
        return self.estado is EstadoProducto.POR_HILANDAR

    def __repr__(self) -> str:  # pragma: no cover
        return f"Product(id={self.id!r}, nombre={self.nombre!r}, estado={self.estado.value!r}, stock={self.stock!r})"


class Sale(Base):
    __tablename__ = "ventas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cliente_id: Mapped[int] = mapped_column(Integer, ForeignKey("usuarios.id"), nullable=False)
    fecha_venta: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False, index=True)
    total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    vendedor: Mapped[str] = mapped_column(String(120), nullable=False)
    codigo_qr: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)  # payload del QR
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    cliente: Mapped["Customer"] = relationship("Customer", back_populates="ventas")
    detalles: Mapped[List["SaleItem"]] = relationship(
        "SaleItem", back_populates="venta", cascade="all, delete-orphan", order_by="SaleItem.id"
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"Sale(id={self.id!r}, total={self.total!r}, vendedor={self.vendedor!r})"


class SaleItem(Base):
    __tablename__ = "ventas_detalle"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    venta_id: Mapped[int] = mapped_column(Integer, ForeignKey("ventas.id"), nullable=False)
    producto_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("productos.id", ondelete="SET NULL"))
    cantidad: Mapped[int] = mapped_column(Integer, nullable=False)
    precio_unitario: Mapped[Decimal] = mapped_column(MONEY, nullable=False)  # precio al momento de la venta
    subtotal: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    venta: Mapped["Sale"] = relationship("Sale", back_populates="detalles")
    producto: Mapped[Optional["Product"]] = relationship("Product")

    def __repr__(self) -> str:  # pragma: no cover
        return f"SaleItem(id={self.id!r}, producto_id={self.producto_id!r}, cantidad={self.cantidad!r})"


@event.listens_for(SaleItem, "before_update")
def _sale_item_is_immutable(mapper, connection, target: SaleItem) -> None:
    raise StateError(f"El detalle de venta #{target.id} no puede modificarse")


class Event(Base):
    """Bitácora de eventos (solo inserción)."""

    __tablename__ = "eventos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tipo: Mapped[str] = mapped_column(String(60), nullable=False)
    descripcion: Mapped[str] = mapped_column(String(500), nullable=False)
    fecha: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False, index=True)
    usuario: Mapped[str | None] = mapped_column(String(120))

    def __repr__(self) -> str:  # pragma: no cover
        return f"Event(id={self.id!r}, tipo={self.tipo!r})"
