"""Motor de hilandería: transición de materia prima a conos terminados.

Un producto "Por Hilandar" se mide por su cantidad cruda. Procesar un lote
convierte parte (o toda) esa cantidad en conos vendibles:

* Lote completo: el mismo registro pasa a ser un "Cono" terminado.
* Lote parcial: se crea un nuevo registro "Cono" y se descuenta la cantidad
  del registro original, que sigue "Por Hilandar" para lotes posteriores.

Ambas escrituras y el evento de bitácora van en una sola transacción.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InvalidQuantity, InvalidState, RepositoryError, StateError
from ..events import TIPO_HILANDERIA, TIPO_INVENTARIO, log_event
from ..models import EstadoProducto, Product
from ..validation import parse_estado, require_non_negative_int, require_positive_price, require_text

logger = logging.getLogger(__name__)

# Rendimiento del proceso: cada 2 unidades crudas producen 1 cono vendible
YIELD_DIVISOR = 2
FINISHED_GOODS_NAME = "Cono"


@dataclass(frozen=True, slots=True)
class DerivedFields:
    stock: int
    unit_price: Decimal


@dataclass(frozen=True, slots=True)
class ProcessingOutcome:
    product: Product

    @property
    def fully_converted(self) -> bool:
        return isinstance(self, FullyConverted)

    @property
    def can_continue(self) -> bool:
        """True si el producto de origen aún tiene cantidad por hilandar."""
        return False


@dataclass(frozen=True, slots=True)
class FullyConverted(ProcessingOutcome):
    pass


@dataclass(frozen=True, slots=True)
class PartiallyConverted(ProcessingOutcome):
    source: Product

    @property
    def new_product(self) -> Product:
        return self.product

    @property
    def can_continue(self) -> bool:
        return bool(self.source.cantidad)


def compute_derived_fields(raw_quantity: Any, base_price: Any, unit_price: Any = None) -> DerivedFields:
    """Stock y precio unitario sugeridos para un lote.

    ``stock = floor(raw_quantity / 2)``; el precio unitario copia el precio
    base salvo que se indique otro.
    """
    quantity = require_non_negative_int(raw_quantity, "cantidad")
    base = require_positive_price(base_price, "precio_base")
    unit = require_positive_price(unit_price, "precio_uni") if unit_price is not None else base
    return DerivedFields(stock=quantity // YIELD_DIVISOR, unit_price=unit)


def receive_raw_material(session: Session, *, nombre: str, color: str, descripcion: str | None,
                         cantidad: Any, usuario: str | None = None) -> Product:
    """Ingreso de tintorería: registra materia prima "Por Hilandar"."""
    qty = require_non_negative_int(cantidad, "cantidad")
    if qty < 1:
        raise InvalidQuantity("La cantidad debe ser mayor a cero")
    p = Product(
        nombre=require_text(nombre, "nombre"),
        color=(color or "").strip(),
        descripcion=(descripcion or "").strip() or None,
        estado=EstadoProducto.POR_HILANDAR,
        precio_base=Decimal("0.00"),
        precio_uni=Decimal("0.00"),
        stock=0,
        cantidad=qty,
        fecha_ingreso=datetime.now(),
    )
    try:
        session.add(p)
        session.flush()
        log_event(session, tipo=TIPO_INVENTARIO,
                  descripcion=f"Ingreso de tintorería: {p.nombre} {p.color} ({qty} u.)", usuario=usuario)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("No se pudo registrar el ingreso de %s: %s", nombre, exc)
        raise RepositoryError("Error al guardar producto de tintorería", cause=exc) from exc
    logger.info("Ingreso de materia prima #%s (%s u.)", p.id, qty)
    return p


def _stale_source(session: Session, product: Product) -> StateError:
    session.rollback()
    logger.warning("Hilandería revertida: el producto #%s cambió durante el proceso", product.id)
    return StateError(f"El producto #{product.id} fue modificado por otro usuario; vuelva a cargarlo")


def process_batch(session: Session, source: Product | int, requested_quantity: Any,
                  target_state: EstadoProducto | str, base_price: Any, unit_price: Any = None,
                  stock: Any = None, usuario: str | None = None) -> ProcessingOutcome:
    """Procesa ``requested_quantity`` unidades crudas de ``source``.

    Si ``unit_price`` o ``stock`` no se indican se calculan con
    :func:`compute_derived_fields`.

    ``source`` puede venir de otra sesión: el producto se vuelve a leer en
    ``session`` y el registro de origen solo se modifica si su cantidad sigue
    siendo la leída.
    """
    pk = source if isinstance(source, int) else source.id
    product = session.get(Product, pk, populate_existing=True) if pk is not None else None
    if product is None:
        raise StateError(f"Producto #{source} no encontrado")
    if product.estado is not EstadoProducto.POR_HILANDAR:
        raise StateError(f"El producto #{product.id} no está 'Por Hilandar' ({product.estado.value})")

    target = parse_estado(target_state)
    if not target.is_processed:
        raise InvalidState("El estado destino debe ser un producto terminado")

    qty = require_non_negative_int(requested_quantity, "cantidad")
    disponible = product.cantidad or 0
    if qty < 1:
        raise InvalidQuantity("La cantidad debe ser mayor a cero")
    if qty > disponible:
        raise InvalidQuantity("La cantidad a procesar no puede ser mayor a la disponible")

    derived = compute_derived_fields(qty, base_price, unit_price)
    base = require_positive_price(base_price, "precio_base")
    new_stock = derived.stock if stock is None else require_non_negative_int(stock, "stock")

    # Solo se toca el origen si sigue "Por Hilandar" con la cantidad leída
    source_row = update(Product).where(
        Product.id == product.id,
        Product.estado == EstadoProducto.POR_HILANDAR,
        Product.cantidad == disponible,
    ).execution_options(synchronize_session=False)

    try:
        if qty == disponible:
            result = session.execute(source_row.values(
                nombre=FINISHED_GOODS_NAME,
                estado=target,
                precio_base=base,
                precio_uni=derived.unit_price,
                stock=new_stock,
                cantidad=None,
            ))
            if result.rowcount != 1:
                raise _stale_source(session, product)
            outcome: ProcessingOutcome = FullyConverted(product)
            detalle = f"Producto #{product.id} procesado completamente ({qty} u. -> {new_stock} conos)"
        else:
            result = session.execute(source_row.values(cantidad=disponible - qty))
            if result.rowcount != 1:
                raise _stale_source(session, product)
            nuevo = Product(
                nombre=FINISHED_GOODS_NAME,
                color=product.color,
                descripcion=product.descripcion,
                estado=target,
                precio_base=base,
                precio_uni=derived.unit_price,
                stock=new_stock,
                cantidad=qty,
                fecha_ingreso=datetime.now(),
            )
            session.add(nuevo)
            outcome = PartiallyConverted(nuevo, product)
            detalle = (f"Lote de {qty} u. del producto #{product.id} -> {new_stock} conos; "
                       f"restan {disponible - qty} u.")
        session.flush()
        log_event(session, tipo=TIPO_HILANDERIA, descripcion=detalle, usuario=usuario)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Hilandería revertida para el producto #%s: %s", product.id, exc)
        raise RepositoryError("Error al procesar hilandería", cause=exc) from exc

    session.refresh(product)
    logger.info(detalle)
    return outcome
