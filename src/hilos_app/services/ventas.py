"""Carrito, cobro y conciliación de stock de una venta."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    NoCustomerSelected,
    OutOfStock,
    PartialFailure,
    RepositoryError,
    StateError,
    ValidationError,
)
from ..events import TIPO_VENTA, log_event
from ..models import Customer, Product, Sale, SaleItem

if TYPE_CHECKING:
    from ..state import AppState

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    if isinstance(value, Decimal):
        return value.quantize(CENT)
    return Decimal(str(value)).quantize(CENT)


@dataclass
class CartItem:
    product: Product
    cantidad: int

    @property
    def subtotal(self) -> Decimal:
        return compute_line_subtotal(self)


@dataclass
class Cart:
    items: list[CartItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def find(self, product_id: int) -> CartItem | None:
        for item in self.items:
            if item.product.id == product_id:
                return item
        return None

    def quantity_of(self, product_id: int) -> int:
        item = self.find(product_id)
        return item.cantidad if item else 0

    @property
    def total(self) -> Decimal:
        return compute_cart_total(self)

    def clear(self) -> None:
        self.items.clear()


@dataclass(frozen=True)
class SaleResult:
    sale: Sale
    receipt_path: Path


def compute_line_subtotal(item: CartItem) -> Decimal:
    return _money(item.product.precio_uni) * item.cantidad


def compute_cart_total(cart: Cart) -> Decimal:
    return sum((compute_line_subtotal(item) for item in cart), Decimal("0.00"))


def set_cart_quantity(cart: Cart, product: Product, cantidad: int) -> Cart:
    """Fija la cantidad de un producto en el carrito.

    Una cantidad <= 0 quita la línea. Si supera el stock lanza ``OutOfStock``
    y el carrito queda igual.
    """
    if isinstance(cantidad, bool) or not isinstance(cantidad, int):
        raise ValidationError(f"Cantidad inválida: {cantidad!r}")
    if not product.estado.is_processed:
        raise StateError(f"El producto #{product.id} está en proceso y no se puede vender")

    existing = cart.find(product.id)
    if cantidad <= 0:
        if existing is not None:
            cart.items.remove(existing)
        return cart
    if cantidad > (product.stock or 0):
        raise OutOfStock(f"No hay suficiente stock de {product.nombre} (disponible: {product.stock})")

    if existing is None:
        cart.items.append(CartItem(product=product, cantidad=cantidad))
    else:
        existing.product = product
        existing.cantidad = cantidad
    return cart


def add_to_cart(cart: Cart, product: Product, delta: int = 1) -> Cart:
    """Suma ``delta`` unidades (puede ser negativo) al producto en el carrito."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError(f"Cantidad inválida: {delta!r}")
    return set_cart_quantity(cart, product, cart.quantity_of(product.id) + delta)


def remove_from_cart(cart: Cart, product_id: int) -> Cart:
    cart.items[:] = [item for item in cart.items if item.product.id != product_id]
    return cart


def checkout(session: Session, customer: Customer | int | None, cart: Cart, seller: str | None = None) -> Sale:
    """Registra la venta del carrito para ``customer``.

    Valida cliente, carrito y stock actual antes de escribir. La venta, sus
    detalles, el descuento de stock y el evento se confirman en una sola
    transacción.
    """
    if customer is None:
        raise NoCustomerSelected("Debe seleccionar un cliente")
    if cart is None or len(cart) == 0:
        raise EmptyCart("El carrito está vacío")

    customer_id = customer if isinstance(customer, int) else customer.id
    if customer_id is None or session.get(Customer, customer_id) is None:
        raise NoCustomerSelected("El cliente seleccionado no existe")
    vendedor = (seller or "").strip() or get_settings().vendedor_default

    # Re-validar contra el stock vigente, no el del momento de agregar
    lines: list[tuple[Product, int, Decimal, Decimal]] = []
    for item in cart:
        if isinstance(item.cantidad, bool) or not isinstance(item.cantidad, int) or item.cantidad < 1:
            raise InvalidQuantity(f"Cantidad inválida para el producto #{item.product.id}: {item.cantidad!r}")
        product = session.get(Product, item.product.id, populate_existing=True)
        if product is None or not product.estado.is_processed or item.cantidad > product.stock:
            raise InsufficientStock(item.product.id)
        precio = _money(product.precio_uni)
        lines.append((product, item.cantidad, precio, precio * item.cantidad))

    total = sum((subtotal for *_, subtotal in lines), Decimal("0.00"))

    try:
        sale = Sale(
            cliente_id=customer_id,
            fecha_venta=datetime.now(),
            total=total,
            vendedor=vendedor,
            codigo_qr=str(uuid.uuid4()),
        )
        session.add(sale)
        for product, cantidad, precio, subtotal in lines:
            sale.detalles.append(SaleItem(
                producto_id=product.id,
                cantidad=cantidad,
                precio_unitario=precio,
                subtotal=subtotal,
            ))
        session.flush()

        for product, cantidad, _, _ in lines:
            # Descuento atómico: falla si otro usuario vendió el stock entre la lectura y la escritura
            result = session.execute(
                update(Product)
                .where(Product.id == product.id, Product.stock >= cantidad)
                .values(stock=Product.stock - cantidad)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStock(product.id)

        log_event(session, tipo=TIPO_VENTA,
                  descripcion=f"Nueva venta realizada por un total de S/ {total:.2f}", usuario=vendedor)
        session.commit()
    except InsufficientStock:
        session.rollback()
        logger.warning("Venta revertida: el stock cambió durante el cobro")
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Venta revertida por error de base de datos: %s", exc)
        raise RepositoryError("Error al procesar la venta", cause=exc) from exc

    for product, *_ in lines:
        session.refresh(product)
    logger.info("Venta #%s registrada por %s: S/ %s", sale.id, vendedor, total)
    return sale


def process_sale(state: "AppState", receipt_dir: Path | str | None = None) -> SaleResult:
    """Cobra la venta en curso de ``state`` y genera su boleta.

    Si la venta se registró pero la boleta no pudo generarse lanza
    ``PartialFailure`` con el id de la venta para reimprimirla después.
    En ambos casos el borrador se limpia: la venta ya no debe cobrarse otra vez.
    """
    from ..receipts import generate_sale_receipt
    from ..repository import get_sale_full

    draft = state.draft
    with state.session_factory() as session:
        sale = checkout(session, draft.customer, draft.cart, state.seller_name)
        try:
            full = get_sale_full(session, sale.id)
            path = generate_sale_receipt(full, out_dir=receipt_dir)
        except Exception as exc:
            logger.exception("Venta #%s registrada sin boleta: %s", sale.id, exc)
            draft.reset()
            raise PartialFailure(
                f"La venta #{sale.id} se registró pero no se pudo generar la boleta",
                completed=["venta", "detalles", "stock", "evento"],
                sale_id=sale.id,
            ) from exc
    draft.reset()
    return SaleResult(sale=full, receipt_path=path)
