from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .errors import DuplicateId, InvalidPrice, InvalidQuantity, RepositoryError, StateError, ValidationError
from .models import PROCESSED_STATES, Base, Customer, EstadoProducto, Product, Sale, SaleItem
from .validation import (
    CustomerInput,
    ProductInput,
    parse_decimal,
    parse_estado,
    require_non_negative_int,
    require_text,
    validate_dni,
)

logger = logging.getLogger(__name__)

PERFILES_CON_ACCESO = ("Administrador", "Vendedor", "Almacenero")

_PRODUCT_FIELDS = {"nombre", "color", "descripcion", "estado", "precio_base", "precio_uni",
                   "stock", "cantidad", "fecha_ingreso"}
_PRODUCT_ORDER = {
    "created_at": (Product.created_at.desc(), Product.id.desc()),
    "nombre": (Product.nombre.asc(), Product.id.asc()),
    "id": (Product.id.asc(),),
}


@contextmanager
def _guard(session: Session, action: str) -> Iterator[None]:
    """Deshace la transacción y traduce errores de SQLAlchemy a ``RepositoryError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Error de base de datos al %s: %s", action, exc)
        raise RepositoryError(f"Error de base de datos al {action}", cause=exc) from exc


def init_db(engine, seed_admin: tuple[str, str] | None = None) -> None:
    """Crea tablas y opcionalmente registra un administrador (nombre, DNI)."""
    Base.metadata.create_all(bind=engine)
    if seed_admin is None:
        return
    nombre, dni = seed_admin
    with Session(bind=engine, expire_on_commit=False) as session:
        if get_customer_by_dni(session, dni) is None:
            add_customer(session, nombre=nombre, dni=dni, perfil="Administrador")
            logger.info("Administrador inicial registrado: %s", nombre)


# --- Productos ---

def add_product(session: Session, *, nombre: str, color: str = "", descripcion: str | None = None,
                estado: EstadoProducto | str = EstadoProducto.POR_HILANDAR,
                precio_base: Decimal | int = Decimal("0.00"), precio_uni: Decimal | int = Decimal("0.00"),
                stock: int = 0, cantidad: int | None = None,
                fecha_ingreso: datetime | None = None, commit: bool = True) -> Product:
    p = Product(
        nombre=nombre,
        color=color,
        descripcion=descripcion,
        estado=parse_estado(estado),
        precio_base=Decimal(precio_base),
        precio_uni=Decimal(precio_uni),
        stock=stock,
        cantidad=cantidad,
        fecha_ingreso=fecha_ingreso or datetime.now(),
    )
    with _guard(session, "crear producto"):
        session.add(p)
        if commit:
            session.commit()
        else:
            session.flush()
    return p


def add_products(session: Session, products: Iterable[ProductInput]) -> list[Product]:
    """Carga masiva: todos los productos se insertan en una sola transacción."""
    now = datetime.now()
    objs = [Product(fecha_ingreso=now, **item.as_fields()) for item in products]
    with _guard(session, "importar productos"):
        session.add_all(objs)
        session.commit()
    return objs


def list_products(session: Session, *, estado: EstadoProducto | str | None = None,
                  only_in_stock: bool = False, order_by: str = "created_at") -> list[Product]:
    """Lista productos con filtros por estado y stock > 0."""
    q = session.query(Product)
    if estado is not None:
        q = q.filter(Product.estado == parse_estado(estado))
    if only_in_stock:
        q = q.filter(Product.stock > 0)
    try:
        ordering = _PRODUCT_ORDER[order_by]
    except KeyError:
        raise ValidationError(f"Orden no soportado: {order_by!r}") from None
    with _guard(session, "listar productos"):
        return q.order_by(*ordering).all()


def list_saleable_products(session: Session) -> list[Product]:
    """Productos terminados con stock disponible, ordenados por nombre."""
    with _guard(session, "listar productos vendibles"):
        return (
            session.query(Product)
            .filter(Product.estado.in_(PROCESSED_STATES), Product.stock > 0)
            .order_by(Product.nombre.asc(), Product.id.asc())
            .all()
        )


def get_product_by_id(session: Session, product_id: int) -> Product | None:
    with _guard(session, "leer producto"):
        return session.get(Product, product_id)


def _clean_product_fields(fields: dict[str, Any]) -> dict[str, Any]:
    clean: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "nombre":
            clean[key] = require_text(value, "nombre")
        elif key == "color":
            clean[key] = str(value or "").strip()
        elif key == "descripcion":
            clean[key] = str(value or "").strip() or None
        elif key == "estado":
            clean[key] = parse_estado(value)
        elif key in ("precio_base", "precio_uni"):
            price = parse_decimal(value, field=key)
            if price < 0:
                raise InvalidPrice(f"'{key}' no puede ser negativo")
            clean[key] = price
        elif key == "stock":
            clean[key] = require_non_negative_int(value, "stock")
        elif key == "cantidad":
            clean[key] = None if value is None else require_non_negative_int(value, "cantidad")
        elif key == "fecha_ingreso":
            if not isinstance(value, datetime):
                raise ValidationError("'fecha_ingreso' debe ser una fecha y hora")
            clean[key] = value
    return clean


def update_product(session: Session, product_id: int, **fields: Any) -> Product | None:
    """Edita un producto validando cada campo.

    Un producto "Por Hilandar" no tiene precio ni stock: ambos deben quedar en cero.
    """
    unknown = set(fields) - _PRODUCT_FIELDS
    if unknown:
        raise ValidationError(f"Campos no editables: {', '.join(sorted(unknown))}")
    clean = _clean_product_fields(fields)
    p = session.get(Product, product_id)
    if not p:
        return None

    if clean.get("estado", p.estado) is EstadoProducto.POR_HILANDAR:
        if any(clean.get(k, getattr(p, k)) != 0 for k in ("precio_base", "precio_uni")):
            raise InvalidPrice("Un producto por hilandar no tiene precio")
        if clean.get("stock", p.stock) != 0:
            raise InvalidQuantity("Un producto por hilandar no tiene stock vendible")

    for key, value in clean.items():
        setattr(p, key, value)
    with _guard(session, "actualizar producto"):
        session.commit()
    return p


def delete_product_by_id(session: Session, product_id: int) -> bool:
    p = session.get(Product, product_id)
    if not p:
        return False
    with _guard(session, "eliminar producto"):
        session.delete(p)
        session.commit()
    return True


# --- Clientes ---

def _ensure_unique_dni(session: Session, dni: str, exclude_id: int | None = None) -> None:
    q = session.query(Customer.id).filter(Customer.dni == dni)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise DuplicateId(f"Ya existe un cliente con el DNI {dni}", code="DuplicateId")


def add_customer(session: Session, *, nombre: str, dni: str, telefono: str | None = None,
                 perfil: str | None = None) -> Customer:
    nombre = require_text(nombre, "nombre")
    dni = validate_dni(dni)
    _ensure_unique_dni(session, dni)
    c = Customer(nombre=nombre, dni=dni, telefono=(telefono or None), perfil=(perfil or None),
                 created_at=datetime.now())
    with _guard(session, "crear cliente"):
        try:
            session.add(c)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateId(f"Ya existe un cliente con el DNI {dni}") from exc
    return c


def add_customers(session: Session, customers: Iterable[CustomerInput]) -> list[Customer]:
    """Añade una lista de clientes; rechaza DNIs repetidos en el lote o en la base."""
    batch = list(customers)
    seen: set[str] = set()
    for item in batch:
        if item.dni in seen:
            raise DuplicateId(f"DNI repetido en la carga: {item.dni}")
        seen.add(item.dni)
        _ensure_unique_dni(session, item.dni)
    now = datetime.now()
    objs = [Customer(nombre=i.nombre, dni=i.dni, telefono=i.telefono, perfil=i.perfil, created_at=now)
            for i in batch]
    with _guard(session, "importar clientes"):
        try:
            session.add_all(objs)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateId("Uno de los DNI ya está registrado") from exc
    return objs


def list_customers(session: Session) -> list[Customer]:
    """Lista todos los clientes, los más recientes primero."""
    with _guard(session, "listar clientes"):
        return session.query(Customer).order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def search_customers(session: Session, term: str) -> list[Customer]:
    """Busca por nombre (sin distinguir mayúsculas), DNI o teléfono."""
    term = (term or "").strip()
    if not term:
        return list_customers(session)
    like = f"%{term}%"
    with _guard(session, "buscar clientes"):
        return (
            session.query(Customer)
            .filter(or_(Customer.nombre.ilike(like), Customer.dni.like(like), Customer.telefono.like(like)))
            .order_by(Customer.created_at.desc(), Customer.id.desc())
            .all()
        )


def get_customer_by_id(session: Session, customer_id: int) -> Customer | None:
    with _guard(session, "leer cliente"):
        return session.get(Customer, customer_id)


def get_customer_by_dni(session: Session, dni: str) -> Customer | None:
    with _guard(session, "leer cliente"):
        return session.query(Customer).filter(Customer.dni == dni).first()


def update_customer(session: Session, customer_id: int, *, nombre: str | None = None, dni: str | None = None,
                    telefono: str | None = None, perfil: str | None = None) -> Customer | None:
    obj = session.get(Customer, customer_id)
    if not obj:
        return None
    if dni is not None:
        dni = validate_dni(dni)
        _ensure_unique_dni(session, dni, exclude_id=customer_id)
        obj.dni = dni
    if nombre is not None:
        obj.nombre = require_text(nombre, "nombre")
    if telefono is not None:
        obj.telefono = telefono or None
    if perfil is not None:
        obj.perfil = perfil or None
    with _guard(session, "actualizar cliente"):
        session.commit()
    return obj


def delete_customer_by_id(session: Session, customer_id: int) -> bool:
    obj = session.get(Customer, customer_id)
    if not obj:
        return False
    if session.query(Sale.id).filter(Sale.cliente_id == customer_id).first() is not None:
        raise StateError("No se puede eliminar un cliente con ventas registradas")
    with _guard(session, "eliminar cliente"):
        session.delete(obj)
        session.commit()
    return True


def count_customers(session: Session) -> int:
    return session.query(Customer).count()


def authenticate_user(session: Session, *, nombre: str, dni: str) -> Optional[Customer]:
    """Inicio de sesión por coincidencia exacta de nombre + DNI.

    Devuelve ``None`` si no hay coincidencia o si el perfil no tiene acceso.
    """
    nombre = require_text(nombre, "nombre")
    dni = validate_dni(dni)
    user = get_customer_by_dni(session, dni)
    if user is None or user.nombre != nombre:
        logger.info("Intento de acceso fallido para DNI %s", dni)
        return None
    if user.perfil not in PERFILES_CON_ACCESO:
        logger.info("Usuario %s sin perfil de acceso", nombre)
        return None
    return user


# --- Ventas ---

def _start_of(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _end_of(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    # Incluir todo el día
    return datetime.combine(value, time.max)


def list_sales(session: Session, *, desde: date | datetime | None = None, hasta: date | datetime | None = None,
               search: str | None = None) -> list[Sale]:
    """Historial de ventas con cliente y detalles cargados.

    ``search`` filtra por nombre o DNI del cliente y por vendedor.
    """
    q = (
        session.query(Sale)
        .join(Sale.cliente)
        .options(selectinload(Sale.cliente), selectinload(Sale.detalles).selectinload(SaleItem.producto))
    )
    if desde is not None:
        q = q.filter(Sale.fecha_venta >= _start_of(desde))
    if hasta is not None:
        q = q.filter(Sale.fecha_venta <= _end_of(hasta))
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(Customer.nombre.ilike(like), Customer.dni.like(like), Sale.vendedor.ilike(like)))
    with _guard(session, "listar ventas"):
        return q.order_by(Sale.fecha_venta.desc(), Sale.id.desc()).all()


def get_sale_full(session: Session, sale_id: int) -> Sale | None:
    with _guard(session, "leer venta"):
        return (
            session.query(Sale)
            .options(selectinload(Sale.cliente), selectinload(Sale.detalles).selectinload(SaleItem.producto))
            .filter(Sale.id == sale_id)
            .first()
        )
