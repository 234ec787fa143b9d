"""Frontera de validación de entradas.

Convierte textos de formularios o celdas de Excel a valores del dominio
(``Decimal``, ``int``, ``EstadoProducto``) y verifica rangos antes de crear
registros. Una entrada mal formada produce ``ValidationError`` en lugar de
propagar valores vacíos o NaN.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .errors import InvalidPrice, InvalidQuantity, InvalidState, ValidationError
from .models import EstadoProducto

DNI_LENGTH = 8
_DNI_RE = re.compile(r"^\d{8}$")
CENT = Decimal("0.01")


def parse_decimal(value: Any, *, field: str = "monto", allow_none: bool = False) -> Decimal | None:
    """Convierte ``value`` a ``Decimal`` con 2 decimales.

    Acepta números y textos con coma o punto decimal ("12,50", "12.50").
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f"El campo '{field}' es obligatorio")
    if isinstance(value, bool):
        raise ValidationError(f"Valor inválido para '{field}': {value!r}")
    try:
        if isinstance(value, str):
            text = value.strip().replace("S/", "").strip()
            if "," in text and "." in text:
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", ".")
            dec = Decimal(text)
        elif isinstance(value, float):
            dec = Decimal(str(value))
        else:
            dec = Decimal(value)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"Valor inválido para '{field}': {value!r}") from exc
    if not dec.is_finite():
        raise ValidationError(f"Valor inválido para '{field}': {value!r}")
    if dec != dec.quantize(CENT):
        raise ValidationError(f"'{field}' admite como máximo 2 decimales: {value!r}")
    return dec.quantize(CENT)


def parse_int(value: Any, *, field: str = "cantidad", allow_none: bool = False) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_none:
            return None
        raise ValidationError(f"El campo '{field}' es obligatorio")
    if isinstance(value, bool):
        raise ValidationError(f"Valor inválido para '{field}': {value!r}")
    if isinstance(value, int):
        return value
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"Valor inválido para '{field}': {value!r}") from exc
    if not dec.is_finite() or dec != dec.to_integral_value():
        raise ValidationError(f"'{field}' debe ser un número entero: {value!r}")
    return int(dec)


def require_positive_price(value: Any, field: str) -> Decimal:
    try:
        price = parse_decimal(value, field=field)
    except ValidationError as exc:
        raise InvalidPrice(str(exc)) from exc
    if price <= 0:
        raise InvalidPrice(f"'{field}' debe ser mayor a cero")
    return price


def require_non_negative_int(value: Any, field: str) -> int:
    try:
        number = parse_int(value, field=field)
    except ValidationError as exc:
        raise InvalidQuantity(str(exc)) from exc
    if number < 0:
        raise InvalidQuantity(f"'{field}' no puede ser negativo")
    return number


def parse_estado(value: Any) -> EstadoProducto:
    try:
        return EstadoProducto.parse(value)
    except ValueError as exc:
        raise InvalidState(str(exc)) from exc


def validate_dni(value: Any) -> str:
    dni = str(value if value is not None else "").strip()
    if not _DNI_RE.match(dni):
        raise ValidationError(f"El DNI debe tener {DNI_LENGTH} dígitos")
    return dni


def require_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"El campo '{field}' es obligatorio")
    return text


@dataclass(frozen=True)
class ProductInput:
    nombre: str
    color: str
    descripcion: str | None
    estado: EstadoProducto
    precio_base: Decimal
    precio_uni: Decimal
    stock: int
    cantidad: int | None

    def as_fields(self) -> dict[str, Any]:
        return {
            "nombre": self.nombre,
            "color": self.color,
            "descripcion": self.descripcion,
            "estado": self.estado,
            "precio_base": self.precio_base,
            "precio_uni": self.precio_uni,
            "stock": self.stock,
            "cantidad": self.cantidad,
        }


@dataclass(frozen=True)
class CustomerInput:
    nombre: str
    dni: str
    telefono: str | None = None
    perfil: str | None = None


def parse_product_row(row: Mapping[str, Any]) -> ProductInput:
    """Valida una fila de producto (formulario o plantilla Excel).

    Para materia prima ("Por Hilandar") los precios y el stock quedan en cero
    y se exige ``cantidad``; para producto terminado se exigen precios >= 0.
    """
    nombre = require_text(row.get("nombre"), "nombre")
    color = str(row.get("color") or "").strip()
    descripcion = str(row.get("descripcion") or "").strip() or None
    estado = parse_estado(row.get("estado") or EstadoProducto.POR_HILANDAR.value)

    if estado is EstadoProducto.POR_HILANDAR:
        cantidad = require_non_negative_int(row.get("cantidad"), "cantidad")
        return ProductInput(nombre, color, descripcion, estado, Decimal("0.00"), Decimal("0.00"), 0, cantidad)

    precio_base = parse_decimal(row.get("precio_base"), field="precio_base")
    raw_uni = row.get("precio_uni")
    precio_uni = parse_decimal(raw_uni, field="precio_uni") if raw_uni not in (None, "") else precio_base
    if precio_base < 0 or precio_uni < 0:
        raise InvalidPrice("Los precios no pueden ser negativos")
    stock = require_non_negative_int(row.get("stock", 0), "stock")
    return ProductInput(nombre, color, descripcion, estado, precio_base, precio_uni, stock, None)


def parse_customer_row(row: Mapping[str, Any]) -> CustomerInput:
    nombre = require_text(row.get("nombre"), "nombre")
    dni = validate_dni(row.get("dni"))
    telefono = str(row.get("telefono") or "").strip() or None
    perfil = str(row.get("perfil") or "").strip() or None
    return CustomerInput(nombre=nombre, dni=dni, telefono=telefono, perfil=perfil)
