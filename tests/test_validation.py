from decimal import Decimal

import pytest

from src.hilos_app.errors import InvalidPrice, InvalidQuantity, InvalidState, ValidationError
from src.hilos_app.models import EstadoProducto
from src.hilos_app.validation import (
    parse_customer_row,
    parse_decimal,
    parse_estado,
    parse_int,
    parse_product_row,
    validate_dni,
)


@pytest.mark.parametrize("raw, expected", [
    ("12.50", Decimal("12.50")),
    ("12,5", Decimal("12.50")),
    ("S/ 1.234,50", Decimal("1234.50")),
    (8.75, Decimal("8.75")),
    (3, Decimal("3.00")),
])
def test_parse_decimal(raw, expected):
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "1.234", "nan", True, ""])
def test_parse_decimal_rejects(raw):
    with pytest.raises(ValidationError):
        parse_decimal(raw)


def test_parse_decimal_allow_none():
    assert parse_decimal("  ", allow_none=True) is None


def test_parse_int():
    assert parse_int("10") == 10
    assert parse_int(4.0) == 4
    assert parse_int("", allow_none=True) is None
    with pytest.raises(ValidationError):
        parse_int("2.5")


def test_parse_estado_accepts_value_or_name():
    assert parse_estado("Conos Devanados") is EstadoProducto.CONOS_DEVANADOS
    assert parse_estado("por_hilandar") is EstadoProducto.POR_HILANDAR
    with pytest.raises(InvalidState):
        parse_estado("Teñido")


def test_validate_dni():
    assert validate_dni(" 12345678 ") == "12345678"
    with pytest.raises(ValidationError):
        validate_dni("1234567A")


def test_parse_raw_material_row_zeroes_prices():
    item = parse_product_row({"nombre": "Hilo", "color": "Rojo", "estado": "Por Hilandar",
                              "cantidad": "100", "precio_base": "9"})
    assert item.estado is EstadoProducto.POR_HILANDAR
    assert item.cantidad == 100
    assert item.precio_base == item.precio_uni == Decimal("0.00")
    assert item.stock == 0


def test_parse_processed_row_defaults_unit_price():
    item = parse_product_row({"nombre": "Cono", "estado": "Conos Veteados", "precio_base": 8.75, "stock": 75})
    assert item.precio_uni == Decimal("8.75")
    assert item.stock == 75
    assert item.cantidad is None


def test_parse_product_row_errors():
    with pytest.raises(ValidationError):
        parse_product_row({"nombre": "", "cantidad": 1})
    with pytest.raises(InvalidQuantity):
        parse_product_row({"nombre": "Hilo", "cantidad": -1})
    with pytest.raises(InvalidPrice):
        parse_product_row({"nombre": "Cono", "estado": "Conos Devanados", "precio_base": "-2", "stock": 1})


def test_parse_customer_row():
    item = parse_customer_row({"nombre": " Ana ", "dni": 12345678, "telefono": None})
    assert item.nombre == "Ana"
    assert item.dni == "12345678"
    assert item.telefono is None
