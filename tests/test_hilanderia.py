from decimal import Decimal

import pytest

from src.hilos_app.errors import InvalidPrice, InvalidQuantity, InvalidState, StateError
from src.hilos_app.events import TIPO_HILANDERIA, TIPO_INVENTARIO, list_events
from src.hilos_app.models import EstadoProducto, Product
from src.hilos_app.services.hilanderia import (
    FullyConverted,
    PartiallyConverted,
    compute_derived_fields,
    process_batch,
    receive_raw_material,
)


@pytest.fixture
def materia_prima(session):
    return receive_raw_material(session, nombre="Hilo Algodón", color="Rojo",
                                descripcion="Algodón peinado", cantidad=100, usuario="Almacén")


def test_receive_raw_material_creates_unpriced_product(session, materia_prima):
    p = materia_prima
    assert p.id is not None
    assert p.estado is EstadoProducto.POR_HILANDAR
    assert p.cantidad == 100
    assert p.stock == 0
    assert p.precio_base == Decimal("0.00")
    ev = list_events(session)[0]
    assert ev.tipo == TIPO_INVENTARIO
    assert ev.usuario == "Almacén"


@pytest.mark.parametrize("cantidad", [0, -5, "abc", None])
def test_receive_raw_material_requires_positive_quantity(session, cantidad):
    with pytest.raises((InvalidQuantity, ValueError)):
        receive_raw_material(session, nombre="Hilo", color="", descripcion=None, cantidad=cantidad)
    assert session.query(Product).count() == 0


@pytest.mark.parametrize("raw, stock", [(0, 0), (1, 0), (2, 1), (3, 1), (100, 50), (101, 50)])
def test_derived_stock_is_floor_half(raw, stock):
    derived = compute_derived_fields(raw, "5.00")
    assert derived.stock == stock
    assert derived.unit_price == Decimal("5.00")


def test_derived_unit_price_override():
    assert compute_derived_fields(10, "5.00", "6.50").unit_price == Decimal("6.50")


def test_derived_rejects_negative_price():
    with pytest.raises(InvalidPrice):
        compute_derived_fields(10, "-1")


def test_full_conversion_updates_same_record(session, materia_prima):
    outcome = process_batch(session, materia_prima.id, 100, EstadoProducto.CONOS_DEVANADOS, "4.00")

    assert isinstance(outcome, FullyConverted)
    assert outcome.fully_converted is True
    assert outcome.can_continue is False
    p = session.get(Product, materia_prima.id)
    assert p.nombre == "Cono"
    assert p.estado is EstadoProducto.CONOS_DEVANADOS
    assert p.stock == 50
    assert p.precio_base == Decimal("4.00")
    assert p.precio_uni == Decimal("4.00")
    assert p.cantidad is None
    assert session.query(Product).count() == 1
    assert list_events(session)[0].tipo == TIPO_HILANDERIA


def test_partial_conversion_splits_record(session, materia_prima):
    outcome = process_batch(session, materia_prima, 40, "Conos Veteados", "3.00", unit_price="3.50")

    assert isinstance(outcome, PartiallyConverted)
    assert outcome.can_continue is True
    nuevo = outcome.new_product
    assert nuevo.id != materia_prima.id
    assert nuevo.nombre == "Cono"
    assert nuevo.color == "Rojo"
    assert nuevo.estado is EstadoProducto.CONOS_VETEADOS
    assert nuevo.stock == 20
    assert nuevo.precio_uni == Decimal("3.50")
    assert nuevo.cantidad == 40

    origen = session.get(Product, materia_prima.id)
    assert origen.estado is EstadoProducto.POR_HILANDAR
    assert origen.cantidad == 60
    assert origen.stock == 0


def test_partial_then_full_consumes_source(session, materia_prima):
    process_batch(session, materia_prima, 30, EstadoProducto.CONOS_DEVANADOS, "4.00")
    outcome = process_batch(session, materia_prima, 70, EstadoProducto.CONOS_DEVANADOS, "4.00")
    assert outcome.fully_converted
    assert session.query(Product).filter(Product.estado == EstadoProducto.POR_HILANDAR).count() == 0
    assert sum(p.stock for p in session.query(Product)) == 15 + 35


def test_explicit_stock_override(session, materia_prima):
    outcome = process_batch(session, materia_prima, 10, EstadoProducto.CONOS_DEVANADOS, "4.00", stock=7)
    assert outcome.product.stock == 7


@pytest.mark.parametrize("qty", [0, -1, 101])
def test_invalid_quantity_leaves_source_untouched(session, materia_prima, qty):
    with pytest.raises(InvalidQuantity):
        process_batch(session, materia_prima, qty, EstadoProducto.CONOS_DEVANADOS, "4.00")
    session.expire_all()
    p = session.get(Product, materia_prima.id)
    assert p.cantidad == 100
    assert p.estado is EstadoProducto.POR_HILANDAR
    assert session.query(Product).count() == 1


def test_target_state_must_be_processed(session, materia_prima):
    with pytest.raises(InvalidState):
        process_batch(session, materia_prima, 10, EstadoProducto.POR_HILANDAR, "4.00")
    with pytest.raises(InvalidState):
        process_batch(session, materia_prima, 10, "Teñido", "4.00")


def test_only_raw_material_can_be_processed(session, conos):
    with pytest.raises(StateError):
        process_batch(session, conos[0], 1, EstadoProducto.CONOS_DEVANADOS, "4.00")


def test_missing_product(session):
    with pytest.raises(StateError):
        process_batch(session, 999, 1, EstadoProducto.CONOS_DEVANADOS, "4.00")


def test_source_loaded_in_another_session_is_decremented(session_factory):
    with session_factory() as s1:
        crudo = receive_raw_material(s1, nombre="Hilo", color="Verde", descripcion=None, cantidad=100)

    with session_factory() as s2:
        outcome = process_batch(s2, crudo, 40, EstadoProducto.CONOS_DEVANADOS, "4.00")
        assert outcome.source.cantidad == 60

    with session_factory() as s3:
        origen = s3.get(Product, crudo.id)
        assert origen.cantidad == 60
        assert origen.estado is EstadoProducto.POR_HILANDAR
        assert s3.query(Product).count() == 2


def test_full_batch_of_product_from_another_session_is_persisted(session_factory):
    with session_factory() as s1:
        crudo = receive_raw_material(s1, nombre="Hilo", color="Verde", descripcion=None, cantidad=10)

    with session_factory() as s2:
        outcome = process_batch(s2, crudo, 10, EstadoProducto.CONOS_VETEADOS, "6.00")
        assert outcome.fully_converted

    with session_factory() as s3:
        p = s3.get(Product, crudo.id)
        assert p.estado is EstadoProducto.CONOS_VETEADOS
        assert p.nombre == "Cono"
        assert p.stock == 5
        assert p.cantidad is None
        assert p.precio_uni == Decimal("6.00")


def test_stale_quantity_is_rejected(session_factory):
    with session_factory() as s1:
        crudo = receive_raw_material(s1, nombre="Hilo", color="Verde", descripcion=None, cantidad=50)

    with session_factory() as other:
        process_batch(other, crudo.id, 20, EstadoProducto.CONOS_DEVANADOS, "4.00")

    # ``crudo`` todavía dice 50: se vuelve a leer y se procesa sobre 30
    with session_factory() as s2:
        with pytest.raises(InvalidQuantity):
            process_batch(s2, crudo, 50, EstadoProducto.CONOS_DEVANADOS, "4.00")
        outcome = process_batch(s2, crudo, 30, EstadoProducto.CONOS_DEVANADOS, "4.00")
        assert outcome.fully_converted
        assert s2.query(Product).count() == 2


@pytest.mark.parametrize("kwargs, error", [
    ({"base_price": "0"}, InvalidPrice),
    ({"base_price": "-4.00"}, InvalidPrice),
    ({"base_price": "4.00", "unit_price": "0"}, InvalidPrice),
    ({"base_price": "4.00", "unit_price": "-1"}, InvalidPrice),
    ({"base_price": "abc"}, InvalidPrice),
    ({"base_price": "4.00", "stock": -1}, InvalidQuantity),
])
def test_invalid_prices_or_stock_leave_source_untouched(session, materia_prima, kwargs, error):
    with pytest.raises(error):
        process_batch(session, materia_prima, 40, EstadoProducto.CONOS_DEVANADOS, **kwargs)
    session.expire_all()
    p = session.get(Product, materia_prima.id)
    assert p.cantidad == 100
    assert p.estado is EstadoProducto.POR_HILANDAR
    assert session.query(Product).count() == 1
    assert [e.tipo for e in list_events(session)] == [TIPO_INVENTARIO]
