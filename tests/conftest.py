# Ensure project root is on sys.path so `import src.hilos_app...` works when running tests in various environments.
import os
import sys
from decimal import Decimal

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest
from src.hilos_app.db import make_engine, make_session_factory
from src.hilos_app.models import Base, EstadoProducto
from src.hilos_app.repository import add_customer, add_product


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Carpeta de datos aislada (boletas, reportes, logs) por prueba."""
    d = tmp_path / "data"
    monkeypatch.setenv("HILOS_APP_DATA_DIR", str(d))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return d


@pytest.fixture
def engine():
    engine = make_engine(":memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as s:
        yield s


@pytest.fixture
def customer(session):
    return add_customer(session, nombre="Juan Pérez", dni="12345678", telefono="987654321")


@pytest.fixture
def conos(session):
    """Dos productos terminados: 10 x S/ 4.50 y 3 x S/ 12.00."""
    devanado = add_product(session, nombre="Cono", color="Rojo", estado=EstadoProducto.CONOS_DEVANADOS,
                           precio_base=Decimal("4.00"), precio_uni=Decimal("4.50"), stock=10)
    veteado = add_product(session, nombre="Cono", color="Azul", estado=EstadoProducto.CONOS_VETEADOS,
                          precio_base=Decimal("11.00"), precio_uni=Decimal("12.00"), stock=3)
    return devanado, veteado
