import logging
from pathlib import Path

from sqlalchemy import inspect, text

from src.hilos_app.db import make_engine
from src.hilos_app.models import Base
from src.hilos_app.migrations import BASELINE_REVISION, run_migrations

ROOT = Path(__file__).resolve().parents[1]


def test_missing_migration_files_are_skipped(engine, tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        assert run_migrations(engine, app_root=tmp_path) is False
    assert "Se omite migración automática" in caplog.text


def test_upgrade_creates_schema_on_empty_database(tmp_path):
    engine = make_engine(tmp_path / "nueva.db")
    assert run_migrations(engine, app_root=ROOT) is True
    tables = set(inspect(engine).get_table_names())
    assert {"productos", "usuarios", "ventas", "ventas_detalle", "eventos", "alembic_version"} <= tables


def test_existing_schema_is_stamped_as_baseline(tmp_path):
    engine = make_engine(tmp_path / "previa.db")
    Base.metadata.create_all(engine)
    assert run_migrations(engine, app_root=ROOT) is True
    with engine.connect() as conn:
        assert conn.execute(text("SELECT version_num FROM alembic_version")).scalar() == BASELINE_REVISION
