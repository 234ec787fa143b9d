import logging

from src.hilos_app import config


def test_settings_defaults_and_overrides(monkeypatch):
    config.get_settings.cache_clear()
    try:
        s = config.get_settings()
        assert s.empresa == "HILOSdeCALIDAD.SAC"
        assert s.ruc == "10897612560"

        monkeypatch.setenv("HILOS_EMPRESA", "Taller Prueba")
        monkeypatch.setenv("HILOS_VENDEDOR", "Caja 2")
        config.get_settings.cache_clear()
        s = config.get_settings()
        assert s.empresa == "Taller Prueba"
        assert s.vendedor_default == "Caja 2"
    finally:
        monkeypatch.undo()
        config.get_settings.cache_clear()


def test_data_dir_override(data_dir):
    assert config.get_data_dir() == data_dir
    assert data_dir.is_dir()


def test_configure_logging_writes_file(data_dir):
    path = config.configure_logging("INFO")
    logging.getLogger("hilos_app.prueba").info("mensaje de prueba")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert path == data_dir / "logs" / "hilos.log"
    assert "INFO - mensaje de prueba" in path.read_text(encoding="utf-8")
