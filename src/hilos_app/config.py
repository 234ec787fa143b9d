from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Cargar variables desde .env si existe
load_dotenv()


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    """Datos del negocio que aparecen en boletas y reportes."""

    empresa: str
    ruc: str
    direccion: str
    vendedor_default: str
    log_level: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        empresa=os.getenv("HILOS_EMPRESA", "HILOSdeCALIDAD.SAC"),
        ruc=os.getenv("HILOS_RUC", "10897612560"),
        direccion=os.getenv("HILOS_DIRECCION", "Av. la Capitana 190 - Lurigancho Huachipa"),
        vendedor_default=os.getenv("HILOS_VENDEDOR", "Freddy STG"),
        log_level=os.getenv("HILOS_LOG_LEVEL", "INFO").upper(),
    )


def get_data_dir() -> Path:
    """Devuelve la carpeta de datos persistente.
    - Por defecto: ./data
    - Se puede forzar con la variable HILOS_APP_DATA_DIR
    """
    override = os.getenv("HILOS_APP_DATA_DIR")
    d = Path(override).expanduser() if override else Path.cwd() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def configure_logging(level: str | None = None, log_file: Path | str | None = None) -> Path:
    """Configura logging a archivo (``<data>/logs/hilos.log``) y consola.

    Devuelve la ruta del archivo de log utilizado.
    """
    if log_file is None:
        logs_dir = get_data_dir() / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / "hilos.log"
    lvl = getattr(logging, (level or get_settings().log_level), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(),
        ],
        force=True,
    )
    return Path(log_file)
