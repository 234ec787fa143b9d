import sys
import logging
from pathlib import Path
from alembic.config import Config
from alembic import command
from alembic.util.exc import CommandError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Primera revisión: esquema de productos, usuarios, ventas, detalles y eventos
BASELINE_REVISION = "0001_baseline"


def _default_app_root() -> Path:
    # Ejecutable empaquetado: los archivos de migración viajan junto al binario
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path.cwd()


def run_migrations(engine, app_root: Path = None) -> bool:
    """
    Ejecuta las migraciones de Alembic desde la aplicación.
    Busca 'alembic.ini' y la carpeta 'alembic' en ``app_root``.

    Devuelve False si no hay archivos de migración (se omite sin error).
    """
    app_root = Path(app_root) if app_root is not None else _default_app_root()

    alembic_ini = app_root / "alembic.ini"
    alembic_dir = app_root / "alembic"

    if not alembic_ini.exists() or not alembic_dir.exists():
        logger.warning(f"No se encontraron archivos de migración en {app_root}. Se omite migración automática.")
        return False

    logger.info("Iniciando sistema de migraciones automáticas...")

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    # Usar la misma base de datos que la aplicación
    url = engine.url.render_as_string(hide_password=False)
    alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    alembic_cfg.attributes["url_from_app"] = True

    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()
    has_productos = "productos" in existing_tables
    has_alembic = "alembic_version" in existing_tables

    try:
        # Tablas creadas con create_all y sin historial: sellar como baseline
        if has_productos and not has_alembic:
            logger.info("Base de datos sin historial de migraciones. Marcando como línea base...")
            command.stamp(alembic_cfg, BASELINE_REVISION)

        logger.info("Ejecutando migraciones (upgrade head)...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Base de datos actualizada correctamente.")
    except (CommandError, SQLAlchemyError) as e:
        logger.error(f"Error crítico durante la migración de base de datos: {e}")
        raise
    return True
