"""Línea de comandos de Hilos POS.

Uso:
  python -m hilos_app init-db [--migrar] [--admin NOMBRE DNI]
  python -m hilos_app export inventario|clientes|ventas|tablero [--formato xlsx|pdf] [--salida RUTA]
  python -m hilos_app boleta VENTA_ID [--texto] [--salida RUTA]
  python -m hilos_app plantilla productos|clientes [--salida RUTA]
  python -m hilos_app importar productos|clientes ARCHIVO
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime
from pathlib import Path

from .config import configure_logging, get_data_dir
from .db import make_engine, make_session_factory
from .errors import HilosError

logger = logging.getLogger(__name__)

_EXTENSIONES = {'xlsx': '.xlsx', 'pdf': '.pdf'}


def _fecha(value: str) -> date:
    try:
        return datetime.strptime(value, '%d/%m/%Y').date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Fecha inválida (use dd/mm/aaaa): {value}") from None


def _default_out(nombre: str, fmt: str) -> Path:
    stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return get_data_dir() / 'reportes' / f"{nombre}_{stamp}{_EXTENSIONES[fmt]}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='hilos_app', description='Punto de venta e inventario del taller')
    parser.add_argument('--db', help='Ruta SQLite o URL de base de datos (por defecto DATABASE_URL o data/hilos.db)')
    parser.add_argument('--log-level', help='Nivel de logging (DEBUG, INFO, ...)')
    sub = parser.add_subparsers(dest='command', required=True)

    p_init = sub.add_parser('init-db', help='Crear tablas (o migrar) y registrar un administrador')
    p_init.add_argument('--migrar', action='store_true', help='Usar Alembic en lugar de create_all')
    p_init.add_argument('--admin', nargs=2, metavar=('NOMBRE', 'DNI'))

    p_exp = sub.add_parser('export', help='Exportar reportes a Excel o PDF')
    p_exp.add_argument('reporte', choices=['inventario', 'clientes', 'ventas', 'tablero'])
    p_exp.add_argument('--formato', choices=['xlsx', 'pdf'], default='xlsx')
    p_exp.add_argument('--salida', type=Path)
    p_exp.add_argument('--desde', type=_fecha)
    p_exp.add_argument('--hasta', type=_fecha)
    p_exp.add_argument('--buscar')

    p_bol = sub.add_parser('boleta', help='Reimprimir la boleta de una venta')
    p_bol.add_argument('venta_id', type=int)
    p_bol.add_argument('--texto', action='store_true', help='Ticket de 80mm en texto plano')
    p_bol.add_argument('--salida', type=Path)

    p_tpl = sub.add_parser('plantilla', help='Descargar plantilla Excel para carga masiva')
    p_tpl.add_argument('tipo', choices=['productos', 'clientes'])
    p_tpl.add_argument('--salida', type=Path)

    p_imp = sub.add_parser('importar', help='Carga masiva desde Excel')
    p_imp.add_argument('tipo', choices=['productos', 'clientes'])
    p_imp.add_argument('archivo', type=Path)
    return parser


def _cmd_init_db(args, engine) -> int:
    from .repository import init_db

    if args.migrar:
        from .migrations import run_migrations
        run_migrations(engine)
    init_db(engine, seed_admin=tuple(args.admin) if args.admin else None)
    print("Base de datos inicializada")
    return 0


def _cmd_export(args, Session) -> int:
    from . import reports
    from .metrics import get_sales_metrics
    from .repository import list_customers, list_products, list_sales

    out = args.salida or _default_out(args.reporte, args.formato)
    with Session() as session:
        if args.reporte == 'inventario':
            path = reports.export_inventory(list_products(session), out, args.formato)
        elif args.reporte == 'clientes':
            path = reports.export_customers(list_customers(session), out, args.formato)
        elif args.reporte == 'ventas':
            sales = list_sales(session, desde=args.desde, hasta=args.hasta, search=args.buscar)
            path = reports.export_sales(sales, out, args.formato)
        else:
            rows = reports.dashboard_rows(get_sales_metrics(session))
            if args.formato == 'pdf':
                path = reports.export_to_pdf(rows, ['Métrica', 'Valor'], out, 'Resumen del Tablero')
            else:
                path = reports.export_to_excel(rows, ['Métrica', 'Valor'], out, 'Tablero')
    print(f"Reporte generado: {path}")
    return 0


def _cmd_boleta(args, Session) -> int:
    from .receipts import generate_sale_receipt, print_receipt_80mm
    from .repository import get_sale_full

    with Session() as session:
        sale = get_sale_full(session, args.venta_id)
        if sale is None:
            print(f"No existe la venta #{args.venta_id}", file=sys.stderr)
            return 1
        if args.texto:
            path = print_receipt_80mm(sale, args.salida)
        else:
            path = generate_sale_receipt(sale, out_path=args.salida)
    print(f"Boleta generada: {path}")
    return 0


def _cmd_plantilla(args) -> int:
    from .reports import write_customer_template, write_product_template

    out = args.salida or get_data_dir() / f"plantilla_{args.tipo}.xlsx"
    if args.tipo == 'productos':
        path = write_product_template(out)
    else:
        path = write_customer_template(out)
    print(f"Plantilla generada: {path}")
    return 0


def _cmd_importar(args, Session) -> int:
    from .reports import import_customers, import_products

    with Session() as session:
        if args.tipo == 'productos':
            created = import_products(session, args.archivo)
        else:
            created = import_customers(session, args.archivo)
    print(f"{len(created)} {args.tipo} importados")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log_file = configure_logging(args.log_level)
    logger.debug("Log en %s", log_file)

    try:
        if args.command == 'plantilla':
            return _cmd_plantilla(args)
        engine = make_engine(args.db)
        if args.command == 'init-db':
            return _cmd_init_db(args, engine)
        Session = make_session_factory(engine)
        if args.command == 'export':
            return _cmd_export(args, Session)
        if args.command == 'boleta':
            return _cmd_boleta(args, Session)
        return _cmd_importar(args, Session)
    except HilosError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
