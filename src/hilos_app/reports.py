"""Exportación de reportes (Excel/PDF), plantillas e importación masiva."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from .config import get_settings
from .errors import ValidationError
from .models import Customer, EstadoProducto, Product, Sale
from .repository import add_customers, add_products
from .validation import parse_customer_row, parse_product_row

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]

INVENTORY_COLUMNS = ['Nombre', 'Color', 'Descripción', 'Estado', 'Cantidad', 'Precio Base',
                     'Precio Unitario', 'Stock', 'Fecha Ingreso']
INVENTORY_PDF_COLUMNS = ['Nombre', 'Color', 'Estado', 'Precio', 'Stock']
CUSTOMER_COLUMNS = ['Nombre', 'DNI', 'Teléfono', 'Fecha Registro']
SALES_COLUMNS = ['Fecha', 'Cliente', 'DNI', 'Teléfono', 'Total', 'Vendedor', 'Productos']
SALES_PDF_COLUMNS = ['Fecha', 'Cliente', 'DNI', 'Total', 'Vendedor']

PRODUCT_TEMPLATE_COLUMNS = ['nombre', 'color', 'descripcion', 'estado', 'cantidad',
                            'precio_base', 'precio_uni', 'stock']
CUSTOMER_TEMPLATE_COLUMNS = ['nombre', 'telefono', 'dni']


def _fecha(value: datetime | None) -> str:
    return value.strftime('%d/%m/%Y') if value else ''


def _cell(value: Any) -> Any:
    """Valor apto para una celda de Excel."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, EstadoProducto):
        return value.value
    return value


def _ensure_parent(path: Path | str) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    return out


# --- Exportadores genéricos ---

def export_to_excel(rows: Iterable[Row], columns: Sequence[str], path: Path | str,
                    sheet_name: str = 'Data') -> Path:
    """Escribe una hoja con encabezados en ``columns`` y una fila por mapeo."""
    out = _ensure_parent(path)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]
    ws.append(list(columns))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    widths = [len(str(c)) for c in columns]
    for row in rows:
        values = [_cell(row.get(col, '')) for col in columns]
        ws.append(values)
        for i, v in enumerate(values):
            widths[i] = max(widths[i], len(str(v if v is not None else '')))
    for i, w in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = min(w + 2, 60)
    wb.save(out)
    logger.info("Reporte Excel generado: %s", out)
    return out


def export_to_pdf(rows: Iterable[Row], columns: Sequence[str], path: Path | str, title: str) -> Path:
    """Tabla paginada en PDF con título, fecha y filas alternadas."""
    out = _ensure_parent(path)
    pagesize = landscape(A4) if len(columns) > 6 else A4
    doc = SimpleDocTemplate(str(out), pagesize=pagesize, rightMargin=1.5 * cm, leftMargin=1.5 * cm,
                            topMargin=1.5 * cm, bottomMargin=1.5 * cm, title=title)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ReportTitle', parent=styles['Normal'], fontSize=16, spaceAfter=10,
                                 alignment=TA_CENTER, fontName='Helvetica-Bold')
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10)

    data: list[list[Any]] = [list(columns)]
    for row in rows:
        data.append([Paragraph(str(_cell(row.get(col, '')) or ''), cell_style) for col in columns])

    table = Table(data, repeatRows=1)
    header_blue = colors.Color(41 / 255, 128 / 255, 185 / 255)
    zebra = colors.Color(245 / 255, 245 / 255, 245 / 255)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), header_blue),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, zebra]),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))

    story = [
        Paragraph(title, title_style),
        Paragraph(f"Fecha: {datetime.now().strftime('%d/%m/%Y')}", styles['Normal']),
        Spacer(1, 10),
        table,
    ]
    doc.build(story)
    logger.info("Reporte PDF generado: %s", out)
    return out


# --- Filas por pantalla ---

def inventory_rows(products: Iterable[Product]) -> list[dict[str, Any]]:
    rows = []
    for p in products:
        en_proceso = p.estado is EstadoProducto.POR_HILANDAR
        rows.append({
            'Nombre': p.nombre,
            'Color': p.color,
            'Descripción': p.descripcion or '',
            'Estado': p.estado.value,
            'Cantidad': p.cantidad if p.cantidad is not None else 'N/A',
            'Precio Base': 'En proceso...' if en_proceso else p.precio_base,
            'Precio Unitario': 'En proceso...' if en_proceso else p.precio_uni,
            'Precio': 'En proceso...' if en_proceso else f"S/ {p.precio_uni:.2f}",
            'Stock': p.stock,
            'Fecha Ingreso': _fecha(p.fecha_ingreso),
        })
    return rows


def customer_rows(customers: Iterable[Customer]) -> list[dict[str, Any]]:
    return [
        {
            'Nombre': c.nombre,
            'DNI': c.dni,
            'Teléfono': c.telefono or 'N/A',
            'Fecha Registro': _fecha(c.created_at),
        }
        for c in customers
    ]


def sales_rows(sales: Iterable[Sale], *, for_pdf: bool = False) -> list[dict[str, Any]]:
    rows = []
    for v in sales:
        cliente = v.cliente
        rows.append({
            'Fecha': _fecha(v.fecha_venta),
            'Cliente': cliente.nombre if cliente else 'N/A',
            'DNI': cliente.dni if cliente else 'N/A',
            'Teléfono': (cliente.telefono if cliente else None) or 'N/A',
            'Total': f"S/ {v.total:.2f}" if for_pdf else v.total,
            'Vendedor': v.vendedor,
            'Productos': ', '.join(d.producto.nombre for d in v.detalles if d.producto is not None),
        })
    return rows


def dashboard_rows(metrics: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Filas (Métrica, Valor) del resumen del tablero."""
    rows = [
        {'Métrica': 'Ventas del Mes', 'Valor': f"S/ {metrics['total_ventas']:.2f}"},
        {'Métrica': 'Productos en Stock', 'Valor': sum(e['cantidad'] for e in metrics['estado_stock'])},
    ]
    for p in metrics['productos_populares']:
        rows.append({'Métrica': f"Vendido: {p['nombre']}", 'Valor': p['cantidad']})
    for e in metrics['estado_stock']:
        rows.append({'Métrica': f"Stock {e['estado']}", 'Valor': e['cantidad']})
    return rows


def export_inventory(products: Iterable[Product], path: Path | str, fmt: str = 'xlsx') -> Path:
    rows = inventory_rows(products)
    if fmt == 'pdf':
        return export_to_pdf(rows, INVENTORY_PDF_COLUMNS, path,
                             f"Inventario de Productos - {get_settings().empresa}")
    return export_to_excel(rows, INVENTORY_COLUMNS, path, 'Inventario')


def export_customers(customers: Iterable[Customer], path: Path | str, fmt: str = 'xlsx') -> Path:
    rows = customer_rows(customers)
    if fmt == 'pdf':
        return export_to_pdf(rows, CUSTOMER_COLUMNS, path, f"Clientes - {get_settings().empresa}")
    return export_to_excel(rows, CUSTOMER_COLUMNS, path, 'Usuarios')


def export_sales(sales: Iterable[Sale], path: Path | str, fmt: str = 'xlsx') -> Path:
    if fmt == 'pdf':
        return export_to_pdf(sales_rows(sales, for_pdf=True), SALES_PDF_COLUMNS, path,
                             f"Historial de Ventas - {get_settings().empresa}")
    return export_to_excel(sales_rows(sales), SALES_COLUMNS, path, 'Ventas')


# --- Plantillas y carga masiva ---

def write_product_template(path: Path | str) -> Path:
    rows = [
        {'nombre': 'Hilo Algodón', 'color': 'Rojo', 'descripcion': 'Hilo de algodón 100%',
         'estado': EstadoProducto.POR_HILANDAR.value, 'cantidad': 100},
        {'nombre': 'Cono', 'color': 'Azul', 'descripcion': 'Hilo sintético resistente',
         'estado': EstadoProducto.CONOS_DEVANADOS.value, 'precio_base': 8.75, 'precio_uni': 10.00, 'stock': 75},
    ]
    return export_to_excel(rows, PRODUCT_TEMPLATE_COLUMNS, path, 'Productos')


def write_customer_template(path: Path | str) -> Path:
    rows = [
        {'nombre': 'Juan Pérez', 'telefono': '987654321', 'dni': '12345678'},
        {'nombre': 'María González', 'telefono': '876543210', 'dni': '87654321'},
    ]
    return export_to_excel(rows, CUSTOMER_TEMPLATE_COLUMNS, path, 'Usuarios')


def read_sheet_rows(path: Path | str) -> list[dict[str, Any]]:
    """Lee la primera hoja como lista de dicts usando la fila 1 como encabezado."""
    wb = load_workbook(Path(path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        it = ws.iter_rows(values_only=True)
        header = next(it, None)
        if not header:
            return []
        keys = [str(h).strip().lower() if h is not None else '' for h in header]
        rows = []
        for values in it:
            if values is None or all(v is None or str(v).strip() == '' for v in values):
                continue
            rows.append({k: v for k, v in zip(keys, values) if k})
        return rows
    finally:
        wb.close()


def _parse_all(rows: list[dict[str, Any]], parser):
    parsed = []
    for idx, row in enumerate(rows, start=2):
        try:
            parsed.append(parser(row))
        except ValidationError as exc:
            raise ValidationError(f"Fila {idx}: {exc}", code=exc.code) from exc
    return parsed


def import_products(session: Session, path: Path | str) -> list[Product]:
    """Importa productos desde Excel. Se valida todo el archivo antes de insertar."""
    items = _parse_all(read_sheet_rows(path), parse_product_row)
    created = add_products(session, items)
    logger.info("%s productos importados desde %s", len(created), path)
    return created


def import_customers(session: Session, path: Path | str) -> list[Customer]:
    items = _parse_all(read_sheet_rows(path), parse_customer_row)
    created = add_customers(session, items)
    logger.info("%s clientes importados desde %s", len(created), path)
    return created
