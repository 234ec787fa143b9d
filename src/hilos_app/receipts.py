from __future__ import annotations

import io
import logging
from decimal import Decimal
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .config import get_data_dir, get_settings
from .models import Sale, SaleItem
from .qr import encode as encode_qr
from .services.currency_words import format_currency

logger = logging.getLogger(__name__)


def _data_dir() -> Path:
    d = get_data_dir() / "receipts"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _wrap_text(text: str, width: int = 32) -> list[str]:
    words = text.split()
    lines: list[str] = []
    cur: list[str] = []
    cur_len = 0
    for w in words:
        if cur and cur_len + len(w) + 1 > width:
            lines.append(" ".join(cur))
            cur = [w]
            cur_len = len(w)
        else:
            cur_len += len(w) + (1 if cur else 0)
            cur.append(w)
    if cur:
        lines.append(" ".join(cur))
    return lines


def format_soles(value: Decimal | float | int) -> str:
    return f"S/ {Decimal(str(value)):,.2f}"


def _item_label(item: SaleItem) -> str:
    p = item.producto
    if p is None:
        return f"Producto #{item.producto_id}"
    return f"{p.nombre} {p.color}".strip()


def print_receipt_80mm(sale: Sale, out_path: Path | str | None = None, width: int = 40) -> Path:
    """Genera el ticket de 80mm en texto plano. Devuelve la ruta del archivo creado."""
    s = get_settings()
    cliente = sale.cliente
    lines: list[str] = []
    lines.append(s.empresa.center(width))
    lines.append(f"RUC: {s.ruc}".center(width))
    lines.extend(l.center(width) for l in _wrap_text(s.direccion, width))
    lines.append("BOLETA ELECTRONICA".center(width))
    lines.append("-" * width)
    lines.append(f"CLIENTE: {cliente.nombre if cliente else ''}")
    lines.append(f"DNI: {cliente.dni if cliente else ''}")
    lines.append(f"FECHA: {sale.fecha_venta.strftime('%d/%m/%Y %H:%M')}")
    lines.append(f"VENDEDOR: {sale.vendedor}")
    lines.append("-" * width)
    lines.append(f"{'CANT':>4}  {'DESCRIPCION':<{width - 18}}  {'SUBT':>10}")
    for item in sale.detalles:
        label = _item_label(item)[: width - 18]
        lines.append(f"{item.cantidad:>4}  {label:<{width - 18}}  {item.subtotal:>10.2f}")
    lines.append("-" * width)
    lines.append(f"TOTAL: {format_soles(sale.total)}")
    lines.extend(_wrap_text(format_currency(sale.total), width))
    lines.append("-" * width)
    lines.append(f"CODIGO: {sale.codigo_qr}")
    lines.append("Gracias por la Compra.".center(width))
    lines.append("")

    out = Path(out_path) if out_path else _data_dir() / f"boleta-{sale.id}.txt"
    out.write_text("\n".join(lines), encoding="utf-8")
    return out


def generate_sale_receipt(sale: Sale, out_path: Path | str | None = None,
                          out_dir: Path | str | None = None) -> Path:
    """Genera la boleta de venta en PDF (una página) con el QR del código de transacción."""
    s = get_settings()
    if out_path is not None:
        out = Path(out_path)
    else:
        folder = Path(out_dir) if out_dir else _data_dir()
        folder.mkdir(parents=True, exist_ok=True)
        out = folder / f"boleta-{sale.id}.pdf"

    qr_png = encode_qr(sale.codigo_qr)

    doc = SimpleDocTemplate(str(out), pagesize=A4, rightMargin=20 * mm, leftMargin=20 * mm,
                            topMargin=15 * mm, bottomMargin=15 * mm,
                            title=f"Boleta {sale.id}", author=s.empresa)
    styles = getSampleStyleSheet()
    header_style = ParagraphStyle('Empresa', parent=styles['Normal'], fontName='Helvetica-Bold',
                                  fontSize=16, alignment=TA_CENTER, spaceAfter=4)
    center_style = ParagraphStyle('Centro', parent=styles['Normal'], fontSize=10, alignment=TA_CENTER)
    title_style = ParagraphStyle('Titulo', parent=styles['Normal'], fontName='Helvetica-Bold',
                                 fontSize=14, alignment=TA_CENTER, spaceBefore=8, spaceAfter=6)
    footer_style = ParagraphStyle('Pie', parent=styles['Normal'], fontName='Helvetica-Oblique',
                                  fontSize=8, alignment=TA_CENTER)

    story = [
        Paragraph(s.empresa, header_style),
        Paragraph(f"RUC: {s.ruc}", center_style),
        Paragraph(s.direccion, center_style),
        Paragraph("BOLETA ELECTRÓNICA", title_style),
        HRFlowable(width="100%", thickness=0.8, color=colors.black),
        Spacer(1, 6),
    ]

    cliente = sale.cliente
    datos = Table([
        [f"Cliente: {cliente.nombre if cliente else ''}", f"Fecha: {sale.fecha_venta.strftime('%d/%m/%Y')}"],
        [f"DNI: {cliente.dni if cliente else ''}", f"Vendedor: {sale.vendedor}"],
    ], colWidths=[95 * mm, 75 * mm])
    datos.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
    ]))
    story += [datos, Spacer(1, 8)]

    rows = [['Producto', 'Cant.', 'P. Unit.', 'Subtotal']]
    for item in sale.detalles:
        rows.append([_item_label(item), str(item.cantidad), format_soles(item.precio_unitario),
                     format_soles(item.subtotal)])
    rows.append(['', '', 'TOTAL:', format_soles(sale.total)])
    items = Table(rows, colWidths=[80 * mm, 20 * mm, 35 * mm, 35 * mm], repeatRows=1)
    blue = colors.Color(52 / 255, 152 / 255, 219 / 255)
    items.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), blue),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BACKGROUND', (0, -1), (-1, -1), blue),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.white),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -2), 0.25, colors.grey),
    ]))
    story += [items, Spacer(1, 10)]

    total_words = Paragraph(f"<b>Total:</b><br/>{format_currency(sale.total)}", styles['Normal'])
    qr_img = Image(io.BytesIO(qr_png), width=30 * mm, height=30 * mm)
    bottom = Table([[total_words, qr_img]], colWidths=[135 * mm, 35 * mm])
    bottom.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
    ]))
    story += [bottom, Spacer(1, 12)]

    story.append(Paragraph("Representación impresa de la boleta de venta electrónica", footer_style))
    story.append(Paragraph("Gracias por la Compra.", footer_style))

    doc.build(story)
    logger.info("Boleta de la venta #%s generada en %s", sale.id, out)
    return out
