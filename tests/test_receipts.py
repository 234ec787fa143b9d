from decimal import Decimal

from src.hilos_app.receipts import format_soles, generate_sale_receipt, print_receipt_80mm
from src.hilos_app.repository import get_sale_full
from src.hilos_app.services.ventas import Cart, checkout, set_cart_quantity


def _sale(session, customer, conos):
    cart = Cart()
    set_cart_quantity(cart, conos[0], 3)
    set_cart_quantity(cart, conos[1], 1)
    sale = checkout(session, customer, cart, seller="Ana")
    return get_sale_full(session, sale.id)


def test_format_soles():
    assert format_soles(Decimal("1234.5")) == "S/ 1,234.50"
    assert format_soles(0) == "S/ 0.00"


def test_pdf_receipt_in_data_dir(session, customer, conos, data_dir):
    sale = _sale(session, customer, conos)
    path = generate_sale_receipt(sale)
    assert path == data_dir / "receipts" / f"boleta-{sale.id}.pdf"
    assert path.read_bytes().startswith(b"%PDF")


def test_pdf_receipt_explicit_path(session, customer, conos, tmp_path):
    sale = _sale(session, customer, conos)
    out = tmp_path / "boleta.pdf"
    assert generate_sale_receipt(sale, out_path=out) == out
    assert out.stat().st_size > 0


def test_text_ticket_contents(session, customer, conos, tmp_path):
    sale = _sale(session, customer, conos)
    path = print_receipt_80mm(sale, tmp_path / "ticket.txt")
    text = path.read_text(encoding="utf-8")
    assert "HILOSdeCALIDAD.SAC" in text
    assert f"DNI: {customer.dni}" in text
    assert "VENDEDOR: Ana" in text
    assert "TOTAL: S/ 25.50" in text
    assert "VEINTICINCO SOLES CON 50/100" in text
    assert sale.codigo_qr in text
