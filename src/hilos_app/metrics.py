from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import Customer, EstadoProducto, Product, Sale, SaleItem


def get_sales_metrics(session: Session, today: date | None = None, days_back: int = 7,
                      top: int = 5) -> dict:
    """Métricas del tablero.

    - total_ventas: suma de ventas del mes en curso
    - ventas_por_periodo: ventas por día de los últimos ``days_back`` días
    - productos_populares: los ``top`` productos más vendidos (por cantidad)
    - estado_stock: stock total agrupado por estado
    """
    today = today or date.today()
    month_start = datetime(today.year, today.month, 1)

    total_ventas = session.query(func.sum(Sale.total)).filter(Sale.fecha_venta >= month_start).scalar()

    start = datetime.combine(today - timedelta(days=days_back - 1), datetime.min.time())
    end = datetime.combine(today, datetime.max.time())
    sales = (
        session.query(Sale.fecha_venta, Sale.total)
        .filter(Sale.fecha_venta >= start, Sale.fecha_venta <= end)
        .all()
    )
    daily: dict[date, dict] = {}
    for i in range(days_back):
        day = today - timedelta(days=days_back - 1 - i)
        daily[day] = {'fecha': day, 'ventas': Decimal("0.00"), 'cantidad': 0}
    for fecha_venta, total in sales:
        bucket = daily.get(fecha_venta.date())
        if bucket is not None:
            bucket['ventas'] += total or Decimal("0.00")
            bucket['cantidad'] += 1

    vendidos = (
        session.query(Product.nombre, Product.color, func.sum(SaleItem.cantidad).label('cantidad'))
        .join(SaleItem, SaleItem.producto_id == Product.id)
        .group_by(Product.id, Product.nombre, Product.color)
        .order_by(func.sum(SaleItem.cantidad).desc(), Product.nombre.asc())
        .limit(top)
        .all()
    )

    por_estado = (
        session.query(Product.estado, func.coalesce(func.sum(Product.stock), 0))
        .group_by(Product.estado)
        .all()
    )
    stock_map = {estado: int(cant) for estado, cant in por_estado}

    return {
        'total_ventas': Decimal(str(total_ventas or 0)).quantize(Decimal("0.01")),
        'ventas_por_periodo': sorted(daily.values(), key=lambda d: d['fecha']),
        'productos_populares': [
            {'nombre': f"{nombre} {color}".strip(), 'cantidad': int(cant)} for nombre, color, cant in vendidos
        ],
        'estado_stock': [
            {'estado': e.value, 'cantidad': stock_map[e]} for e in EstadoProducto if e in stock_map
        ],
    }


def inventory_summary(products: Iterable[Product]) -> dict:
    """Totales de la pantalla de inventario."""
    items = list(products)
    return {
        'productos': len(items),
        'stock_total': sum(p.stock for p in items),
        'valor_inventario': sum((p.precio_uni * p.stock for p in items), Decimal("0.00")),
        'agotados': sum(1 for p in items if p.stock == 0),
    }


def sales_summary(sales: Iterable[Sale]) -> dict:
    """Total, promedio y número de ventas de un historial filtrado."""
    items = list(sales)
    total = sum((v.total for v in items), Decimal("0.00"))
    promedio = (total / len(items)).quantize(Decimal("0.01")) if items else Decimal("0.00")
    return {'total': total, 'promedio': promedio, 'ventas': len(items)}


def customer_summary(session: Session) -> dict:
    total = session.query(func.count(Customer.id)).scalar() or 0
    con_telefono = session.query(func.count(Customer.id)).filter(Customer.telefono.isnot(None)).scalar() or 0
    return {'clientes': total, 'con_telefono': con_telefono}
