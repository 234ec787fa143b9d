from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from .models import Event

TIPO_VENTA = "Venta"
TIPO_HILANDERIA = "Hilandería"
TIPO_INVENTARIO = "Inventario"


def log_event(session: Session, *, tipo: str, descripcion: str, usuario: str | None = None,
              commit: bool = False) -> Event:
    """Agrega un evento a la bitácora.

    Por defecto solo se añade a la sesión para que forme parte de la misma
    transacción que la operación que lo origina.
    """
    ev = Event(tipo=tipo, descripcion=descripcion, usuario=usuario, fecha=datetime.now())
    session.add(ev)
    if commit:
        session.commit()
    return ev


def list_events(session: Session, limit: int = 10) -> list[Event]:
    return (
        session.query(Event)
        .order_by(Event.fecha.desc(), Event.id.desc())
        .limit(limit)
        .all()
    )
