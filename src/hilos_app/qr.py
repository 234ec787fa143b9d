from __future__ import annotations

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from .errors import EncodingError


def encode(text: str, *, box_size: int = 8, border: int = 2) -> bytes:
    """Genera la imagen PNG del código QR para ``text``.

    Misma entrada, mismos bytes.
    """
    if not isinstance(text, str) or not text:
        raise EncodingError("El contenido del QR no puede estar vacío")
    try:
        qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
        qr.add_data(text)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except (ValueError, OSError, DataOverflowError) as exc:
        raise EncodingError(f"No se pudo generar el QR: {exc}") from exc
    return buf.getvalue()
