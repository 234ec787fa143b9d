import pytest

from src.hilos_app.errors import EncodingError
from src.hilos_app.qr import encode

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def test_encode_returns_png():
    data = encode("0b6c2f3e-6a8e-4f5c-9d36-0d1f6f1c2a7b")
    assert data.startswith(PNG_MAGIC)


def test_encode_is_deterministic():
    assert encode("venta-1") == encode("venta-1")
    assert encode("venta-1") != encode("venta-2")


def test_encode_rejects_empty():
    with pytest.raises(EncodingError):
        encode("")


def test_encode_rejects_oversized_payload():
    with pytest.raises(EncodingError):
        encode("x" * 5000)
