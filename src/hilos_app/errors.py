"""Errores tipados del dominio.

Las operaciones de los motores (hilandería, ventas) lanzan estas excepciones;
la capa de presentación las atrapa y muestra el mensaje al usuario. Ningún
paso se reintenta automáticamente.
"""
from __future__ import annotations


class HilosError(Exception):
    """Raíz de todos los errores de la aplicación."""


class ValidationError(HilosError, ValueError):
    """Entrada inválida del usuario (monto negativo, cantidad excedida, campo faltante)."""

    code = "ValidationError"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


class InvalidQuantity(ValidationError):
    code = "InvalidQuantity"


class InvalidPrice(ValidationError):
    code = "InvalidPrice"


class InvalidState(ValidationError):
    code = "InvalidState"


class DuplicateId(ValidationError):
    code = "DuplicateId"


class OutOfStock(ValidationError):
    code = "OutOfStock"


class NoCustomerSelected(ValidationError):
    code = "NoCustomerSelected"


class EmptyCart(ValidationError):
    code = "EmptyCart"


class InsufficientStock(ValidationError):
    code = "InsufficientStock"

    def __init__(self, product_id: int, message: str | None = None) -> None:
        super().__init__(message or f"Stock insuficiente para el producto #{product_id}")
        self.product_id = product_id


class StateError(HilosError):
    """Operación sobre una entidad en un estado de ciclo de vida incorrecto."""


class RepositoryError(HilosError):
    """Fallo de E/S o del backend de datos."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class PartialFailure(HilosError):
    """Secuencia de pasos interrumpida después de completar algunos de ellos."""

    def __init__(self, message: str, *, completed: list[str], sale_id: int | None = None) -> None:
        super().__init__(message)
        self.completed = list(completed)
        self.sale_id = sale_id


class EncodingError(HilosError):
    """No se pudo generar la imagen QR."""
