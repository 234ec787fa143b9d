"""Estado explícito de la aplicación.

Cada pantalla recibe el ``AppState`` y lee/escribe solo lo que le toca:
el usuario conectado y la venta en curso (cliente + carrito).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from .config import get_settings
from .models import Customer
from .services.ventas import Cart


@dataclass
class SaleDraft:
    customer: Customer | None = None
    cart: Cart = field(default_factory=Cart)

    def select_customer(self, customer: Customer | None) -> None:
        self.customer = customer

    def reset(self) -> None:
        self.customer = None
        self.cart = Cart()


@dataclass
class AppState:
    session_factory: Callable[[], Session]
    current_user: Customer | None = None
    draft: SaleDraft = field(default_factory=SaleDraft)

    @property
    def seller_name(self) -> str:
        if self.current_user is not None:
            return self.current_user.nombre
        return get_settings().vendedor_default

    def login(self, user: Customer) -> None:
        self.current_user = user
        self.draft.reset()

    def logout(self) -> None:
        self.current_user = None
        self.draft.reset()
