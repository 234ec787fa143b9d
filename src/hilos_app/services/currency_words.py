"""Montos en soles escritos en letras para boletas.

Del 21 al 29 se escribe una sola palabra, VEINTI + unidad, sin " Y "
(VEINTIUNO, VEINTIDOS). Las boletas emitidas antes de este módulo
imprimían VEINTE + unidad con UN para el 1 (VEINTEUN, VEINTEDOS); esa
forma no se reproduce. Del 31 al 99 la unidad va tras " Y ".
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from ..errors import InvalidAmount

Amount = Union[int, float, Decimal, str]

_UNIDADES = ('', 'UNO', 'DOS', 'TRES', 'CUATRO', 'CINCO', 'SEIS', 'SIETE', 'OCHO', 'NUEVE')
_DECENAS = ('', 'DIEZ', 'VEINTE', 'TREINTA', 'CUARENTA', 'CINCUENTA', 'SESENTA', 'SETENTA', 'OCHENTA', 'NOVENTA')
_ESPECIALES = ('DIEZ', 'ONCE', 'DOCE', 'TRECE', 'CATORCE', 'QUINCE', 'DIECISEIS', 'DIECISIETE', 'DIECIOCHO', 'DIECINUEVE')
_CENTENAS = ('', 'CIENTO', 'DOSCIENTOS', 'TRESCIENTOS', 'CUATROCIENTOS', 'QUINIENTOS',
             'SEISCIENTOS', 'SETECIENTOS', 'OCHOCIENTOS', 'NOVECIENTOS')


def _to_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(f"Monto inválido: {amount!r}")
    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidAmount(f"Monto inválido: {amount!r}") from exc
    if not value.is_finite():
        raise InvalidAmount(f"Monto inválido: {amount!r}")
    if value < 0:
        raise InvalidAmount("El monto no puede ser negativo")
    if value != value.quantize(Decimal("0.01")):
        raise InvalidAmount("El monto admite como máximo 2 decimales")
    return value


def _centenas(num: int) -> str:
    """Convierte un grupo de 0 a 999 a letras ('' para 0)."""
    if num == 0:
        return ''
    c, resto = divmod(num, 100)
    d, u = divmod(resto, 10)
    partes: list[str] = []

    if c > 0:
        partes.append('CIEN' if num == 100 else _CENTENAS[c])

    if d == 1:
        partes.append(_ESPECIALES[u])
    elif d == 2:
        # Los veinte se escriben juntos, sin conector
        partes.append('VEINTI' + _UNIDADES[u] if u > 0 else _DECENAS[2])
    elif d > 2:
        partes.append(_DECENAS[d] + (' Y ' + _UNIDADES[u] if u > 0 else ''))
    elif u > 0:
        partes.append(_UNIDADES[u])

    return ' '.join(partes)


def integer_to_words(num: int) -> str:
    """Parte entera en letras, en mayúsculas y sin tildes."""
    if num < 0:
        raise InvalidAmount("El monto no puede ser negativo")
    if num == 0:
        return 'CERO'

    millones, resto = divmod(num, 1_000_000)
    miles, unidades = divmod(resto, 1000)
    partes: list[str] = []

    if millones:
        partes.append('UN MILLON' if millones == 1 else integer_to_words(millones) + ' MILLONES')
    if miles:
        partes.append(_centenas(miles) + ' MIL')
    if unidades:
        partes.append(_centenas(unidades))

    return ' '.join(partes)


def format_currency(amount: Amount) -> str:
    """Monto en soles escrito en letras, como se imprime en la boleta.

    >>> format_currency(0)
    'CERO SOLES'
    >>> format_currency('21.50')
    'VEINTIUNO SOLES CON 50/100'
    """
    value = _to_decimal(amount)
    entero = int(value)
    centimos = int((value - entero) * 100)

    if entero == 1:
        resultado = 'UN SOL'
    else:
        resultado = integer_to_words(entero) + ' SOLES'

    if centimos > 0:
        resultado += f' CON {centimos:02d}/100'
    return resultado
