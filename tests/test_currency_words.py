from decimal import Decimal

import pytest

from src.hilos_app.errors import InvalidAmount
from src.hilos_app.services.currency_words import format_currency, integer_to_words


def test_zero_and_singular():
    assert format_currency(0) == "CERO SOLES"
    assert format_currency(1) == "UN SOL"
    assert format_currency(2) == "DOS SOLES"
    assert format_currency("0.50") == "CERO SOLES CON 50/100"


def test_cents_are_two_digits():
    assert format_currency(Decimal("21.50")) == "VEINTIUNO SOLES CON 50/100"
    assert format_currency(21.5) == "VEINTIUNO SOLES CON 50/100"
    assert format_currency("3.05") == "TRES SOLES CON 05/100"
    assert format_currency("1.99") == "UN SOL CON 99/100"


@pytest.mark.parametrize("num, words", [
    (10, "DIEZ"),
    (11, "ONCE"),
    (15, "QUINCE"),
    (19, "DIECINUEVE"),
    (20, "VEINTE"),
    (21, "VEINTIUNO"),
    (29, "VEINTINUEVE"),
    (30, "TREINTA"),
    (35, "TREINTA Y CINCO"),
    (99, "NOVENTA Y NUEVE"),
    (100, "CIEN"),
    (101, "CIENTO UNO"),
    (115, "CIENTO QUINCE"),
    (250, "DOSCIENTOS CINCUENTA"),
    (999, "NOVECIENTOS NOVENTA Y NUEVE"),
    (1000, "UNO MIL"),
    (2021, "DOS MIL VEINTIUNO"),
    (100000, "CIEN MIL"),
    (1_000_000, "UN MILLON"),
    (3_000_450, "TRES MILLONES CUATROCIENTOS CINCUENTA"),
])
def test_integer_to_words(num, words):
    assert integer_to_words(num) == words


def test_twenties_have_no_connector():
    for n in range(21, 30):
        text = integer_to_words(n)
        assert text.startswith("VEINTI")
        assert " Y " not in text


def test_other_tens_use_y_connector():
    for tens in range(3, 10):
        assert " Y " in integer_to_words(tens * 10 + 1)
        assert " Y " not in integer_to_words(tens * 10)


@pytest.mark.parametrize("bad", [-1, "-0.01", "1.234", "abc", None, True, float("nan")])
def test_rejects_invalid_amounts(bad):
    with pytest.raises(InvalidAmount):
        format_currency(bad)


def test_output_is_uppercase_ascii():
    text = format_currency("1234.56")
    assert text == text.upper()
    assert text.isascii()
    assert text == "UNO MIL DOSCIENTOS TREINTA Y CUATRO SOLES CON 56/100"
