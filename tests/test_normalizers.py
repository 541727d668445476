from __future__ import annotations

import math

import pytest

from lexdesk.core.normalizers import (
    coerce_string,
    normalize_payment_label,
    parse_bool,
    parse_optional_int,
    parse_optional_number,
    parse_positive_int,
    slugify,
    to_number,
)


def test_coerce_string_trims_and_formats_numbers() -> None:
    assert coerce_string("  Maria  ") == "Maria"
    assert coerce_string("   ") is None
    assert coerce_string(1500.0) == "1500"
    assert coerce_string(12.5) == "12.5"
    assert coerce_string(math.inf) is None
    assert coerce_string(True) is None


def test_parse_bool_accepts_portuguese_and_english_words() -> None:
    assert parse_bool("sim") is True
    assert parse_bool("Não") is False
    assert parse_bool("inactive") is False
    assert parse_bool(1) is True
    assert parse_bool("", default=True) is True
    with pytest.raises(ValueError):
        parse_bool("talvez")
    with pytest.raises(ValueError):
        parse_bool(2)


def test_parse_optional_number_handles_brazilian_format() -> None:
    assert parse_optional_number("1.234,56") == pytest.approx(1234.56)
    assert parse_optional_number("10.5") == pytest.approx(10.5)
    assert parse_optional_number("") is None
    with pytest.raises(ValueError):
        parse_optional_number("abc")


def test_integer_parsers() -> None:
    assert parse_optional_int(" 42 ") == 42
    assert parse_optional_int(None) is None
    with pytest.raises(ValueError):
        parse_optional_int("4.2")
    assert parse_positive_int("7") == 7
    assert parse_positive_int("0") is None
    assert parse_positive_int("x") is None


def test_slugify_and_payment_label() -> None:
    assert slugify("Cônjuge do Autor") == "conjuge_do_autor"
    assert normalize_payment_label(" Parcelado no CARTÃO ") == "parcelado no cartao"
    assert to_number("abc") == 0.0
    assert to_number("3.5") == 3.5
