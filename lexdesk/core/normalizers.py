"""Shared coercion helpers for loosely typed request payloads and DB rows."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Any

TRUTHY_STRINGS = {"1", "true", "t", "yes", "y", "sim", "s", "ativo", "active", "on"}
FALSY_STRINGS = {"0", "false", "f", "no", "n", "nao", "não", "inativo", "inactive", "off"}


def coerce_string(value: Any) -> str | None:
    """Return a trimmed non-empty string for text or finite numbers, else ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    return None


def optional_text(value: Any) -> str | None:
    """Trim strings and turn blanks into ``None``; other values become their text."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def only_digits(value: Any) -> str | None:
    if value is None:
        return None
    digits = re.sub(r"\D+", "", str(value))
    return digits or None


def strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFD", value)
    return "".join(char for char in normalized if unicodedata.category(char) != "Mn")


def slugify(value: str) -> str:
    """Lower-case ``value`` and join its letter/digit runs with underscores."""
    ascii_text = strip_accents(value)
    return re.sub(r"[^\w]+|_+", "_", ascii_text).strip("_").lower()


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce numeric-looking input into a finite float."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def parse_optional_number(value: Any) -> float | None:
    """Parse a nullable decimal; accepts ``1.234,56`` style input."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("Invalid number")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError("Invalid number")
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        parsed = float(text)
    except ValueError as exc:
        raise ValueError(f"Invalid number: {value!r}") from exc
    if not math.isfinite(parsed):
        raise ValueError(f"Invalid number: {value!r}")
    return parsed


def parse_optional_int(value: Any) -> int | None:
    """Parse a nullable integer id, raising ``ValueError`` for garbage."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Invalid integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid integer: {value!r}")
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    if not re.fullmatch(r"-?\d+", text):
        raise ValueError(f"Invalid integer: {value!r}")
    return int(text)


def parse_positive_int(value: Any) -> int | None:
    """Return a positive integer or ``None`` for anything else."""
    try:
        parsed = parse_optional_int(value)
    except ValueError:
        return None
    if parsed is None or parsed <= 0:
        return None
    return parsed


def parse_bool(value: Any, *, default: bool | None = None) -> bool | None:
    """Interpret booleans written as bools, 0/1 or pt/en words.

    Returns ``default`` for ``None``/blank input and raises ``ValueError`` when
    the value is not recognisable.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean: {value!r}")
    text = strip_accents(str(value)).strip().lower()
    if not text:
        return default
    if text in TRUTHY_STRINGS:
        return True
    if text in {strip_accents(item) for item in FALSY_STRINGS}:
        return False
    raise ValueError(f"Invalid boolean: {value!r}")


def normalize_payment_label(value: Any) -> str:
    """Lower-case and strip accents from a payment description."""
    return strip_accents(str(value or "")).strip().lower()
