"""Date parsing and pt-BR formatting helpers."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?(?::(\d{2}))?$")

WEEKDAYS_PT = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)
MONTHS_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def parse_datetime(value: Any) -> datetime | None:
    """Parse ISO strings first, then anything ``dateutil`` understands (day first)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    match = _ISO_DATE_RE.match(text)
    if match:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                return datetime(*(int(part) for part in match.groups()))
            except ValueError:
                return None
    try:
        return date_parser.parse(text, dayfirst=True)
    except (ValueError, OverflowError):
        return None


def to_iso_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for any parseable date-like value."""
    if isinstance(value, str):
        text = value.strip()
        if _ISO_DATE_RE.match(text):
            try:
                return date.fromisoformat(text[:10]).isoformat()
            except ValueError:
                return None
    parsed = parse_datetime(value)
    return parsed.date().isoformat() if parsed else None


def format_date_br(value: Any) -> str | None:
    parsed = parse_datetime(value)
    return parsed.strftime("%d/%m/%Y") if parsed else None


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def format_time_string(value: Any, fallback_date: Any = None) -> str | None:
    """Normalize ``H``, ``H:MM`` or ``H:MM:SS`` into ``HH:MM``.

    Falls back to the time component of a parseable datetime, then to
    ``fallback_date``.
    """
    text = str(value).strip() if value is not None else ""
    if text:
        match = _TIME_RE.match(text)
        if match:
            hours = int(match.group(1))
            minutes = int(match.group(2) or 0)
            if 0 <= hours <= 23 and 0 <= minutes <= 59:
                return f"{hours:02d}:{minutes:02d}"
        parsed = parse_datetime(text)
        if parsed is not None:
            return format_time(parsed)

    if fallback_date:
        parsed = parse_datetime(fallback_date)
        if parsed is not None:
            return format_time(parsed)
    return None


def format_date_extenso(value: date) -> str:
    """Long pt-BR date, e.g. ``segunda-feira, 19 de outubro de 2026``."""
    weekday = WEEKDAYS_PT[value.weekday()]
    month = MONTHS_PT[value.month - 1]
    return f"{weekday}, {value.day} de {month} de {value.year}"
