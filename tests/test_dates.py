from __future__ import annotations

from datetime import date

from lexdesk.core.dates import (
    format_date_br,
    format_date_extenso,
    format_time_string,
    to_iso_date,
)


def test_to_iso_date_accepts_iso_and_day_first_inputs() -> None:
    assert to_iso_date("2026-03-05T10:00:00Z") == "2026-03-05"
    assert to_iso_date("05/03/2026") == "2026-03-05"
    assert to_iso_date(date(2026, 3, 5)) == "2026-03-05"
    assert to_iso_date("") is None


def test_to_iso_date_rejects_impossible_calendar_dates() -> None:
    assert to_iso_date("2026-13-45") is None
    assert to_iso_date("2026-02-30") is None
    assert to_iso_date("2028-02-29") == "2028-02-29"


def test_format_date_br() -> None:
    assert format_date_br("2026-12-01") == "01/12/2026"
    assert format_date_br(None) is None


def test_format_time_string_normalizes_and_falls_back() -> None:
    assert format_time_string("9") == "09:00"
    assert format_time_string("14:30:15") == "14:30"
    assert format_time_string(None, "2026-10-19T08:45:00") == "08:45"
    assert format_time_string("", None) is None


def test_format_date_extenso_in_portuguese() -> None:
    assert format_date_extenso(date(2026, 10, 19)) == "segunda-feira, 19 de outubro de 2026"
    assert format_date_extenso(date(2026, 3, 7)) == "sábado, 7 de março de 2026"
