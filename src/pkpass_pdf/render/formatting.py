"""
Text Formatting
================
Turns field values and pass metadata into the strings drawn on the page.

- Numbers with a currency code: en-US currency (``$1,234.50``).
- Numbers without one: plain decimal, or percent/scientific per the
  field's number style.
- Strings with a recognized date style: parsed with python-dateutil and
  rendered per the date/time style pair. Anything unparseable is drawn as-is.

Month and weekday names are spelled out here rather than taken from
``strftime`` so output does not depend on the process locale.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from dateutil import parser as dateparser
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from ..models.pkpass import DateStyle, NumberStyle, PassField, PassStyle, TransitType

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Only symbols the standard PDF fonts can draw; other codes are prefixed.
_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}
_ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG",
    "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

_STYLE_LABELS = {
    PassStyle.BOARDING_PASS: "Boarding Pass",
    PassStyle.COUPON: "Coupon",
    PassStyle.EVENT_TICKET: "Event Ticket",
    PassStyle.GENERIC: "Pass",
    PassStyle.STORE_CARD: "Store Card",
}
_TRANSIT_LABELS = {
    TransitType.AIR: "Flight",
    TransitType.BOAT: "Ferry",
    TransitType.BUS: "Bus",
    TransitType.GENERIC: "Transit",
    TransitType.TRAIN: "Train",
}

ELLIPSIS = "…"

# Two distinct defaults: a string that lacks a date component parses
# differently against each and is rejected.
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

E = TypeVar("E", bound=Enum)


# ---------------------------------------------------------------------------
# Field values
# ---------------------------------------------------------------------------


def format_field_value(field: PassField) -> str:
    """Display string for a field value."""
    value = field.value

    if isinstance(value, (int, float)):
        if field.currency_code:
            return format_currency(value, field.currency_code)
        return format_number(value, field.number_style)

    date_style = _enum_or_none(DateStyle, field.date_style)
    if date_style is not None:
        parsed = parse_date(value)
        if parsed is not None:
            return format_datetime(parsed, date_style, _enum_or_none(DateStyle, field.time_style))

    return value


def format_number(value: int | float, number_style: str | None = None) -> str:
    if not _is_finite(value):
        return str(value)
    style = _enum_or_none(NumberStyle, number_style)
    # Decimal keeps integers beyond float range exact.
    number = Decimal(value)
    if style == NumberStyle.PERCENT:
        return f"{number * 100:,.0f}%"
    if style == NumberStyle.SCIENTIFIC:
        mantissa, exponent = f"{number:.6E}".split("E")
        mantissa = mantissa.rstrip("0").rstrip(".")
        return f"{mantissa}E{int(exponent)}"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_currency(value: int | float, currency_code: str) -> str:
    if not _is_finite(value):
        return str(value)
    code = currency_code.strip().upper()
    decimals = 0 if code in _ZERO_DECIMAL_CURRENCIES else 2
    amount = f"{Decimal(abs(value)):,.{decimals}f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    body = f"{symbol}{amount}" if symbol else f"{code} {amount}"
    return f"-{body}" if value < 0 else body


def _is_finite(value: int | float) -> bool:
    return not isinstance(value, float) or math.isfinite(value)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def parse_date(value: str | None) -> datetime | None:
    """Parse a timestamp string; None when it is not a complete date."""
    if not value or not value.strip():
        return None
    try:
        first, second = (dateparser.parse(value, default=d) for d in _PARSE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first


def format_datetime(
    moment: datetime,
    date_style: DateStyle | None,
    time_style: DateStyle | None = None,
) -> str:
    """en-US rendering of ``moment`` for a date/time style pair."""
    date_part = _format_date(moment, date_style) if date_style else ""
    time_part = _format_time(moment, time_style) if time_style else ""

    if date_part and time_part:
        joiner = " at " if date_style in (DateStyle.LONG, DateStyle.FULL) else ", "
        return f"{date_part}{joiner}{time_part}"
    if date_part or time_part:
        return date_part or time_part
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_footer_date(value: str | None) -> str | None:
    """Medium-style date for the footer, or None when ``value`` does not parse."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return _format_date(parsed, DateStyle.MEDIUM)


def _format_date(moment: datetime, style: DateStyle) -> str:
    month = _MONTHS[moment.month - 1]
    if style == DateStyle.SHORT:
        return f"{moment.month}/{moment.day}/{moment.year % 100:02d}"
    if style == DateStyle.MEDIUM:
        return f"{month[:3]} {moment.day}, {moment.year}"
    if style == DateStyle.LONG:
        return f"{month} {moment.day}, {moment.year}"
    if style == DateStyle.FULL:
        return f"{_WEEKDAYS[moment.weekday()]}, {month} {moment.day}, {moment.year}"
    return ""


def _format_time(moment: datetime, style: DateStyle) -> str:
    if style == DateStyle.NONE:
        return ""
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    if style == DateStyle.SHORT:
        return f"{hour}:{moment.minute:02d} {meridiem}"
    text = f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    if style in (DateStyle.LONG, DateStyle.FULL):
        zone = _zone_label(moment)
        if zone:
            text = f"{text} {zone}"
    return text


def _zone_label(moment: datetime) -> str:
    offset = moment.utcoffset()
    if offset is None:
        return ""
    minutes = int(offset.total_seconds() // 60)
    if minutes == 0:
        return "UTC"
    sign = "+" if minutes > 0 else "-"
    hours, rem = divmod(abs(minutes), 60)
    return f"GMT{sign}{hours}" + (f":{rem:02d}" if rem else "")


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def format_style_label(style: PassStyle | str, transit_type: str | None = None) -> str:
    """
    Human-readable pass type. Boarding passes with a known transit type use
    the transit label; unknown styles fall back to the raw tag.
    """
    style_enum = _enum_or_none(PassStyle, style)
    if style_enum is None:
        return str(style)
    label = _STYLE_LABELS[style_enum]

    if style_enum == PassStyle.BOARDING_PASS and transit_type:
        transit = _enum_or_none(TransitType, transit_type)
        if transit is not None:
            label = _TRANSIT_LABELS[transit]
    return label


# ---------------------------------------------------------------------------
# Text fitting
# ---------------------------------------------------------------------------


def wrap_text(text: str, font: str, size: float, max_width: float) -> list[str]:
    """Word-wrap ``text`` to ``max_width``; words wider than the line stay whole."""
    if not text:
        return []
    return simpleSplit(text, font, size, max_width)


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Shorten ``text`` with an ellipsis until it fits ``max_width``."""
    if stringWidth(text, font, size) <= max_width:
        return text
    # Longest prefix that still fits with the ellipsis appended.
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if stringWidth(text[:mid] + ELLIPSIS, font, size) <= max_width:
            lo = mid
        else:
            hi = mid - 1
    s = text[:lo]
    return s.rstrip() + ELLIPSIS if s else ""


def _enum_or_none(enum_cls: type[E], value: Any) -> E | None:
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None
