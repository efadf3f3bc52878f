"""Display formatting for amounts, quantities and dates."""
from __future__ import annotations

import math
from typing import Any

import pandas as pd

from .normalize import normalize_date


def _indian_group(integer_part: str) -> str:
    # Last three digits, then groups of two: 12,34,56,789
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_amount(value: float, symbol: str = "₹", decimals: int = 0) -> str:
    """Format money with Indian digit grouping, e.g. ``₹1,25,000``."""

    if value is None or (isinstance(value, float) and math.isnan(value)):
        value = 0.0
    rounded = f"{abs(float(value)):.{decimals}f}"
    sign = "-" if value < 0 and float(rounded) != 0 else ""
    integer_part, _, fraction = rounded.partition(".")
    grouped = _indian_group(integer_part)
    if fraction:
        grouped = f"{grouped}.{fraction}"
    return f"{sign}{symbol}{grouped}"


def format_compact_amount(value: float, symbol: str = "₹") -> str:
    """Short form for card values: crore, lakh and thousand suffixes."""

    magnitude = abs(value)
    sign = "-" if value < 0 else ""
    if magnitude >= 1e7:
        return f"{sign}{symbol}{magnitude / 1e7:.2f}Cr"
    if magnitude >= 1e5:
        return f"{sign}{symbol}{magnitude / 1e5:.2f}L"
    if magnitude >= 1e3:
        return f"{sign}{symbol}{magnitude / 1e3:.1f}K"
    return format_amount(value, symbol)


def format_number(value: float, decimals: int = 0) -> str:
    return format_amount(value, symbol="", decimals=decimals)


def format_percent(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


def format_date(value: Any, with_time: bool | None = None) -> str:
    """``01 Sep 2025``; the time is appended when it is not midnight."""

    stamp = value if isinstance(value, pd.Timestamp) else normalize_date(value)
    if stamp is None or pd.isna(stamp):
        return "N/A"
    show_time = with_time if with_time is not None else (stamp.hour != 0 or stamp.minute != 0)
    if show_time:
        return stamp.strftime("%d %b %Y %H:%M")
    return stamp.strftime("%d %b %Y")


def format_cell(column: str, value: Any) -> str:
    """Render a table cell: dates for date-like columns, text otherwise."""

    text = "" if value is None else str(value).strip()
    if not text:
        return "-"
    if "date" in column.lower():
        stamp = normalize_date(text)
        if stamp is not None:
            return format_date(stamp)
    return text


__all__ = [
    "format_amount",
    "format_cell",
    "format_compact_amount",
    "format_date",
    "format_number",
    "format_percent",
]
