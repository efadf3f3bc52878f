"""Cell value normalisation and synonym-aware field lookup.

Spreadsheet cells arrive as loosely formatted strings ("₹1,25,000",
"500 kg", "45901", "2025-09-01"). The helpers here turn them into floats,
timestamps and flags without ever raising; anything unparseable collapses to
a defined default.
"""
from __future__ import annotations

import logging
import math
import re
from numbers import Number
from typing import Any, Callable, Mapping, Sequence

import pandas as pd

from .rules import CURRENCY_SYMBOLS, EMPTY_TOKENS

LOGGER = logging.getLogger(__name__)

# Serial day 25569 is 1970-01-01 in the spreadsheet calendar.
SERIAL_EPOCH_OFFSET = 25569
SERIAL_MIN = 30000
SERIAL_MAX = 2958466

_UNIX_EPOCH = pd.Timestamp("1970-01-01")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_CURRENCY_WORD_RE = re.compile(r"^(?:rs\.?|inr)", re.IGNORECASE)
_STRIP_CHARS = "".join(CURRENCY_SYMBOLS) + ","


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def normalize_amount(raw: Any) -> float:
    """Parse a currency/quantity cell into a float, defaulting to ``0.0``."""

    if raw is None or isinstance(raw, bool):
        return 0.0
    if _is_number(raw):
        value = float(raw)  # type: ignore[arg-type]
        return 0.0 if math.isnan(value) or math.isinf(value) else value

    text = str(raw).strip()
    if not text:
        return 0.0
    for char in _STRIP_CHARS:
        text = text.replace(char, "")
    text = re.sub(r"\s+", "", text)
    negative = text.startswith("(") and text.endswith(")")
    text = text.strip("()")
    text = _CURRENCY_WORD_RE.sub("", text)
    match = _NUMBER_RE.match(text)
    if not match:
        LOGGER.debug("Unparseable amount %r; using 0", raw)
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        LOGGER.debug("Unparseable amount %r; using 0", raw)
        return 0.0
    if math.isinf(value) or math.isnan(value):
        return 0.0
    return -value if negative else value


def _from_serial(serial: float) -> pd.Timestamp:
    stamp = _UNIX_EPOCH + pd.to_timedelta(serial - SERIAL_EPOCH_OFFSET, unit="D")
    return stamp.round("s")


def _date_only_if_midnight(stamp: pd.Timestamp) -> pd.Timestamp:
    if stamp.hour == 0 and stamp.minute == 0:
        return stamp.normalize()
    return stamp


def normalize_date(raw: Any) -> pd.Timestamp | None:
    """Return a naive timestamp for a date cell or ``None`` when it is not a date.

    Numbers (and numeric strings) are treated as spreadsheet serials when they
    fall inside the plausible serial range; everything else goes through the
    calendar parser.
    """

    if raw is None or isinstance(raw, bool) or _is_nan(raw):
        return None
    if isinstance(raw, pd.Timestamp):
        stamp = raw.tz_convert("UTC").tz_localize(None) if raw.tzinfo is not None else raw
        return None if pd.isna(stamp) else _date_only_if_midnight(stamp)

    serial: float | None = None
    if _is_number(raw):
        serial = float(raw)  # type: ignore[arg-type]
    else:
        text = str(raw).strip()
        if not text:
            return None
        if _NUMBER_RE.fullmatch(text):
            serial = float(text)
        else:
            return _parse_calendar_text(text)

    if SERIAL_MIN < serial < SERIAL_MAX:
        try:
            return _date_only_if_midnight(_from_serial(serial))
        except (OverflowError, ValueError, pd.errors.OutOfBoundsDatetime, pd.errors.OutOfBoundsTimedelta):
            # Nanosecond timestamps stop at 2262 on older pandas.
            LOGGER.debug("Serial %r is beyond the representable date range", raw)
            return None
    LOGGER.debug("Number %r outside serial date range", raw)
    return None


def _parse_calendar_text(text: str) -> pd.Timestamp | None:
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        parsed = pd.NaT
    if parsed is None or pd.isna(parsed):
        # Day-first is the common form in Indian sheets ("01/09/2025").
        try:
            parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
        except (ValueError, TypeError, OverflowError):
            parsed = pd.NaT
    if parsed is None or pd.isna(parsed):
        LOGGER.debug("Unparseable date %r", text)
        return None
    stamp = pd.Timestamp(parsed)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return _date_only_if_midnight(stamp)


def is_empty(raw: Any) -> bool:
    """True for missing, zero and placeholder values such as ``"N/A"`` or ``"-"``."""

    if raw is None or _is_nan(raw):
        return True
    if isinstance(raw, bool):
        return not raw
    if _is_number(raw):
        return raw == 0
    return str(raw).strip().lower() in EMPTY_TOKENS


def normalize_flag(raw: Any) -> bool:
    if raw is None or isinstance(raw, bool):
        return bool(raw)
    if _is_number(raw):
        return raw == 1
    return str(raw).strip() == "1"


def normalize_text(raw: Any) -> str:
    if raw is None or _is_nan(raw):
        return ""
    return str(raw).strip()


def compact_key(value: object) -> str:
    """Lowercase and drop everything but letters and digits ("Qty Harvested" -> "qtyharvested")."""
    if value is None:
        return ""
    return re.sub(r"[^a-z0-9]+", "", str(value).strip().lower())


def _lookup(record: Mapping[str, Any], name: str) -> tuple[bool, Any]:
    if name in record and record[name] is not None:
        return True, record[name]
    wanted = compact_key(name)
    if not wanted:
        return False, None
    for key, value in record.items():
        if value is not None and compact_key(key) == wanted:
            return True, value
    return False, None


def resolve(
    record: Mapping[str, Any],
    candidates: Sequence[str],
    normalizer: Callable[[Any], Any] = normalize_amount,
    default: Any = 0.0,
) -> Any:
    """Normalise the first candidate field present on ``record``.

    Candidates are tried in order; a field counts as present when the record
    has the key (exactly, or after :func:`compact_key` folding) with a
    non-``None`` value, even if that value is blank.
    """

    for name in candidates:
        found, value = _lookup(record, name)
        if found:
            return normalizer(value)
    return default


def resolve_amount(record: Mapping[str, Any], candidates: Sequence[str]) -> float:
    return resolve(record, candidates, normalize_amount, 0.0)


def resolve_date(record: Mapping[str, Any], candidates: Sequence[str]) -> pd.Timestamp | None:
    return resolve(record, candidates, normalize_date, None)


def resolve_text(record: Mapping[str, Any], candidates: Sequence[str]) -> str:
    """First candidate with non-empty text; unlike :func:`resolve` blanks are skipped."""

    for name in candidates:
        found, value = _lookup(record, name)
        if found and not is_empty(value):
            return normalize_text(value)
    return ""


__all__ = [
    "compact_key",
    "is_empty",
    "normalize_amount",
    "normalize_date",
    "normalize_flag",
    "normalize_text",
    "resolve",
    "resolve_amount",
    "resolve_date",
    "resolve_text",
]
