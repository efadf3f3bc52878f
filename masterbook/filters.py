"""Record quality filtering and display ranking."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Sequence

from .normalize import is_empty
from .rules import IMPORTANT_FIELDS, IMPORTANT_KEYWORDS, JUNK_TOKENS, RANK_FIELDS

LOGGER = logging.getLogger(__name__)

_IMPORTANT_LOWER = tuple(f.lower() for f in IMPORTANT_FIELDS)


def is_meaningful(value: Any) -> bool:
    """Non-empty and not a placeholder like "TBD" or "test"."""
    if is_empty(value):
        return False
    return str(value).strip().lower() not in JUNK_TOKENS


def is_important_field(name: str) -> bool:
    lowered = str(name).strip().lower()
    if any(keyword in lowered for keyword in IMPORTANT_KEYWORDS):
        return True
    return lowered in _IMPORTANT_LOWER or any(field in lowered for field in _IMPORTANT_LOWER)


def is_substantive(record: Mapping[str, Any]) -> bool:
    """At least two meaningful fields, one of which is an important field."""

    meaningful = [key for key, value in record.items() if is_meaningful(value)]
    if len(meaningful) < 2:
        return False
    return any(is_important_field(key) for key in meaningful)


def rank_score(record: Mapping[str, Any]) -> int:
    return sum(1 for field in RANK_FIELDS if field in record and not is_empty(record[field]))


def rank(records: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Substantive records, most complete first; ties keep their input order."""

    kept = [record for record in records if is_substantive(record)]
    # sorted() is stable, so equal scores keep sheet order.
    ordered = sorted(kept, key=rank_score, reverse=True)
    LOGGER.debug("Ranked %d substantive records", len(ordered))
    return ordered


def limit_records(records: Sequence[Mapping[str, Any]], limit: int, show_all: bool = False) -> List[Mapping[str, Any]]:
    if show_all or limit <= 0:
        return list(records)
    return list(records[:limit])


__all__ = ["is_important_field", "is_meaningful", "is_substantive", "limit_records", "rank", "rank_score"]
