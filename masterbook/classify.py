"""Infer what a sheet is about from its name and header row."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, Sequence, Tuple

from .models import RawSheet, SheetClassification, SheetsSnapshot
from .rules import SHEET_CLASSIFICATION_RULES, ClassificationRule

LOGGER = logging.getLogger(__name__)


def classify(
    sheet_name: str,
    headers: Sequence[str],
    rules: Sequence[ClassificationRule] | None = None,
) -> SheetClassification:
    """Return the classification of the first rule matching name or headers."""

    header_tuple = tuple(str(h) for h in headers if h is not None)
    for rule in rules if rules is not None else SHEET_CLASSIFICATION_RULES:
        if rule.matches(sheet_name or "", header_tuple):
            return rule.classification
    return SheetClassification.GENERAL


def classify_snapshot(snapshot: SheetsSnapshot) -> Dict[str, SheetClassification]:
    result = {name: classify(name, sheet.headers) for name, sheet in snapshot.items()}
    LOGGER.debug("Sheet classifications: %s", {k: v.value for k, v in result.items()})
    return result


def sheets_with(
    snapshot: SheetsSnapshot,
    classes: Iterable[SheetClassification],
) -> Iterator[Tuple[str, RawSheet]]:
    """Yield ``(name, sheet)`` pairs whose classification is in ``classes``, in tab order."""

    wanted = set(classes)
    for name, sheet in snapshot.items():
        if classify(name, sheet.headers) in wanted:
            yield name, sheet


__all__ = ["classify", "classify_snapshot", "sheets_with"]
