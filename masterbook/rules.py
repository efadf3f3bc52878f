"""Keyword and synonym tables that drive classification and aggregation.

Everything business-specific about how a sheet or column is recognised lives
here so it can be adjusted without touching the aggregators.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models import SheetClassification


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the ordered classification table.

    ``name_keywords`` are matched against the upper-cased sheet name;
    ``header_fragments`` are matched case-sensitively against each header.
    A name containing one of ``name_exclusions`` never matches by name.
    """

    classification: SheetClassification
    name_keywords: Tuple[str, ...]
    header_fragments: Tuple[str, ...]
    name_exclusions: Tuple[str, ...] = ()

    def matches(self, sheet_name: str, headers: Tuple[str, ...]) -> bool:
        upper_name = sheet_name.upper()
        excluded = any(fragment in upper_name for fragment in self.name_exclusions)
        if not excluded and any(keyword in upper_name for keyword in self.name_keywords):
            return True
        return any(
            fragment in header for header in headers for fragment in self.header_fragments
        )


SHEET_CLASSIFICATION_RULES: List[ClassificationRule] = []


def _add_rule(
    classification: SheetClassification,
    names: Tuple[str, ...],
    headers: Tuple[str, ...],
    exclude: Tuple[str, ...] = (),
) -> None:
    SHEET_CLASSIFICATION_RULES.append(ClassificationRule(classification, names, headers, exclude))


# Order matters: the first matching rule wins.
_add_rule(
    SheetClassification.PRODUCTION_BATCHES,
    ("BATCH", "PRODUCTION", "CROP", "PLANTING"),
    ("BatchID", "Batch ID", "ExpectedYield", "RevisedYield", "ExpectedHarvestDate"),
)
_add_rule(
    SheetClassification.HARVEST_TRACKING,
    ("HARVEST",),
    ("QtyHarvested", "QtyRejected", "QCScore"),
    # "Post-Harvest Logistics" belongs to the logistics rule below.
    exclude=("POST-HARVEST", "POST HARVEST", "POSTHARVEST"),
)
_add_rule(
    SheetClassification.SOURCING_PROCUREMENT,
    ("SOURCING", "PROCUREMENT", "PURCHASE", "SUPPLIER", "VENDOR"),
    ("Supplier", "PurchaseOrder", "PO Number"),
)
_add_rule(
    SheetClassification.POST_HARVEST_LOGISTICS,
    ("LOGISTICS", "DELIVERY", "DISPATCH", "SHIPMENT", "TRANSPORT"),
    ("OnTime", "DeliveryDate", "Dispatch"),
)
_add_rule(
    SheetClassification.FINANCIAL_REVENUE,
    ("REVENUE", "INCOME", "SALES"),
    ("Revenue", "Income", "SalesAmount"),
)
_add_rule(
    SheetClassification.FINANCIAL_EXPENSE,
    ("EXPENSE", "COST", "EXPENDITURE", "SPENDING"),
    ("Expense", "Cost"),
)
_add_rule(
    SheetClassification.PRODUCTION_SETTINGS,
    ("SETTINGS", "CONFIG", "MASTER", "PARAMETERS"),
    ("Parameter", "Setting"),
)


# Field synonyms, highest priority first.
REVISED_YIELD_FIELDS = ("RevisedYield", "Revised Yield", "RevisedYield(kg)", "Revised Yield (kg)")
EXPECTED_YIELD_FIELDS = ("ExpectedYield", "Expected Yield", "ExpectedYield(kg)", "Expected Yield (kg)", "Quantity")
EXPECTED_HARVEST_DATE_FIELDS = ("ExpectedHarvestDate", "Expected Harvest Date", "ExpectedHarvest", "Harvest ETA")
HARVESTED_FIELDS = ("QtyHarvested", "Qty Harvested", "HarvestedQty", "Harvested Quantity", "Harvested")
REJECTED_FIELDS = ("QtyRejected", "Qty Rejected", "RejectedQty", "Rejected Quantity", "Rejected")
ACCEPTED_FIELDS = ("QtyAccepted", "Qty Accepted", "AcceptedQty", "Accepted Quantity", "Accepted")
QC_SCORE_FIELDS = ("QCScore", "QC Score", "QualityScore", "Quality Score")
ON_TIME_FIELDS = ("OnTime", "On Time", "OnTimeDelivery", "On-Time")
STATUS_FIELDS = ("Status", "State", "Stage")
DATE_FIELDS = ("Date", "DeliveryDate", "HarvestDate", "ExpectedHarvestDate", "Timestamp", "Created")

# First non-empty one of these names a financial record's category.
CATEGORY_FIELDS = ("Category", "Type", "Source", "Vendor", "Description", "Item", "Product")

# Header substrings, matched case-insensitively. Revenue wins over expense.
REVENUE_KEYWORDS = ("revenue", "income", "sales")
EXPENSE_KEYWORDS = ("expense", "cost", "amount", "outstanding")
CURRENCY_SYMBOLS = ("₹", "$", "€", "£", "¥")

# Generic money-like headers counted by the activity windows.
AMOUNT_KEYWORDS = ("amount", "revenue", "income", "sales", "expense", "cost", "price", "value", "total")

# Record quality.
EMPTY_TOKENS = frozenset({"", "0", "n/a", "na", "-", "null", "undefined"})
JUNK_TOKENS = frozenset({"tbd", "tbc", "pending", "temp", "test", "na", "n/a"})
IMPORTANT_KEYWORDS = ("id", "name", "amount", "qty", "price", "cost")
IMPORTANT_FIELDS = ("BatchID", "Date", "Employee", "Vendor", "Description", "Amount", "Cost", "QtyHarvested")
RANK_FIELDS = ("BatchID", "Date", "Amount", "Employee", "Vendor", "Description")

# Status buckets for the operational summary.
STATUS_ACTIVE = ("active", "ongoing", "in-progress", "in progress", "processing", "growing")
STATUS_COMPLETED = ("completed", "complete", "finished", "done", "delivered", "paid", "received", "harvested")
STATUS_PENDING = ("pending", "scheduled", "planned", "waiting", "low stock", "reorder")


@dataclass(frozen=True)
class SheetStyle:
    color: str
    icon: str
    label: str


SHEET_STYLES: Dict[SheetClassification, SheetStyle] = {
    SheetClassification.PRODUCTION_BATCHES: SheetStyle("green", "sprout", "Production Batches"),
    SheetClassification.HARVEST_TRACKING: SheetStyle("lime", "basket", "Harvest Tracking"),
    SheetClassification.SOURCING_PROCUREMENT: SheetStyle("purple", "cart", "Sourcing & Procurement"),
    SheetClassification.POST_HARVEST_LOGISTICS: SheetStyle("cyan", "truck", "Post-Harvest Logistics"),
    SheetClassification.FINANCIAL_REVENUE: SheetStyle("emerald", "rupee", "Revenue"),
    SheetClassification.FINANCIAL_EXPENSE: SheetStyle("orange", "receipt", "Expenses"),
    SheetClassification.PRODUCTION_SETTINGS: SheetStyle("slate", "gear", "Settings"),
    SheetClassification.GENERAL: SheetStyle("blue", "table", "General"),
}


def style_for(classification: SheetClassification) -> SheetStyle:
    return SHEET_STYLES.get(classification, SHEET_STYLES[SheetClassification.GENERAL])


__all__ = [
    "ACCEPTED_FIELDS",
    "AMOUNT_KEYWORDS",
    "CATEGORY_FIELDS",
    "ClassificationRule",
    "CURRENCY_SYMBOLS",
    "DATE_FIELDS",
    "EMPTY_TOKENS",
    "EXPECTED_HARVEST_DATE_FIELDS",
    "EXPECTED_YIELD_FIELDS",
    "EXPENSE_KEYWORDS",
    "HARVESTED_FIELDS",
    "IMPORTANT_FIELDS",
    "IMPORTANT_KEYWORDS",
    "JUNK_TOKENS",
    "ON_TIME_FIELDS",
    "QC_SCORE_FIELDS",
    "RANK_FIELDS",
    "REJECTED_FIELDS",
    "REVENUE_KEYWORDS",
    "REVISED_YIELD_FIELDS",
    "SHEET_CLASSIFICATION_RULES",
    "SHEET_STYLES",
    "STATUS_ACTIVE",
    "STATUS_COMPLETED",
    "STATUS_FIELDS",
    "STATUS_PENDING",
    "SheetStyle",
    "style_for",
]
