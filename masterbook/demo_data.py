"""Fixed sample workbook used when the live spreadsheet cannot be reached."""
from __future__ import annotations

from .models import SheetsSnapshot, snapshot_from_payload

DEMO_PAYLOAD = {
    "Revenue Tracking": {
        "headers": ["Date", "Source", "Revenue Amount", "Category", "Status"],
        "rows": [
            {"Date": "2025-09-01", "Source": "Product Sales", "Revenue Amount": "₹125,000", "Category": "Sales", "Status": "Completed"},
            {"Date": "2025-09-02", "Source": "Service Revenue", "Revenue Amount": "₹85,000", "Category": "Services", "Status": "Completed"},
            {"Date": "2025-09-03", "Source": "Consulting", "Revenue Amount": "₹45,000", "Category": "Professional", "Status": "Pending"},
            {"Date": "2025-09-04", "Source": "License Fees", "Revenue Amount": "₹30,000", "Category": "Licensing", "Status": "Completed"},
            {"Date": "2025-09-05", "Source": "Subscription", "Revenue Amount": "₹75,000", "Category": "Recurring", "Status": "Completed"},
        ],
    },
    "Expense Tracking": {
        "headers": ["Date", "Vendor", "Amount", "Category", "Status"],
        "rows": [
            {"Date": "2025-09-01", "Vendor": "Office Supplies", "Amount": "₹15,000", "Category": "Operations", "Status": "Paid"},
            {"Date": "2025-09-02", "Vendor": "Marketing Agency", "Amount": "₹45,000", "Category": "Marketing", "Status": "Paid"},
            {"Date": "2025-09-03", "Vendor": "Software Licenses", "Amount": "₹25,000", "Category": "Technology", "Status": "Pending"},
            {"Date": "2025-09-04", "Vendor": "Travel Expenses", "Amount": "₹18,000", "Category": "Travel", "Status": "Paid"},
            {"Date": "2025-09-05", "Vendor": "Utilities", "Amount": "₹12,000", "Category": "Utilities", "Status": "Paid"},
        ],
    },
    "Production Data": {
        "headers": ["Batch ID", "Product", "Quantity", "Status", "Date"],
        "rows": [
            {"Batch ID": "BTH-001", "Product": "Organic Rice", "Quantity": "500 kg", "Status": "Active", "Date": "2025-09-01"},
            {"Batch ID": "BTH-002", "Product": "Wheat Flour", "Quantity": "300 kg", "Status": "Completed", "Date": "2025-09-02"},
            {"Batch ID": "BTH-003", "Product": "Pulses Mix", "Quantity": "200 kg", "Status": "Active", "Date": "2025-09-03"},
            {"Batch ID": "BTH-004", "Product": "Spice Blend", "Quantity": "150 kg", "Status": "Processing", "Date": "2025-09-04"},
            {"Batch ID": "BTH-005", "Product": "Organic Oils", "Quantity": "100 L", "Status": "Active", "Date": "2025-09-05"},
        ],
    },
    "Inventory Management": {
        "headers": ["Item", "Current Stock", "Minimum Required", "Unit Price", "Status"],
        "rows": [
            {"Item": "Raw Rice", "Current Stock": "2500 kg", "Minimum Required": "1000 kg", "Unit Price": "₹45/kg", "Status": "In Stock"},
            {"Item": "Wheat", "Current Stock": "1800 kg", "Minimum Required": "800 kg", "Unit Price": "₹35/kg", "Status": "In Stock"},
            {"Item": "Packaging Materials", "Current Stock": "500 units", "Minimum Required": "200 units", "Unit Price": "₹15/unit", "Status": "Low Stock"},
            {"Item": "Labels", "Current Stock": "1000 units", "Minimum Required": "300 units", "Unit Price": "₹5/unit", "Status": "In Stock"},
            {"Item": "Storage Containers", "Current Stock": "150 units", "Minimum Required": "100 units", "Unit Price": "₹125/unit", "Status": "In Stock"},
        ],
    },
}


def demo_snapshot() -> SheetsSnapshot:
    return snapshot_from_payload(DEMO_PAYLOAD)


__all__ = ["DEMO_PAYLOAD", "demo_snapshot"]
