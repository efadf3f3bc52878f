import pandas as pd
import pytest

from masterbook.config import AppConfig
from masterbook.models import snapshot_from_payload


@pytest.fixture
def now():
    return pd.Timestamp("2025-09-10 12:00:00")


@pytest.fixture
def config():
    return AppConfig(
        app_env="development",
        spreadsheet_id=None,
        client_email=None,
        private_key=None,
        retry_base_delay_seconds=0.0,
        fetch_timeout_seconds=2.0,
        excluded_sheets=("Dashboard",),
        display_timezone=None,
    )


@pytest.fixture
def farm_payload():
    return {
        "Crop Batches": {
            "headers": ["BatchID", "Crop", "ExpectedYield", "RevisedYield", "ExpectedHarvestDate", "Status"],
            "rows": [
                {"BatchID": "B1", "Crop": "Tomato", "ExpectedYield": "1,000 kg", "RevisedYield": "1,200",
                 "ExpectedHarvestDate": "2025-09-20", "Status": "Growing"},
                {"BatchID": "B2", "Crop": "Okra", "ExpectedYield": "800", "RevisedYield": "",
                 "ExpectedHarvestDate": "2025-09-01", "Status": "Harvested"},
                {"BatchID": "B3", "Crop": "Chilli", "ExpectedYield": "500", "RevisedYield": "0",
                 "ExpectedHarvestDate": "45910", "Status": "Active"},
            ],
        },
        "Harvest Log": {
            "headers": ["HarvestID", "QtyHarvested", "QtyRejected", "QCScore", "HarvestDate"],
            "rows": [
                {"HarvestID": "H1", "QtyHarvested": "900", "QtyRejected": "50", "QCScore": "8", "HarvestDate": "2025-09-05"},
                {"HarvestID": "H2", "QtyHarvested": "1,100", "QtyRejected": "150", "QCScore": "6", "HarvestDate": "2025-09-08"},
            ],
        },
        "Dispatch Logistics": {
            "headers": ["DispatchID", "OnTime", "DeliveryDate", "Customer"],
            "rows": [
                {"DispatchID": "D1", "OnTime": "1", "DeliveryDate": "2025-09-09", "Customer": "FreshMart"},
                {"DispatchID": "D2", "OnTime": "0", "DeliveryDate": "2025-09-02", "Customer": "FreshMart"},
                {"DispatchID": "D3", "OnTime": "1", "DeliveryDate": "2025-08-20", "Customer": "GreenGrocer"},
                {"DispatchID": "D4", "OnTime": "1", "DeliveryDate": "2025-09-10", "Customer": "GreenGrocer"},
                {"DispatchID": "D5", "OnTime": "", "DeliveryDate": "", "Customer": "Walk-in"},
            ],
        },
        "Sales Ledger": {
            "headers": ["Date", "Category", "Customer", "SalesAmount"],
            "rows": [
                {"Date": "2025-09-09", "Category": "Produce", "Customer": "FreshMart", "SalesAmount": "₹1,50,000"},
                {"Date": "2025-09-03", "Category": "Produce", "Customer": "GreenGrocer", "SalesAmount": "₹50,000"},
                {"Date": "2025-08-15", "Category": "Processed Foods", "Customer": "Export", "SalesAmount": "₹1,00,000"},
            ],
        },
        "Farm Expenses": {
            "headers": ["Date", "Vendor", "Category", "Cost", "Notes"],
            "rows": [
                {"Date": "2025-09-08", "Vendor": "AgroSupplies", "Category": "Fertiliser", "Cost": "₹40,000", "Notes": ""},
                {"Date": "2025-09-01", "Vendor": "FuelCo", "Category": "Fuel", "Cost": "₹20,000", "Notes": ""},
                {"Date": "2025-07-01", "Vendor": "AgroSupplies", "Category": "Fertiliser", "Cost": "₹60,000", "Notes": ""},
            ],
        },
        "Farm Settings": {
            "headers": ["Parameter", "Value"],
            "rows": [{"Parameter": "Target QC", "Value": "7"}],
        },
    }


@pytest.fixture
def farm_snapshot(farm_payload):
    return snapshot_from_payload(farm_payload)
