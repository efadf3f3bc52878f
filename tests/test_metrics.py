import pandas as pd
import pytest

from masterbook.metrics import (
    aggregate_activity,
    aggregate_expenses,
    aggregate_financial,
    aggregate_operational,
    aggregate_production,
    aggregate_quality,
    aggregate_revenue,
    amount_column_kind,
)
from masterbook.models import FinancialMetrics, ProductionMetrics, QualityMetrics, snapshot_from_payload


def test_production_metrics(farm_snapshot, now):
    metrics = aggregate_production(farm_snapshot, now)
    assert metrics.active_batches == 2
    assert metrics.total_expected_yield == pytest.approx(2500.0)
    assert metrics.total_harvested == pytest.approx(2000.0)
    assert metrics.harvest_efficiency == pytest.approx(80.0)


def test_active_batches_depend_on_now(farm_snapshot):
    assert aggregate_production(farm_snapshot, pd.Timestamp("2025-08-01")).active_batches == 3
    assert aggregate_production(farm_snapshot, pd.Timestamp("2025-12-01")).active_batches == 0


def test_revised_yield_only_overrides_when_nonzero():
    snapshot = snapshot_from_payload(
        {
            "Batches": {
                "headers": ["BatchID", "ExpectedYield", "RevisedYield"],
                "rows": [
                    {"BatchID": "A", "ExpectedYield": "100", "RevisedYield": "150"},
                    {"BatchID": "B", "ExpectedYield": "100", "RevisedYield": "0"},
                    {"BatchID": "C", "ExpectedYield": "100"},
                ],
            }
        }
    )
    assert aggregate_production(snapshot).total_expected_yield == pytest.approx(350.0)


def test_production_ignores_unclassified_sheets():
    snapshot = snapshot_from_payload(
        {"Notes": {"headers": ["Quantity", "Harvested"], "rows": [{"Quantity": "10", "Harvested": "5"}]}}
    )
    assert aggregate_production(snapshot) == ProductionMetrics()


def test_efficiency_is_zero_without_expected_yield():
    snapshot = snapshot_from_payload(
        {"Harvest": {"headers": ["QtyHarvested"], "rows": [{"QtyHarvested": "40"}]}}
    )
    metrics = aggregate_production(snapshot)
    assert metrics.total_harvested == 40.0
    assert metrics.harvest_efficiency == 0.0


def test_quality_metrics(farm_snapshot):
    metrics = aggregate_quality(farm_snapshot)
    assert metrics.total_harvested == pytest.approx(2000.0)
    assert metrics.rejection_rate == pytest.approx(10.0)
    assert metrics.avg_quality_score == pytest.approx(7.0)
    assert metrics.total_deliveries == 4
    assert metrics.on_time_deliveries == 3
    assert metrics.on_time_percentage == pytest.approx(75.0)


def test_rejection_rate_falls_back_to_accepted_plus_rejected():
    snapshot = snapshot_from_payload(
        {"Harvest QC": {"headers": ["QtyAccepted", "QtyRejected"], "rows": [{"QtyAccepted": "90", "QtyRejected": "10"}]}}
    )
    assert aggregate_quality(snapshot).rejection_rate == pytest.approx(10.0)


def test_quality_on_empty_snapshot():
    assert aggregate_quality({}) == QualityMetrics()


def test_on_time_flag_must_be_exactly_one():
    snapshot = snapshot_from_payload(
        {
            "Deliveries": {
                "headers": ["OnTime"],
                "rows": [{"OnTime": "yes"}, {"OnTime": "1"}, {"OnTime": " 1 "}, {"OnTime": "0"}],
            }
        }
    )
    metrics = aggregate_quality(snapshot)
    assert metrics.total_deliveries == 4
    assert metrics.on_time_deliveries == 2


def test_revenue_example():
    snapshot = snapshot_from_payload(
        {
            "Sales": {
                "headers": ["Category", "RevenueAmount"],
                "rows": [
                    {"Category": "Sales", "RevenueAmount": "₹1,000"},
                    {"Category": "Sales", "RevenueAmount": "₹2,000"},
                ],
            }
        }
    )
    revenue = aggregate_revenue(snapshot)
    assert revenue.total == pytest.approx(3000.0)
    assert revenue.sources >= 1
    assert revenue.categories == 1
    assert revenue.category_names == ("Sales",)
    assert revenue.records == 2


def test_farm_financials(farm_snapshot):
    revenue = aggregate_revenue(farm_snapshot)
    expenses = aggregate_expenses(farm_snapshot)
    assert revenue.total == pytest.approx(300000.0)
    assert revenue.category_names == ("Produce", "Processed Foods")
    assert expenses.total == pytest.approx(120000.0)
    assert expenses.categories == 2
    assert expenses.sources == 1

    financial = aggregate_financial(farm_snapshot)
    assert financial.profit == pytest.approx(180000.0)
    assert financial.profit_margin == pytest.approx(60.0)
    assert financial.revenue_streams == 2
    assert financial.expense_categories == 2


def test_financial_scans_every_sheet_regardless_of_classification():
    snapshot = snapshot_from_payload(
        {
            "Crop Batches": {
                "headers": ["BatchID", "Product", "Sales", "Cost"],
                "rows": [{"BatchID": "B1", "Product": "Rice", "Sales": "500", "Cost": "200"}],
            }
        }
    )
    financial = aggregate_financial(snapshot)
    assert financial.revenue == 500.0
    assert financial.expenses == 200.0
    assert financial.revenue_streams == 1


def test_zero_rows_do_not_count_as_records_or_categories():
    snapshot = snapshot_from_payload(
        {
            "Expenses": {
                "headers": ["Category", "Amount"],
                "rows": [{"Category": "Fuel", "Amount": "0"}, {"Category": "Seeds", "Amount": "₹100"}],
            }
        }
    )
    expenses = aggregate_expenses(snapshot)
    assert expenses.records == 1
    assert expenses.category_names == ("Seeds",)


def test_profit_margin_zero_without_revenue():
    snapshot = snapshot_from_payload({"Costs": {"headers": ["Cost"], "rows": [{"Cost": "50"}]}})
    assert aggregate_financial(snapshot) == FinancialMetrics(
        revenue=0.0, expenses=50.0, profit=-50.0, profit_margin=0.0, revenue_streams=0, expense_categories=0
    )


@pytest.mark.parametrize(
    "header, kind",
    [
        ("Revenue Amount", "revenue"),
        ("Total Income", "revenue"),
        ("SalesAmount", "revenue"),
        ("Amount", "expense"),
        ("Outstanding", "expense"),
        ("Unit Cost", "expense"),
        ("Paid (₹)", "expense"),
        ("Unit Price", None),
        ("Quantity", None),
    ],
)
def test_amount_column_kind(header, kind):
    assert amount_column_kind(header) == kind


def test_operational_metrics(farm_snapshot):
    metrics = aggregate_operational(farm_snapshot)
    assert metrics.total == 3
    assert metrics.active == 2
    assert metrics.completed == 1
    assert metrics.pending == 0
    assert metrics.completion_rate == pytest.approx(100 / 3)


def test_activity_windows(now):
    snapshot = snapshot_from_payload(
        {
            "Ledger": {
                "headers": ["Date", "Amount"],
                "rows": [
                    {"Date": "2025-09-10 09:00", "Amount": "100"},
                    {"Date": "2025-09-05", "Amount": "200"},
                    {"Date": "2025-08-20", "Amount": "300"},
                    {"Date": "2025-06-01", "Amount": "400"},
                    {"Date": "", "Amount": "500"},
                ],
            }
        }
    )
    today, week, month = aggregate_activity(snapshot, now)
    assert (today.days, today.count, today.total_amount) == (1, 1, 100.0)
    assert (week.count, week.total_amount) == (2, 300.0)
    assert (month.count, month.total_amount) == (3, 600.0)
    assert month.percentage == pytest.approx(60.0)


def test_aggregators_do_not_mutate_snapshot(farm_snapshot, farm_payload, now):
    before = snapshot_from_payload(farm_payload)
    aggregate_production(farm_snapshot, now)
    aggregate_quality(farm_snapshot)
    aggregate_financial(farm_snapshot)
    assert farm_snapshot == before


def test_quality_ignores_production_batch_sheets():
    snapshot = snapshot_from_payload(
        {
            "Batch Plan": {
                "headers": ["BatchID", "QtyHarvested", "QtyRejected", "QCScore", "OnTime"],
                "rows": [{"BatchID": "B1", "QtyHarvested": "100", "QtyRejected": "50", "QCScore": "2", "OnTime": "0"}],
            }
        }
    )
    assert aggregate_quality(snapshot) == QualityMetrics()
    assert aggregate_production(snapshot).total_harvested == 100.0


def test_post_harvest_logistics_sheet_feeds_deliveries():
    snapshot = snapshot_from_payload(
        {"Post-Harvest Logistics": {"headers": ["TripID", "OnTime"], "rows": [{"TripID": "T1", "OnTime": "1"}]}}
    )
    metrics = aggregate_quality(snapshot)
    assert metrics.total_deliveries == 1
    assert metrics.on_time_percentage == pytest.approx(100.0)
