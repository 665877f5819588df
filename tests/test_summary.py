from decimal import Decimal

from order_tracker.summary import compute_summary

from tests.factories import make_order


def test_summary_splits_current_and_previous_months():
    orders = [
        make_order(1, 5, 2025, alex_percentage="5.00"),
        make_order(2, 6, 2025, alex_percentage="10.00"),
    ]

    summary = compute_summary(orders, 6, 2025)

    assert summary.previous_months.pending == Decimal("5.00")
    assert summary.current_month.pending == Decimal("10.00")
    assert summary.total_pending == Decimal("15.00")
    assert [(m.month, m.year) for m in summary.pending_by_month] == [(5, 2025), (6, 2025)]
    assert [m.month_name for m in summary.pending_by_month] == ["Mayo", "Junio"]
    assert (summary.reference_month, summary.reference_year) == (6, 2025)


def test_later_buckets_only_count_in_global_totals():
    orders = [
        make_order(1, 12, 2024, alex_percentage="4.00", paid_to_alex="1.00"),
        make_order(2, 6, 2025, alex_percentage="10.00", paid_to_alex="2.50"),
        make_order(3, 1, 2026, alex_percentage="8.00"),
    ]

    summary = compute_summary(orders, 6, 2025)

    assert summary.total_orders == 3
    assert summary.total_alex_percentage == Decimal("22.00")
    assert summary.total_paid == Decimal("3.50")
    assert summary.total_pending == Decimal("18.50")
    assert summary.current_month.orders == 1
    assert summary.current_month.paid == Decimal("2.50")
    assert summary.previous_months.orders == 1
    assert summary.previous_months.alex_percentage == Decimal("4.00")
    assert summary.current_month.pending + summary.previous_months.pending < summary.total_pending


def test_partitions_cover_everything_when_nothing_is_later():
    orders = [make_order(1, 3, 2025), make_order(2, 11, 2023), make_order(3, 6, 2025)]

    summary = compute_summary(orders, 6, 2025)

    assert summary.current_month.pending + summary.previous_months.pending == summary.total_pending


def test_settled_orders_are_left_out_of_pending_breakdown():
    orders = [
        make_order(1, 4, 2025, alex_percentage="6.00", paid_to_alex="6.00"),
        make_order(2, 5, 2025, alex_percentage="3.00", paid_to_alex="1.00"),
        make_order(3, 5, 2025, alex_percentage="3.00"),
        make_order(4, 5, 2025, alex_percentage="3.00", paid_to_alex="3.00"),
    ]

    summary = compute_summary(orders, 6, 2025)

    assert len(summary.pending_by_month) == 1
    may = summary.pending_by_month[0]
    assert (may.month, may.year, may.orders) == (5, 2025, 2)
    assert may.pending == Decimal("5.00")


def test_breakdown_is_empty_when_everything_is_settled():
    orders = [make_order(1, 5, 2025, paid_to_alex="10.00"), make_order(2, 6, 2025, paid_to_alex="10.00")]

    summary = compute_summary(orders, 6, 2025)

    assert summary.pending_by_month == []
    assert summary.total_pending == Decimal("0.00")


def test_breakdown_sorted_across_years():
    orders = [make_order(1, 2, 2026), make_order(2, 11, 2024), make_order(3, 1, 2025)]

    summary = compute_summary(orders, 1, 2025)

    assert [(m.year, m.month) for m in summary.pending_by_month] == [(2024, 11), (2025, 1), (2026, 2)]


def test_empty_order_set():
    summary = compute_summary([], 6, 2025)

    assert summary.total_orders == 0
    assert summary.total_pending == Decimal("0.00")
    assert summary.current_month.orders == 0
    assert summary.pending_by_month == []


def test_summary_serializes_with_camel_case_keys():
    summary = compute_summary([make_order(1, 5, 2025, alex_percentage="5.00")], 6, 2025)

    data = summary.model_dump(mode="json", by_alias=True)

    assert data["totalPending"] == 5.0
    assert data["previousMonths"]["alexPercentage"] == 5.0
    assert data["pendingByMonth"][0]["monthName"] == "Mayo"
    assert data["referenceMonth"] == 6
