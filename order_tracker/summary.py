"""Dashboard summary derived from the full order set.

Everything here is a pure function of the orders and the reference bucket;
the summary is recomputed on every request.
"""
from collections.abc import Iterable

from .models import ZERO, Order, month_name
from .schema import MonthTotals, PendingMonth, Summary


def is_before(order: Order, month: int, year: int) -> bool:
    return order.year < year or (order.year == year and order.month < month)


def in_bucket(order: Order, month: int, year: int) -> bool:
    return order.month == month and order.year == year


def totals(orders: Iterable[Order]) -> MonthTotals:
    count = 0
    alex_percentage = paid = pending = ZERO
    for order in orders:
        count += 1
        alex_percentage += order.alex_percentage
        paid += order.paid_to_alex
        pending += order.pending
    return MonthTotals(orders=count, alex_percentage=alex_percentage, paid=paid, pending=pending)


def pending_by_month(orders: Iterable[Order]) -> list[PendingMonth]:
    """Pending amounts grouped by bucket, oldest first.

    Settled orders are left out, so fully paid months do not appear.
    """
    groups: dict[tuple[int, int], list[Order]] = {}
    for order in orders:
        if order.pending > 0:
            groups.setdefault((order.year, order.month), []).append(order)

    return [
        PendingMonth(
            month=month,
            year=year,
            month_name=month_name(month),
            pending=sum((o.pending for o in group), ZERO),
            orders=len(group),
        )
        for (year, month), group in sorted(groups.items())
    ]


def compute_summary(orders: Iterable[Order], reference_month: int, reference_year: int) -> Summary:
    orders = list(orders)
    overall = totals(orders)
    return Summary(
        total_orders=overall.orders,
        total_alex_percentage=overall.alex_percentage,
        total_paid=overall.paid,
        total_pending=overall.pending,
        current_month=totals(o for o in orders if in_bucket(o, reference_month, reference_year)),
        previous_months=totals(o for o in orders if is_before(o, reference_month, reference_year)),
        pending_by_month=pending_by_month(orders),
        reference_month=reference_month,
        reference_year=reference_year,
    )
