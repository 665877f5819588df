import logging
from datetime import datetime, timezone
from decimal import Decimal

from prometheus_client import Counter

from . import schema
from .models import (
    ALEX_USER_ID,
    DERIVED_ORDER_FIELDS,
    ISA_USER_ID,
    Activity,
    ActivityAction,
    ActivityDraft,
    Order,
    to_money,
    user_name,
)
from .store import OrderStore
from .summary import compute_summary

LEDGER_MUTATIONS_TOTAL = Counter(
    "order_tracker_ledger_mutations_total",
    "Total number of successful ledger mutations",
    ["action"],
)
ACTIVITY_APPEND_FAILURES_TOTAL = Counter(
    "order_tracker_activity_append_failures_total",
    "Ledger mutations whose activity entry could not be recorded",
    ["action"],
)

logger = logging.getLogger(__name__)


class OrderNotFoundError(Exception):
    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class LedgerValidationError(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        msg = f"Month must be between 1 and 12, got {month}"
        raise LedgerValidationError(msg)


def _record_activity(store: OrderStore, draft: ActivityDraft) -> Activity | None:
    """Second step of every mutation; the order write already happened.

    A failure here does not undo the order write. It is logged and counted so
    the gap in the journal can be noticed.
    """
    try:
        return store.append_activity(draft)
    except Exception as e:
        ACTIVITY_APPEND_FAILURES_TOTAL.labels(action=draft.action.value).inc()
        logger.exception(
            "Order %s was saved but its %s activity could not be recorded: %s",
            draft.order_id,
            draft.action.value,
            e,
        )
        return None


# Commands (writes) and queries (reads) are kept apart, as in CQRS.

# --- COMMANDS (Write Operations) ---
def create_order(store: OrderStore, order_in: schema.OrderCreate) -> Order:
    now = _now()
    order = Order(
        id=store.next_order_id(),
        created_at=now,
        updated_at=now,
        **order_in.model_dump(),
    )
    store.put_order(order)

    _record_activity(
        store,
        ActivityDraft(
            order_id=order.id,
            user_id=order.created_by,
            action=ActivityAction.CREATE,
            new_value=order.name,
            created_at=now,
            order_name=order.name,
            user_name=user_name(order.created_by),
        ),
    )
    LEDGER_MUTATIONS_TOTAL.labels(action=ActivityAction.CREATE.value).inc()
    logger.info("Created order %s (%s) in bucket %s/%s.", order.id, order.name, order.month, order.year)
    return order


def update_order(
    store: OrderStore,
    order_id: int,
    changes: schema.OrderUpdate,
    user_id: int = ALEX_USER_ID,
) -> Order:
    current = store.get_order(order_id)
    if current is None:
        logger.warning("Update requested for missing order %s", order_id)
        raise OrderNotFoundError(order_id)

    now = _now()
    fields = current.model_dump(exclude=DERIVED_ORDER_FIELDS)
    fields.update(changes.model_dump(exclude_unset=True, exclude={"user_id"}, exclude_none=True))
    fields["updated_at"] = now
    updated = Order.model_validate(fields)
    store.put_order(updated)

    _record_activity(
        store,
        ActivityDraft(
            order_id=order_id,
            user_id=user_id,
            action=ActivityAction.UPDATE,
            old_value=str(current.price),
            new_value=str(updated.price),
            field_changed="price",
            created_at=now,
            order_name=updated.name,
            user_name=user_name(user_id),
        ),
    )
    LEDGER_MUTATIONS_TOTAL.labels(action=ActivityAction.UPDATE.value).inc()
    logger.info("Updated order %s.", order_id)
    return updated


def register_payment(
    store: OrderStore,
    order_id: int,
    paid_to_alex: Decimal,
    payment_amount: Decimal,
    user_id: int = ISA_USER_ID,
) -> Order:
    """Store a new cumulative paid amount after a payment of ``payment_amount``.

    The payment must be positive and fit in what is still pending, and the new
    cumulative total must stay within ``[0, alex_percentage]``.

    Two concurrent payments on the same order both read the same total and the
    later write wins; both activities are still journaled.
    """
    current = store.get_order(order_id)
    if current is None:
        logger.warning("Payment requested for missing order %s", order_id)
        raise OrderNotFoundError(order_id)

    paid_to_alex = to_money(paid_to_alex)
    payment_amount = to_money(payment_amount)
    if payment_amount <= 0:
        msg = "Payment amount must be greater than zero"
        raise LedgerValidationError(msg)
    if payment_amount > current.pending:
        msg = f"Payment amount {payment_amount} exceeds pending amount {current.pending}"
        raise LedgerValidationError(msg)
    if not 0 <= paid_to_alex <= current.alex_percentage:
        msg = f"Paid amount {paid_to_alex} must be between 0 and {current.alex_percentage}"
        raise LedgerValidationError(msg)

    now = _now()
    updated = current.model_copy(update={"paid_to_alex": paid_to_alex, "updated_at": now})
    store.put_order(updated)

    _record_activity(
        store,
        ActivityDraft(
            order_id=order_id,
            user_id=user_id,
            action=ActivityAction.PAYMENT,
            new_value=str(payment_amount),
            created_at=now,
            order_name=current.name,
            user_name=user_name(user_id),
        ),
    )
    LEDGER_MUTATIONS_TOTAL.labels(action=ActivityAction.PAYMENT.value).inc()
    logger.info("Registered payment of %s for order %s (paid %s).", payment_amount, order_id, paid_to_alex)
    return updated


# --- QUERIES (Read Operations) ---
def _newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)


def get_order(store: OrderStore, order_id: int) -> Order:
    order = store.get_order(order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


def list_orders(store: OrderStore, month: int, year: int) -> list[Order]:
    _check_month(month)
    orders = _newest_first(store.list_orders_by_bucket(month, year))
    logger.info("Fetched %d orders for %s/%s", len(orders), month, year)
    return orders


def list_all_orders(store: OrderStore) -> list[Order]:
    return _newest_first(store.list_all_orders())


def list_activities(store: OrderStore, limit: int | None = None) -> list[Activity]:
    return store.list_activities(limit)


def get_summary(store: OrderStore, month: int, year: int) -> schema.Summary:
    _check_month(month)
    summary = compute_summary(store.list_all_orders(), month, year)
    logger.info(
        "Summary for %s/%s: current pending %s, previous pending %s",
        month,
        year,
        summary.current_month.pending,
        summary.previous_months.pending,
    )
    return summary
