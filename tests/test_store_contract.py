import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal

from order_tracker.models import ActivityAction, ActivityDraft

from tests.factories import make_order


def _draft(order_id: int = 1, action: ActivityAction = ActivityAction.CREATE) -> ActivityDraft:
    return ActivityDraft(
        order_id=order_id,
        user_id=1,
        action=action,
        new_value="Caja",
        created_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        order_name="Caja",
        user_name="Alex",
    )


def test_next_order_id_is_strictly_increasing(store):
    assert [store.next_order_id() for _ in range(3)] == [1, 2, 3]


def test_get_missing_order_returns_none(store):
    assert store.get_order(42) is None


def test_put_and_get_order_keeps_field_types(store):
    order = make_order(1, 6, 2025, alex_percentage="12.35", paid_to_alex="2.10", is_own_material=True)
    store.put_order(order)

    stored = store.get_order(1)
    assert stored.model_dump() == order.model_dump()
    assert stored.alex_percentage == Decimal("12.35")
    assert stored.paid_to_alex == Decimal("2.10")
    assert stored.is_own_material is True
    assert stored.created_at == order.created_at


def test_list_orders_by_bucket_filters_on_month_and_year(store):
    store.put_order(make_order(1, 6, 2025))
    store.put_order(make_order(2, 6, 2024))
    store.put_order(make_order(3, 5, 2025))
    store.put_order(make_order(4, 6, 2025))

    assert sorted(o.id for o in store.list_orders_by_bucket(6, 2025)) == [1, 4]
    assert store.list_orders_by_bucket(7, 2025) == []


def test_put_order_moves_bucket_when_month_changes(store):
    order = make_order(1, 6, 2025)
    store.put_order(order)
    store.put_order(order.model_copy(update={"month": 7}))

    assert store.list_orders_by_bucket(6, 2025) == []
    assert [o.id for o in store.list_orders_by_bucket(7, 2025)] == [1]


def test_list_all_orders_returns_every_bucket(store):
    for order_id, (month, year) in enumerate([(1, 2024), (6, 2025), (12, 2026)], start=1):
        assert store.next_order_id() == order_id
        store.put_order(make_order(order_id, month, year))

    assert sorted(o.id for o in store.list_all_orders()) == [1, 2, 3]


def test_append_activity_assigns_fresh_ids_newest_first(store):
    first = store.append_activity(_draft(1))
    second = store.append_activity(_draft(2, ActivityAction.PAYMENT))

    assert (first.id, second.id) == (1, 2)
    activities = store.list_activities()
    assert [a.id for a in activities] == [2, 1]
    assert activities[0].action == ActivityAction.PAYMENT
    assert activities[1].new_value == "Caja"
    assert activities[1].old_value is None


def test_activity_journal_is_capped_at_fifty(store):
    for order_id in range(1, 52):
        store.append_activity(_draft(order_id))

    activities = store.list_activities()
    assert len(activities) == 50
    assert activities[0].id == 51
    assert activities[-1].id == 2


def test_list_activities_respects_limit(store):
    for order_id in range(1, 6):
        store.append_activity(_draft(order_id))

    assert [a.id for a in store.list_activities(2)] == [5, 4]
    assert store.list_activities(0) == []


def test_ping(store):
    assert store.ping() is True


def test_bucket_reads_while_another_thread_writes(memory_store):
    errors = []
    done = threading.Event()

    def writer():
        for order_id in range(1, 2001):
            memory_store.put_order(make_order(order_id, 6, 2025))
        done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    while not done.is_set():
        try:
            memory_store.list_orders_by_bucket(6, 2025)
            memory_store.list_all_orders()
            memory_store.get_order(1)
        except RuntimeError as e:
            errors.append(str(e))
    thread.join()

    assert errors == []
    assert len(memory_store.list_orders_by_bucket(6, 2025)) == 2000


def test_concurrent_ids_are_never_reused(memory_store):
    with ThreadPoolExecutor(max_workers=8) as pool:
        order_ids = list(pool.map(lambda _: memory_store.next_order_id(), range(400)))
        activities = list(pool.map(lambda i: memory_store.append_activity(_draft(i)), range(1, 101)))

    assert sorted(order_ids) == list(range(1, 401))
    assert len({a.id for a in activities}) == 100
    assert len(memory_store.list_activities()) == 50
