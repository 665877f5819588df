import threading
from collections import deque

from .models import Activity, ActivityDraft, Order
from .store import ACTIVITY_LOG_LIMIT, OrderStore


class MemoryStore(OrderStore):
    name = "memory"

    def __init__(self, activity_limit: int = ACTIVITY_LOG_LIMIT) -> None:
        self._orders: dict[int, Order] = {}
        self._activities: deque[Activity] = deque(maxlen=activity_limit)
        self._order_counter = 0
        self._activity_counter = 0
        self._lock = threading.Lock()

    # --- Orders ---
    def get_order(self, order_id: int) -> Order | None:
        with self._lock:
            return self._orders.get(order_id)

    def put_order(self, order: Order) -> None:
        with self._lock:
            self._orders[order.id] = order

    def list_orders_by_bucket(self, month: int, year: int) -> list[Order]:
        orders = self.list_all_orders()
        return [o for o in orders if o.month == month and o.year == year]

    def list_all_orders(self) -> list[Order]:
        with self._lock:
            return list(self._orders.values())

    def next_order_id(self) -> int:
        with self._lock:
            self._order_counter += 1
            return self._order_counter

    # --- Activities ---
    def append_activity(self, draft: ActivityDraft) -> Activity:
        with self._lock:
            self._activity_counter += 1
            activity = Activity(id=self._activity_counter, **draft.model_dump())
            # deque(maxlen) drops from the right once full
            self._activities.appendleft(activity)
        return activity

    def list_activities(self, limit: int | None = None) -> list[Activity]:
        with self._lock:
            activities = list(self._activities)
        if limit is None:
            return activities
        return activities[: max(limit, 0)]

    def ping(self) -> bool:
        return True
