import abc

from .models import Activity, ActivityDraft, Order

ACTIVITY_LOG_LIMIT = 50


class BackendUnavailableError(Exception):
    pass


class OrderStore(abc.ABC):
    """Persistence contract shared by the in-process and Redis backends.

    Both variants behave identically; they only differ in durability. The
    in-process order counter restarts at zero with the process, the Redis
    counter survives restarts.
    """

    name: str = "abstract"

    @abc.abstractmethod
    def get_order(self, order_id: int) -> Order | None: ...

    @abc.abstractmethod
    def put_order(self, order: Order) -> None:
        """Insert or replace an order and keep its (year, month) bucket index current."""

    @abc.abstractmethod
    def list_orders_by_bucket(self, month: int, year: int) -> list[Order]:
        """Orders of one bucket, in no particular order."""

    @abc.abstractmethod
    def list_all_orders(self) -> list[Order]: ...

    @abc.abstractmethod
    def next_order_id(self) -> int: ...

    @abc.abstractmethod
    def append_activity(self, draft: ActivityDraft) -> Activity:
        """Assign an id, store the entry newest-first and drop anything past the cap."""

    @abc.abstractmethod
    def list_activities(self, limit: int | None = None) -> list[Activity]:
        """Newest first; ``None`` returns everything retained."""

    @abc.abstractmethod
    def ping(self) -> bool: ...

    def close(self) -> None:
        pass
