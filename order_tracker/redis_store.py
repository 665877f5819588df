import enum
import functools
import logging
from datetime import datetime

import pybreaker
import redis
from pydantic import BaseModel, ValidationError

from .config import Settings
from .models import DERIVED_ORDER_FIELDS, Activity, ActivityDraft, Order
from .store import ACTIVITY_LOG_LIMIT, BackendUnavailableError, OrderStore

logger = logging.getLogger(__name__)

ORDER_COUNTER_KEY = "order_counter"
ACTIVITY_COUNTER_KEY = "activity_counter"
ACTIVITY_INDEX_KEY = "activities"
ORDER_INDEX_KEY = "order_ids"


def order_key(order_id: int) -> str:
    return f"order:{order_id}"


def bucket_key(month: int, year: int) -> str:
    return f"orders:{year}:{month}"


def activity_key(activity_id: int) -> str:
    return f"activity:{activity_id}"


def encode_hash(model: BaseModel, exclude: set[str] | None = None) -> dict[str, str]:
    """Flatten a model into the string field map stored in a redis hash."""
    mapping = {}
    for field, value in model.model_dump(exclude=exclude).items():
        if value is None:
            continue
        if isinstance(value, bool):
            mapping[field] = "true" if value else "false"
        elif isinstance(value, datetime):
            mapping[field] = value.isoformat()
        elif isinstance(value, enum.Enum):
            mapping[field] = value.value
        else:
            mapping[field] = str(value)
    return mapping


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.Redis.from_url(
        settings.REDIS_URL,
        password=settings.REDIS_PASSWORD,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )


def _guarded(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return self._breaker.call(method, self, *args, **kwargs)
        except (redis.RedisError, pybreaker.CircuitBreakerError) as e:
            logger.exception("Redis backend call %s failed: %s", method.__name__, e)
            msg = f"Redis backend is unavailable: {e}"
            raise BackendUnavailableError(msg) from e

    return wrapper


class RedisStore(OrderStore):
    """Store backed by redis hashes, per-bucket sets and a capped activity list.

    Keys:
        order:<id>              hash with the order fields
        orders:<year>:<month>   set of order ids in that bucket
        order_ids               set of every stored order id
        order_counter           last assigned order id
        activity:<id>           hash with the activity fields
        activities              list of activity ids, newest at the head
        activity_counter        last assigned activity id
    """

    name = "redis"

    def __init__(
        self,
        client: redis.Redis,
        activity_limit: int = ACTIVITY_LOG_LIMIT,
        fail_max: int = 5,
        reset_timeout: int = 60,
    ) -> None:
        self._client = client
        self._activity_limit = activity_limit
        self._breaker = pybreaker.CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            exclude=[ValidationError],
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        return cls(
            create_redis_client(settings),
            activity_limit=settings.ACTIVITY_LOG_LIMIT,
            fail_max=settings.BREAKER_FAIL_MAX,
            reset_timeout=settings.BREAKER_RESET_TIMEOUT,
        )

    # --- Orders ---
    @_guarded
    def get_order(self, order_id: int) -> Order | None:
        data = self._client.hgetall(order_key(order_id))
        if not data:
            return None
        return Order.model_validate(data)

    @_guarded
    def put_order(self, order: Order) -> None:
        self._write_order(order)

    def _write_order(self, order: Order) -> None:
        previous_month, previous_year = self._client.hmget(order_key(order.id), ["month", "year"])

        pipe = self._client.pipeline()
        pipe.hset(order_key(order.id), mapping=encode_hash(order, exclude=DERIVED_ORDER_FIELDS))
        if previous_month is not None and (int(previous_month), int(previous_year)) != (order.month, order.year):
            pipe.srem(bucket_key(int(previous_month), int(previous_year)), order.id)
        pipe.sadd(bucket_key(order.month, order.year), order.id)
        pipe.sadd(ORDER_INDEX_KEY, order.id)
        pipe.execute()

    @_guarded
    def list_orders_by_bucket(self, month: int, year: int) -> list[Order]:
        order_ids = self._client.smembers(bucket_key(month, year))
        return self._load_orders(int(order_id) for order_id in order_ids)

    @_guarded
    def list_all_orders(self) -> list[Order]:
        order_ids = self._client.smembers(ORDER_INDEX_KEY)
        return self._load_orders(int(order_id) for order_id in order_ids)

    @_guarded
    def next_order_id(self) -> int:
        return int(self._client.incr(ORDER_COUNTER_KEY))

    def _load_orders(self, order_ids) -> list[Order]:
        pipe = self._client.pipeline(transaction=False)
        for order_id in order_ids:
            pipe.hgetall(order_key(order_id))
        return [Order.model_validate(data) for data in pipe.execute() if data]

    # --- Activities ---
    @_guarded
    def append_activity(self, draft: ActivityDraft) -> Activity:
        activity_id = int(self._client.incr(ACTIVITY_COUNTER_KEY))
        activity = Activity(id=activity_id, **draft.model_dump())

        pipe = self._client.pipeline()
        pipe.hset(activity_key(activity_id), mapping=encode_hash(activity))
        pipe.lpush(ACTIVITY_INDEX_KEY, activity_id)
        pipe.execute()
        self._trim_activities()
        return activity

    @_guarded
    def list_activities(self, limit: int | None = None) -> list[Activity]:
        count = self._activity_limit if limit is None else min(limit, self._activity_limit)
        if count <= 0:
            return []
        activity_ids = self._client.lrange(ACTIVITY_INDEX_KEY, 0, count - 1)

        pipe = self._client.pipeline(transaction=False)
        for activity_id in activity_ids:
            pipe.hgetall(activity_key(activity_id))
        return [Activity.model_validate(data) for data in pipe.execute() if data]

    def _trim_activities(self) -> None:
        pipe = self._client.pipeline()
        pipe.lrange(ACTIVITY_INDEX_KEY, self._activity_limit, -1)
        pipe.ltrim(ACTIVITY_INDEX_KEY, 0, self._activity_limit - 1)
        dropped, _ = pipe.execute()
        if dropped:
            self._client.delete(*(activity_key(activity_id) for activity_id in dropped))
            logger.debug("Pruned %d activities past the journal cap", len(dropped))

    # --- Migration helpers ---
    @_guarded
    def import_order(self, order: Order) -> None:
        """Copy an order keeping its id, and advance the id counter past it."""
        self._write_order(order)
        self._advance_counter(ORDER_COUNTER_KEY, order.id)

    @_guarded
    def import_activity(self, activity: Activity) -> None:
        """Push an existing activity on top of the journal, keeping its id."""
        pipe = self._client.pipeline()
        pipe.hset(activity_key(activity.id), mapping=encode_hash(activity))
        pipe.lpush(ACTIVITY_INDEX_KEY, activity.id)
        pipe.execute()
        self._advance_counter(ACTIVITY_COUNTER_KEY, activity.id)

    @_guarded
    def trim_activities(self) -> None:
        self._trim_activities()

    def _advance_counter(self, key: str, value: int) -> None:
        current = self._client.get(key)
        if current is None or int(current) < value:
            self._client.set(key, value)

    # --- Lifecycle ---
    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    def close(self) -> None:
        self._client.close()
