import logging

from .memory_store import MemoryStore
from .redis_store import RedisStore
from .schema import MigrationResult

logger = logging.getLogger(__name__)


def migrate_memory_to_redis(source: MemoryStore, target: RedisStore) -> MigrationResult:
    """Copy every in-process order and activity into redis, keeping their ids.

    Meant to be run once by hand. It is not idempotent and does not guard
    against other writers touching redis at the same time.
    """
    migrated_orders = 0
    for order in source.list_all_orders():
        target.import_order(order)
        migrated_orders += 1

    # The journal is newest-first; push oldest first so the newest ends at the head.
    activities = source.list_activities()
    for activity in reversed(activities):
        target.import_activity(activity)
    target.trim_activities()

    logger.info("Migrated %d orders and %d activities to redis.", migrated_orders, len(activities))
    return MigrationResult(migrated_orders=migrated_orders, migrated_activities=len(activities))
