import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from . import crud, export, migration, schema
from .config import Settings, get_settings
from .crud import LedgerValidationError, OrderNotFoundError
from .database import get_store
from .memory_store import MemoryStore
from .models import ALEX_USER_ID, Activity, Order
from .redis_store import RedisStore
from .store import BackendUnavailableError, OrderStore

logger = logging.getLogger(__name__)

StoreDep = Annotated[OrderStore, Depends(get_store)]


def _bucket_or_today(month: int | None, year: int | None) -> tuple[int, int]:
    today = date.today()
    return (
        today.month if month is None else month,
        today.year if year is None else year,
    )


order_router = APIRouter(prefix="/orders", tags=["Orders"])


@order_router.get("/", response_model=list[Order])
def retrieve_orders(
    store: StoreDep,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    year: int | None = None,
) -> list[Order]:
    month, year = _bucket_or_today(month, year)
    return crud.list_orders(store, month=month, year=year)


@order_router.post("/", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_order(order_create: schema.OrderCreate, store: StoreDep) -> Order:
    try:
        return crud.create_order(store, order_create)
    except BackendUnavailableError:
        raise
    except Exception as e:
        logger.exception("Failed to create order: %s", e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to create order", "details": str(e)},
        ) from e


@order_router.get("/all", response_model=list[Order])
def retrieve_all_orders(store: StoreDep) -> list[Order]:
    return crud.list_all_orders(store)


@order_router.get("/summary", response_model=schema.Summary)
def retrieve_summary(
    store: StoreDep,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    year: int | None = None,
) -> schema.Summary:
    month, year = _bucket_or_today(month, year)
    return crud.get_summary(store, month=month, year=year)


@order_router.get("/{order_id}", response_model=Order)
def retrieve_order(order_id: int, store: StoreDep) -> Order:
    try:
        return crud.get_order(store, order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail="Order not found") from e


@order_router.put("/{order_id}", response_model=Order)
def update_order(order_id: int, order_update: schema.OrderUpdate, store: StoreDep) -> Order:
    user_id = order_update.user_id or ALEX_USER_ID
    try:
        return crud.update_order(store, order_id, order_update, user_id=user_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail="Order not found") from e
    except BackendUnavailableError:
        raise
    except Exception as e:
        logger.exception("Failed to update order %s: %s", order_id, e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to update order", "details": str(e)},
        ) from e


@order_router.put("/{order_id}/payment", response_model=Order)
def register_payment(order_id: int, payment: schema.PaymentCreate, store: StoreDep) -> Order:
    try:
        return crud.register_payment(
            store,
            order_id,
            paid_to_alex=payment.paid_to_alex,
            payment_amount=payment.payment_amount,
            user_id=payment.user_id,
        )
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail="Order not found") from e
    except LedgerValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except BackendUnavailableError:
        raise
    except Exception as e:
        logger.exception("Failed to register payment for order %s: %s", order_id, e)
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to update payment", "details": str(e)},
        ) from e


activity_router = APIRouter(tags=["Activity Log"])


@activity_router.get("/activity-log", response_model=list[Activity])
def retrieve_activity_log(store: StoreDep) -> list[Activity]:
    return crud.list_activities(store)


export_router = APIRouter(prefix="/export", tags=["Export"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


@export_router.get("/orders")
def export_orders(
    store: StoreDep,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    year: int | None = None,
    all_months: Annotated[bool, Query(alias="all")] = False,
) -> Response:
    if all_months:
        orders = crud.list_all_orders(store)
    elif month and year:
        orders = crud.list_orders(store, month=month, year=year)
    else:
        orders = []
    filename = export.orders_filename(month, year, all_months, date.today())
    return _csv_response(export.orders_to_csv(orders), filename)


@export_router.get("/activity-log")
def export_activity_log(store: StoreDep) -> Response:
    activities = crud.list_activities(store)
    return _csv_response(export.activities_to_csv(activities), export.activities_filename(date.today()))


admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@admin_router.post("/migrate-to-kv", response_model=schema.MigrationResult)
def migrate_to_kv(
    store: StoreDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> schema.MigrationResult:
    if not settings.REDIS_URL:
        raise HTTPException(status_code=400, detail="Redis backend is not configured")
    if not isinstance(store, MemoryStore):
        raise HTTPException(status_code=400, detail="Active backend is not the in-process store")

    target = RedisStore.from_settings(settings)
    try:
        return migration.migrate_memory_to_redis(store, target)
    finally:
        target.close()


monitoring_router = APIRouter(tags=["Monitoring"])


@monitoring_router.get("/health/ping", status_code=status.HTTP_200_OK)
def health_check(store: StoreDep) -> dict:
    if not store.ping():
        logger.error("Health check failed: %s backend unreachable", store.name)
        raise HTTPException(
            status_code=503,
            detail={"status": "error", "backend": store.name, "connected": False},
        )
    return {"status": "ok", "backend": store.name, "connected": True}
