from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ISA_USER_ID, ZERO, Money, NonNegativeMoney


# --- Ledger input schemas ---
class OrderCreate(BaseModel):
    name: str = Field(min_length=1)
    is_own_material: bool = False
    price: NonNegativeMoney
    advance_payment: NonNegativeMoney = ZERO
    alex_percentage: Money
    paid_to_alex: Money = ZERO
    month: int = Field(ge=1, le=12)
    year: int
    created_by: int = Field(ge=1)


class OrderUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    is_own_material: bool | None = None
    price: NonNegativeMoney | None = None
    advance_payment: NonNegativeMoney | None = None
    alex_percentage: Money | None = None
    paid_to_alex: Money | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = None
    user_id: int | None = None


class PaymentCreate(BaseModel):
    # New cumulative total paid to Alex, and the amount this payment adds.
    paid_to_alex: Money
    payment_amount: Money
    user_id: int = ISA_USER_ID


# --- Summary schemas ---
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthTotals(_CamelModel):
    orders: int = 0
    alex_percentage: Money = ZERO
    paid: Money = ZERO
    pending: Money = ZERO


class PendingMonth(_CamelModel):
    month: int
    year: int
    month_name: str
    pending: Money
    orders: int


class Summary(_CamelModel):
    total_orders: int
    total_alex_percentage: Money
    total_paid: Money
    total_pending: Money
    current_month: MonthTotals
    previous_months: MonthTotals
    pending_by_month: list[PendingMonth] = []
    reference_month: int
    reference_year: int


# --- Admin schemas ---
class MigrationResult(_CamelModel):
    success: bool = True
    migrated_orders: int
    migrated_activities: int
    message: str = "Migration completed"
