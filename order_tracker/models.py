import enum
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, computed_field

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

ALEX_USER_ID = 1
ISA_USER_ID = 2
USER_NAMES = {ALEX_USER_ID: "Alex", ISA_USER_ID: "Isa"}

MONTH_NAMES = [
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
]


def to_money(value) -> Decimal:
    """Quantize a monetary value to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        msg = f"Amount {value} is too large"
        raise ValueError(msg) from e


def user_name(user_id: int) -> str:
    # Anyone who is not Alex is Isa; there are only two users.
    return USER_NAMES.get(user_id, USER_NAMES[ISA_USER_ID])


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1]


Money = Annotated[
    Decimal,
    AfterValidator(to_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]
NonNegativeMoney = Annotated[
    Decimal,
    Field(ge=0),
    AfterValidator(to_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class ActivityAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    PAYMENT = "PAYMENT"


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    is_own_material: bool = False
    price: NonNegativeMoney
    advance_payment: NonNegativeMoney = ZERO
    alex_percentage: Money
    paid_to_alex: Money = ZERO
    month: int = Field(ge=1, le=12)
    year: int
    created_by: int
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def pending(self) -> Money:
        return self.alex_percentage - self.paid_to_alex

    @computed_field
    @property
    def settled(self) -> bool:
        return self.pending <= 0


DERIVED_ORDER_FIELDS = {"pending", "settled"}


class ActivityDraft(BaseModel):
    """A journal entry that has not been assigned an id yet."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    user_id: int
    action: ActivityAction
    old_value: str | None = None
    new_value: str | None = None
    field_changed: str | None = None
    created_at: datetime
    order_name: str
    user_name: str


class Activity(ActivityDraft):
    id: int = Field(gt=0)
