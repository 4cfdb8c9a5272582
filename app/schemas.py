from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentMethod(str, Enum):
    WAVE = "WAVE"
    ORANGE_MONEY = "ORANGE_MONEY"
    FREE_MONEY = "FREE_MONEY"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


PAID_STATUSES = frozenset({OrderStatus.PROCESSING, OrderStatus.COMPLETED})


# ==================== Provider API ====================

class Product(BaseModel):
    name: str
    category: str = "General"
    amount: int
    quantity: int
    description: str = ""


class TransactionRequest(BaseModel):
    """Body of the create-transaction call."""

    method_of_payment: list[PaymentMethod]
    products: list[Product]
    is_escrow: bool = False
    success_url: str
    error_url: str


class TransactionResponse(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    order_id: str
    checkout_url: str


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    order_id: str
    transaction_status: str


# ==================== Orders ====================

class OrderItemIn(BaseModel):
    name: str
    category: str = "General"
    unit_price: Decimal = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    description: str = ""


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    currency: str = "XOF"
    customer_email: Optional[str] = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    category: str
    unit_price: Decimal
    quantity: int
    description: str


class OrderNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    note: str
    created_at: datetime


class OrderRecord(BaseModel):
    """Detached snapshot of an order, safe to cache and return."""

    model_config = ConfigDict(from_attributes=True)

    order_id: int
    order_key: str
    status: OrderStatus
    currency: str
    customer_email: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    items: list[OrderItemOut] = Field(default_factory=list)
    notes: list[OrderNoteOut] = Field(default_factory=list)


# ==================== Checkout ====================

class CheckoutRequest(BaseModel):
    payment_methods: Optional[list[PaymentMethod]] = None


class CheckoutResult(BaseModel):
    result: Literal["success", "fail"]
    redirect: Optional[str] = None
    notices: list[str] = Field(default_factory=list)


class GatewayInfo(BaseModel):
    id: str
    title: str
    description: str
    method_title: str
    method_description: str
    enabled: bool
    payment_methods: list[str]
    webhook_url: Optional[str] = None
