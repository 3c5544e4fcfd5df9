"""
Domain: Translation orders.

An order moves through two composed state machines:

Payment status (never backwards):
    unpaid -> pending -> paid
    (pending -> pending is allowed when a payment request is retried)

Fulfillment status (monotonic, except admin corrections):
    payment_pending -> processing -> review -> completed

Orders are never deleted. Every status change is recorded separately in the
order timeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .time import require_utc_timestamp


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        if self is PaymentStatus.PAID:
            return False
        return target is not PaymentStatus.UNPAID


class OrderStatus(str, Enum):
    PAYMENT_PENDING = "payment_pending"
    PROCESSING = "processing"
    REVIEW = "review"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def can_advance_to(self, target: "OrderStatus") -> bool:
        """True if `target` is at or beyond this status in the pipeline."""
        return target.rank >= self.rank


_STATUS_ORDER = [
    OrderStatus.PAYMENT_PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.REVIEW,
    OrderStatus.COMPLETED,
]


class FileType(str, Enum):
    SOURCE = "source"
    WATERMARKED = "watermarked"
    FINAL = "final"


@dataclass(frozen=True, slots=True)
class OrderFile:
    """Reference to a document already uploaded to storage."""

    file_path: str
    page_count: int
    file_type: FileType = FileType.SOURCE
    file_id: Optional[str] = None
    order_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Order:
    """
    Translation order.

    Prices are whole IDR amounts. `original_price` is the price before any
    promo discount; `final_price` is what the buyer pays.
    """

    order_id: str
    user_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    urgency_days: int
    page_count_estimated: int
    original_price: int
    final_price: int
    physical_copy: bool = False
    hard_copy_address: Optional[str] = None
    promo_code: Optional[str] = None
    currency: str = "IDR"
    page_count_verified: Optional[int] = None
    duitku_reference: Optional[str] = None
    files: List[OrderFile] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_paid(self) -> bool:
        return self.payment_status is PaymentStatus.PAID

    @property
    def total_pages(self) -> int:
        """Verified page count if an admin has set one, otherwise the estimate."""
        if self.page_count_verified is not None:
            return self.page_count_verified
        return self.page_count_estimated

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def can_initiate_payment(self) -> bool:
        return self.payment_status.can_transition_to(PaymentStatus.PENDING)


__all__ = [
    "FileType",
    "Order",
    "OrderFile",
    "OrderStatus",
    "PaymentStatus",
]
