"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Amounts are whole IDR.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Quote Models
# ============================================================================

class QuoteRequest(BaseModel):
    """Request to price an order before checkout."""
    total_pages: int = Field(..., ge=1, description="Total pages across all documents")
    urgency_days: int = Field(9, ge=1, description="Requested turnaround in days")
    hard_copy: bool = False
    promo_code: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "total_pages": 5,
                "urgency_days": 2,
                "hard_copy": False,
                "promo_code": "SAVE10"
            }
        }


class PromoValidationResponse(BaseModel):
    """Outcome of a promo code check."""
    code: str
    applied: bool
    discount_percent: int
    reason: Optional[str] = None  # not_found, not_yet_valid, expired, quota_exhausted, lookup_failed
    message: str


class QuoteResponse(BaseModel):
    """Itemized price for an order."""
    tier_id: str
    tier_label: str
    urgency_days: int
    price_per_page: int
    total_pages: int
    subtotal: int
    hard_copy_fee: int
    original_price: int
    discount_percent: int
    discount_amount: int
    final_price: int
    currency: str
    promo: Optional[PromoValidationResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "tier_id": "ekspres",
                "tier_label": "Ekspres",
                "urgency_days": 2,
                "price_per_page": 165000,
                "total_pages": 5,
                "subtotal": 825000,
                "hard_copy_fee": 0,
                "original_price": 825000,
                "discount_percent": 0,
                "discount_amount": 0,
                "final_price": 825000,
                "currency": "IDR",
                "promo": None
            }
        }


class PricingTierResponse(BaseModel):
    tier_id: str
    label: str
    description: str
    days: int
    price_per_page: int


class PromoValidationRequest(BaseModel):
    code: str = Field(..., min_length=1)


# ============================================================================
# Order Models
# ============================================================================

class OrderFileRequest(BaseModel):
    """Source document already uploaded to storage."""
    path: str = Field(..., min_length=1, description="Path in Supabase Storage")
    page_count: int = Field(..., ge=1)
    name: Optional[str] = None


class CreateOrderRequest(BaseModel):
    """Checkout submission. `total_price` is informational; the server reprices."""
    files: List[OrderFileRequest] = Field(..., min_length=1)
    urgency_days: int = Field(9, ge=1)
    hard_copy: bool = False
    hard_copy_address: Optional[str] = None
    promo_code: Optional[str] = None
    total_price: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "files": [
                    {"path": "uploads/3f2a/ijazah.pdf", "page_count": 2, "name": "ijazah.pdf"},
                    {"path": "uploads/3f2a/transkrip.pdf", "page_count": 3, "name": "transkrip.pdf"}
                ],
                "urgency_days": 2,
                "hard_copy": False,
                "hard_copy_address": None,
                "promo_code": None,
                "total_price": 825000
            }
        }


class OrderFileResponse(BaseModel):
    file_path: str
    page_count: int
    file_type: str


class OrderResponse(BaseModel):
    order_id: str
    user_id: str
    status: str  # payment_pending, processing, review, completed
    payment_status: str  # unpaid, pending, paid
    urgency_days: int
    page_count_estimated: int
    page_count_verified: Optional[int] = None
    original_price: int
    final_price: int
    currency: str
    physical_copy: bool
    hard_copy_address: Optional[str] = None
    promo_code: Optional[str] = None
    duitku_reference: Optional[str] = None
    files: List[OrderFileResponse] = []
    created_at: Optional[datetime] = None


class PayOrderRequest(BaseModel):
    payment_method: str = Field(..., min_length=1, description="Gateway method code, e.g. 'VC' or 'BC'")
    phone_number: Optional[str] = None


class PayOrderResponse(BaseModel):
    order_id: str
    payment_status: str
    reference: str
    payment_url: str
    va_number: Optional[str] = None
    qr_string: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "order_id": "8d4e1a52-3c6b-4a1e-9f0a-1d2c3b4a5e6f",
                "payment_status": "pending",
                "reference": "DS1234524ABCDEFGHIJK",
                "payment_url": "https://sandbox.duitku.com/topup/topupdirectv2.aspx?ref=BCA7WZ7EIDP",
                "va_number": "7007014001444348",
                "qr_string": None
            }
        }


class PaymentMethodResponse(BaseModel):
    code: str
    name: str
    image_url: Optional[str] = None
    total_fee: int


class PaymentMethodListResponse(BaseModel):
    methods: List[PaymentMethodResponse]


# ============================================================================
# Admin Models
# ============================================================================

class AdminFileRequest(BaseModel):
    """Draft or final file already uploaded to storage."""
    file_path: str = Field(..., min_length=1)


class AdminOrderUpdateRequest(BaseModel):
    status: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)
    final_price: Optional[int] = Field(None, ge=0)

