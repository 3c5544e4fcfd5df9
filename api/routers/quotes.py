"""
Quotes API Endpoints.

Endpoints for the pricing catalog, price quotes and promo code checks.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_order_service
from api.errors import to_http_exception
from api.models import (
    PricingTierResponse,
    PromoValidationRequest,
    PromoValidationResponse,
    QuoteRequest,
    QuoteResponse,
)
from domain.pricing import PRICING_TIERS
from services.order_service import OrderLifecycle
from services.promo_service import PromoResult

router = APIRouter()


def promo_to_response(result: PromoResult) -> PromoValidationResponse:
    return PromoValidationResponse(
        code=result.code,
        applied=result.applied,
        discount_percent=result.discount_percent,
        reason=result.rejection.value if result.rejection else None,
        message=result.message,
    )


@router.get(
    "/pricing/tiers",
    response_model=List[PricingTierResponse],
    summary="List Pricing Tiers",
)
def list_pricing_tiers():
    """Turnaround tiers with their price per page, fastest last."""
    return [
        PricingTierResponse(
            tier_id=tier.tier_id,
            label=tier.label,
            description=tier.description,
            days=tier.days,
            price_per_page=tier.price_per_page,
        )
        for tier in PRICING_TIERS
    ]


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    summary="Calculate Price Quote",
    description="Price an order from page count, turnaround, hard-copy option and promo code."
)
def calculate_quote(
    request: QuoteRequest,
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Calculate a price quote.

    **How it works:**
    1. Selects the tier matching `urgency_days` (unknown values use the Reguler tier)
    2. price = pages x price per page, plus the hard-copy fee if requested
    3. Applies the promo discount if the code is currently valid

    A rejected promo code does not fail the quote; the `promo` field explains
    why no discount was applied.
    """
    try:
        quote, promo_result = service.quote(
            total_pages=request.total_pages,
            urgency_days=request.urgency_days,
            hard_copy=request.hard_copy,
            promo_code=request.promo_code,
        )

        promo: Optional[PromoValidationResponse] = None
        if promo_result is not None:
            promo = promo_to_response(promo_result)

        return QuoteResponse(
            tier_id=quote.tier.tier_id,
            tier_label=quote.tier.label,
            urgency_days=quote.tier.days,
            price_per_page=quote.tier.price_per_page,
            total_pages=quote.total_pages,
            subtotal=quote.subtotal,
            hard_copy_fee=quote.hard_copy_fee,
            original_price=quote.original_price,
            discount_percent=quote.discount_percent,
            discount_amount=quote.discount_amount,
            final_price=quote.final_price,
            currency=quote.currency,
            promo=promo,
        )

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "calculate quote")


@router.post(
    "/promo/validate",
    response_model=PromoValidationResponse,
    summary="Validate Promo Code",
)
def validate_promo(
    request: PromoValidationRequest,
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Check a promo code. Lookups are case-insensitive.

    Always responds 200; `applied` and `reason` carry the outcome.
    """
    return promo_to_response(service.validate_promo(request.code))
