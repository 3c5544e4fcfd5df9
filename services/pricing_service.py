"""
Pricing service for calculating order prices.

Computes the amount a buyer pays from page count, turnaround tier, hard-copy
option and promo discount. All functions are pure so the same code can price
a quote for display and re-price an order server-side at creation time; a
client-submitted total is never trusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from domain.pricing import CURRENCY, DEFAULT_TIER, HARD_COPY_FEE, PricingTier, find_tier_by_days

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """
    Itemized price for an order.

    original_price = subtotal + hard_copy_fee
    final_price = original_price - discount_amount
    """
    tier: PricingTier
    total_pages: int
    subtotal: int
    hard_copy_fee: int
    original_price: int
    discount_percent: int
    discount_amount: int
    final_price: int
    currency: str = CURRENCY


def resolve_tier(urgency_days: int) -> PricingTier:
    """
    Look up the tier for a turnaround time.

    Falls back to the default (slowest, cheapest) tier when no tier offers
    exactly `urgency_days`.
    """
    tier = find_tier_by_days(urgency_days)
    if tier is None:
        logger.warning(
            "No pricing tier for %s days, falling back to %s",
            urgency_days,
            DEFAULT_TIER.tier_id,
        )
        return DEFAULT_TIER
    return tier


def apply_discount(price: int, discount_percent: int) -> int:
    """
    Apply a percentage discount, rounding half up to a whole currency unit.

    Example:
        apply_discount(770000, 30)  # Returns 539000
    """
    if discount_percent <= 0:
        return price

    discounted = Decimal(price) * (Decimal(100) - Decimal(discount_percent)) / Decimal(100)
    return int(discounted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _validate_inputs(total_pages: int, discount_percent: int) -> None:
    if total_pages < 1:
        raise ValueError("total_pages must be >= 1")
    if not 0 <= discount_percent <= 100:
        raise ValueError("discount_percent must be between 0 and 100")


def quote_order(
    total_pages: int,
    urgency_days: int,
    hard_copy: bool = False,
    discount_percent: int = 0,
) -> PriceQuote:
    """
    Calculate the itemized price for an order.

    Args:
        total_pages: Total pages across all source documents
        urgency_days: Requested turnaround in days (selects the tier)
        hard_copy: Whether a printed copy is shipped
        discount_percent: Promo discount, 0-100

    Returns:
        PriceQuote with the breakdown

    Raises:
        ValueError: If total_pages < 1 or discount_percent is out of range

    Example:
        quote = quote_order(total_pages=5, urgency_days=2)
        # quote.final_price == 825000
    """
    _validate_inputs(total_pages, discount_percent)

    tier = resolve_tier(urgency_days)
    subtotal = total_pages * tier.price_per_page
    hard_copy_fee = HARD_COPY_FEE if hard_copy else 0
    original_price = subtotal + hard_copy_fee
    final_price = apply_discount(original_price, discount_percent)

    return PriceQuote(
        tier=tier,
        total_pages=total_pages,
        subtotal=subtotal,
        hard_copy_fee=hard_copy_fee,
        original_price=original_price,
        discount_percent=discount_percent,
        discount_amount=original_price - final_price,
        final_price=final_price,
    )


def compute_price(
    total_pages: int,
    urgency_days: int,
    hard_copy: bool = False,
    discount_percent: int = 0,
) -> int:
    """Final price in whole IDR. See `quote_order` for the breakdown."""
    return quote_order(total_pages, urgency_days, hard_copy, discount_percent).final_price


__all__ = [
    "PriceQuote",
    "apply_discount",
    "compute_price",
    "quote_order",
    "resolve_tier",
]
