"""
Domain: Pricing tiers.

The tier catalog is immutable reference data. Each tier maps a turnaround
time (in days) to a flat price per translated page, in whole IDR.

Canonical catalog:
- reguler: 9 days,  75 000 / page (default)
- sedang:  5 days, 125 000 / page
- ekspres: 2 days, 165 000 / page
- kilat:   1 day,  300 000 / page

A hard copy adds a fixed fee to the order regardless of page count.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

HARD_COPY_FEE: int = 20000
CURRENCY: str = "IDR"


@dataclass(frozen=True, slots=True)
class PricingTier:
    tier_id: str
    label: str
    description: str
    days: int
    price_per_page: int


PRICING_TIERS: tuple[PricingTier, ...] = (
    PricingTier("reguler", "Reguler", "Paling Hemat (Recommended)", 9, 75000),
    PricingTier("sedang", "Standar", "Standar", 5, 125000),
    PricingTier("ekspres", "Ekspres", "Prioritas", 2, 165000),
    PricingTier("kilat", "Kilat", "Super Urgent", 1, 300000),
)

DEFAULT_TIER: PricingTier = PRICING_TIERS[0]


def find_tier_by_days(days: int) -> Optional[PricingTier]:
    """Exact match on turnaround days; None if no tier offers that turnaround."""
    for tier in PRICING_TIERS:
        if tier.days == days:
            return tier
    return None


def find_tier_by_id(tier_id: str) -> Optional[PricingTier]:
    for tier in PRICING_TIERS:
        if tier.tier_id == tier_id:
            return tier
    return None


__all__ = [
    "CURRENCY",
    "DEFAULT_TIER",
    "HARD_COPY_FEE",
    "PRICING_TIERS",
    "PricingTier",
    "find_tier_by_days",
    "find_tier_by_id",
]
