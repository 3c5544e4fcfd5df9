"""
Domain: Promo codes.

A promo code grants a percentage discount on an order. It is usable only when:
- it is active,
- now is inside the validity window [valid_from, valid_until],
- current_uses < max_uses.

Codes are stored upper-case; lookups normalize input by trimming whitespace
and upper-casing, so "save10" and " SAVE10 " refer to the same code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp


def normalize_promo_code(code: str) -> str:
    return code.strip().upper()


class PromoRejection(str, Enum):
    NOT_FOUND = "not_found"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    QUOTA_EXHAUSTED = "quota_exhausted"
    LOOKUP_FAILED = "lookup_failed"

    @property
    def message(self) -> str:
        """User-displayable explanation for the rejection."""
        return _REJECTION_MESSAGES[self]


_REJECTION_MESSAGES = {
    PromoRejection.NOT_FOUND: "Promo code not found.",
    PromoRejection.NOT_YET_VALID: "This promo code is not active yet.",
    PromoRejection.EXPIRED: "This promo code has expired.",
    PromoRejection.QUOTA_EXHAUSTED: "This promo code has reached its usage limit.",
    PromoRejection.LOOKUP_FAILED: "Unable to check the promo code right now. Please try again.",
}


@dataclass(frozen=True, slots=True)
class PromoCode:
    """
    Promo code record as stored in the `promo_codes` table.

    The usage counter is only ever incremented by redemption; admins may edit
    the other fields directly in the database.
    """

    code: str
    discount_percent: int
    valid_from: datetime
    valid_until: datetime
    current_uses: int = 0
    max_uses: int = 1
    active: bool = True
    promo_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("valid_from", self.valid_from)
        require_utc_timestamp("valid_until", self.valid_until)
        if not 0 <= self.discount_percent <= 100:
            raise ValueError("discount_percent must be between 0 and 100")

    def rejection_reason(self, as_of: datetime) -> Optional[PromoRejection]:
        """
        Return why this code cannot be used at `as_of`, or None if it is usable.

        Checks are ordered: inactive, window start, window end, quota.
        """

        require_utc_timestamp("as_of", as_of)

        if not self.active:
            return PromoRejection.NOT_FOUND
        if as_of < self.valid_from:
            return PromoRejection.NOT_YET_VALID
        if as_of > self.valid_until:
            return PromoRejection.EXPIRED
        if self.current_uses >= self.max_uses:
            return PromoRejection.QUOTA_EXHAUSTED
        return None

    def is_usable(self, as_of: datetime) -> bool:
        return self.rejection_reason(as_of) is None


__all__ = [
    "PromoCode",
    "PromoRejection",
    "normalize_promo_code",
]
