"""
Promo validation service.

Runs the promo-code state machine for a single buyer session:

    idle -> validating -> applied | rejected
    applied -> idle          (clear)
    applied -> validating    (a new code replaces the prior promo)

Lookup failures never propagate: they end in `rejected` with a
user-displayable reason. Concurrent validations are last-write-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from domain.promo import PromoCode, PromoRejection, normalize_promo_code
from domain.time import utc_now

logger = logging.getLogger(__name__)

PromoLookup = Callable[[str], Optional[PromoCode]]


class PromoState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class PromoResult:
    """Outcome of a single validation attempt."""
    state: PromoState
    code: str
    discount_percent: int = 0
    rejection: Optional[PromoRejection] = None

    @property
    def applied(self) -> bool:
        return self.state is PromoState.APPLIED

    @property
    def message(self) -> str:
        if self.rejection is not None:
            return self.rejection.message
        return f"Promo code applied: {self.discount_percent}% off."


def validate_promo_code(
    code: str,
    lookup: PromoLookup,
    as_of: Optional[datetime] = None,
) -> PromoResult:
    """
    Validate a promo code without keeping session state.

    Args:
        code: Code as typed by the buyer (any case, surrounding whitespace ok)
        lookup: Returns the active PromoCode for a normalized code, or None
        as_of: Evaluation time (defaults to now, UTC)

    Returns:
        PromoResult in state APPLIED or REJECTED
    """
    normalized = normalize_promo_code(code)
    if not normalized:
        return PromoResult(PromoState.REJECTED, normalized, rejection=PromoRejection.NOT_FOUND)

    try:
        promo = lookup(normalized)
    except Exception:
        logger.exception("Promo lookup failed for code %s", normalized)
        return PromoResult(PromoState.REJECTED, normalized, rejection=PromoRejection.LOOKUP_FAILED)

    if promo is None:
        return PromoResult(PromoState.REJECTED, normalized, rejection=PromoRejection.NOT_FOUND)

    reason = promo.rejection_reason(as_of or utc_now())
    if reason is not None:
        return PromoResult(PromoState.REJECTED, normalized, rejection=reason)

    return PromoResult(PromoState.APPLIED, normalized, discount_percent=promo.discount_percent)


class PromoSession:
    """
    Promo state for one buyer's checkout session.

    Example:
        session = PromoSession(promo_repository.get_active_promo)
        session.validate("save10")
        if session.state is PromoState.APPLIED:
            price = compute_price(pages, days, hard_copy, session.discount_percent)
    """

    def __init__(self, lookup: PromoLookup, clock: Callable[[], datetime] = utc_now) -> None:
        self._lookup = lookup
        self._clock = clock
        self.state = PromoState.IDLE
        self.last_result: Optional[PromoResult] = None

    @property
    def discount_percent(self) -> int:
        if self.state is PromoState.APPLIED and self.last_result is not None:
            return self.last_result.discount_percent
        return 0

    @property
    def code(self) -> Optional[str]:
        if self.state is PromoState.APPLIED and self.last_result is not None:
            return self.last_result.code
        return None

    def validate(self, code: str) -> PromoResult:
        """Validate `code`, replacing any previously applied promo."""
        self.state = PromoState.VALIDATING
        self.last_result = None

        result = validate_promo_code(code, self._lookup, self._clock())

        self.state = result.state
        self.last_result = result
        return result

    def clear(self) -> None:
        self.state = PromoState.IDLE
        self.last_result = None


__all__ = [
    "PromoLookup",
    "PromoResult",
    "PromoSession",
    "PromoState",
    "validate_promo_code",
]
