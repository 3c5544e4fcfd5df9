"""
Tests for `domain/promo.py` and `services/promo_service.py`.

Covers:
- Rejection reasons and their precedence.
- Codes are matched case-insensitively after trimming.
- Session state machine: idle -> validating -> applied | rejected, clear and replace.
- Lookup failures end in `rejected` instead of raising.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from domain.promo import PromoCode, PromoRejection, normalize_promo_code
from services.promo_service import PromoSession, PromoState, validate_promo_code

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _promo(code: str = "SAVE10", **overrides) -> PromoCode:
    fields = dict(
        code=code,
        discount_percent=10,
        valid_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        valid_until=datetime(2025, 12, 31, tzinfo=timezone.utc),
        current_uses=0,
        max_uses=5,
    )
    fields.update(overrides)
    return PromoCode(**fields)


def _lookup(*promos: PromoCode):
    by_code = {p.code: p for p in promos}
    return by_code.get


def test_normalize_promo_code() -> None:
    """Verify codes are trimmed and upper-cased."""

    assert normalize_promo_code("  save10 ") == "SAVE10"


def test_promo_requires_utc_window() -> None:
    """Verify validity bounds must be UTC and discount within 0..100."""

    with pytest.raises(ValueError):
        _promo(valid_from=datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        _promo(discount_percent=120)


def test_rejection_reasons() -> None:
    """Verify each reason and that the window is checked before the quota."""

    assert _promo().rejection_reason(NOW) is None
    assert _promo(active=False).rejection_reason(NOW) is PromoRejection.NOT_FOUND
    assert _promo(valid_from=datetime(2025, 7, 1, tzinfo=timezone.utc)).rejection_reason(NOW) is PromoRejection.NOT_YET_VALID
    assert _promo(valid_until=datetime(2025, 5, 1, tzinfo=timezone.utc)).rejection_reason(NOW) is PromoRejection.EXPIRED
    assert _promo(current_uses=5).rejection_reason(NOW) is PromoRejection.QUOTA_EXHAUSTED

    expired_and_exhausted = _promo(valid_until=datetime(2025, 5, 1, tzinfo=timezone.utc), current_uses=5)
    assert expired_and_exhausted.rejection_reason(NOW) is PromoRejection.EXPIRED


def test_validate_applies_usable_code_case_insensitively() -> None:
    """Verify 'save10' resolves to the stored 'SAVE10' and applies its discount."""

    result = validate_promo_code("save10", _lookup(_promo()), NOW)

    assert result.state is PromoState.APPLIED
    assert result.code == "SAVE10"
    assert result.discount_percent == 10
    assert result.message == "Promo code applied: 10% off."


def test_validate_unknown_and_blank_codes() -> None:
    """Verify unknown and blank codes are rejected as not found."""

    calls = []

    def lookup(code):
        calls.append(code)
        return None

    assert validate_promo_code("NOPE", lookup, NOW).rejection is PromoRejection.NOT_FOUND
    assert validate_promo_code("   ", lookup, NOW).rejection is PromoRejection.NOT_FOUND
    assert calls == ["NOPE"]


def test_validate_exhausted_code() -> None:
    """Verify a code whose uses equal its maximum is rejected with no discount."""

    result = validate_promo_code("SAVE10", _lookup(_promo(current_uses=5, max_uses=5)), NOW)

    assert result.state is PromoState.REJECTED
    assert result.rejection is PromoRejection.QUOTA_EXHAUSTED
    assert result.discount_percent == 0


def test_lookup_failure_is_rejected_not_raised() -> None:
    """Verify a failing store produces a displayable rejection."""

    def broken(code):
        raise RuntimeError("database unavailable")

    result = validate_promo_code("SAVE10", broken, NOW)

    assert result.state is PromoState.REJECTED
    assert result.rejection is PromoRejection.LOOKUP_FAILED
    assert result.message


def test_session_state_machine() -> None:
    """Verify idle -> applied -> rejected (replace) -> idle (clear)."""

    session = PromoSession(_lookup(_promo(), _promo("OLD", valid_until=datetime(2025, 2, 1, tzinfo=timezone.utc))), clock=lambda: NOW)
    assert session.state is PromoState.IDLE
    assert session.discount_percent == 0

    session.validate("save10")
    assert session.state is PromoState.APPLIED
    assert session.discount_percent == 10
    assert session.code == "SAVE10"

    session.validate("old")
    assert session.state is PromoState.REJECTED
    assert session.last_result.rejection is PromoRejection.EXPIRED
    assert session.discount_percent == 0
    assert session.code is None

    session.validate("SAVE10")
    session.clear()
    assert session.state is PromoState.IDLE
    assert session.last_result is None
    assert session.discount_percent == 0


def test_session_is_validating_during_lookup() -> None:
    """Verify the session reports `validating` while the lookup runs."""

    seen = []
    session: PromoSession

    def lookup(code):
        seen.append(session.state)
        return _promo()

    session = PromoSession(lookup, clock=lambda: NOW)
    session.validate("SAVE10")

    assert seen == [PromoState.VALIDATING]
    assert session.state is PromoState.APPLIED
