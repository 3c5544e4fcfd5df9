"""
Promo code repository.

Looks up active promo codes and redeems them. Codes are stored upper-case;
callers pass normalized codes (see `domain.promo.normalize_promo_code`).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from domain.promo import PromoCode
from domain.time import parse_utc_datetime
from repositories.client import execute_query, get_supabase

_PROMO_TABLE: str = "promo_codes"


def _row_to_promo(row: Mapping[str, Any]) -> PromoCode:
    return PromoCode(
        code=str(row["code"]).upper(),
        discount_percent=int(row["discount_percent"]),
        valid_from=parse_utc_datetime(row["valid_from"]),
        valid_until=parse_utc_datetime(row["valid_until"]),
        current_uses=int(row.get("current_uses") or 0),
        max_uses=int(row.get("max_uses") or 0),
        active=bool(row.get("active", True)),
        promo_id=str(row["id"]) if row.get("id") is not None else None,
    )


class PromoRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def get_active_promo(self, code: str) -> Optional[PromoCode]:
        """
        Fetch an active promo code by its normalized code.

        Returns:
            PromoCode, or None if no active code matches
        """
        rows = execute_query(
            self.client.table(_PROMO_TABLE)
            .select("*")
            .eq("code", code)
            .eq("active", True)
            .limit(1),
            "fetch promo code",
        )
        return _row_to_promo(rows[0]) if rows else None

    def redeem(self, promo: PromoCode) -> bool:
        """
        Increment the usage counter of `promo`.

        The update only matches while current_uses still equals the value that
        was read, so two concurrent redemptions cannot both take the last use.

        Returns:
            True if the counter was incremented, False if it changed underneath
            or the quota is already exhausted
        """
        if promo.current_uses >= promo.max_uses:
            return False

        rows = execute_query(
            self.client.table(_PROMO_TABLE)
            .update({"current_uses": promo.current_uses + 1})
            .eq("code", promo.code)
            .eq("current_uses", promo.current_uses),
            "redeem promo code",
        )
        return bool(rows)


__all__ = ["PromoRepository"]
