"""
Profile repository.

Reads user profiles (contact details and role) and resolves Supabase access
tokens to user ids.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from supabase import AuthApiError  # type: ignore[import-not-found]

from domain.profile import Profile
from repositories.client import execute_query, get_supabase

_PROFILES_TABLE: str = "profiles"

logger = logging.getLogger(__name__)


def _row_to_profile(row: Mapping[str, Any]) -> Profile:
    return Profile(
        user_id=str(row["id"]),
        email=row.get("email"),
        full_name=row.get("full_name"),
        role=row.get("role"),
        whatsapp_number=row.get("whatsapp_number"),
    )


class ProfileRepository:
    def __init__(self, client: Any = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def get_profile(self, user_id: str) -> Optional[Profile]:
        rows = execute_query(
            self.client.table(_PROFILES_TABLE).select("*").eq("id", user_id).limit(1),
            "fetch profile",
        )
        return _row_to_profile(rows[0]) if rows else None

    def get_user_id_for_token(self, access_token: str) -> Optional[str]:
        """
        Resolve a Supabase session access token to the user's id.

        Returns None when Supabase Auth rejects the token (invalid or
        expired). Other failures, such as an unreachable Auth server,
        propagate.
        """
        try:
            response = self.client.auth.get_user(access_token)
        except AuthApiError as e:
            logger.warning("Rejected access token: %s", e)
            return None

        user = getattr(response, "user", None)
        return str(user.id) if user is not None else None


__all__ = ["ProfileRepository"]
