"""
FastAPI dependencies.

Long-lived clients (gateway HTTP client, mail token holder) are built once
per process; services and repositories are cheap and built per request.
Tests replace these through `app.dependency_overrides`.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from domain.profile import Profile
from repositories.order_repository import OrderRepository
from repositories.profile_repository import ProfileRepository
from repositories.promo_repository import PromoRepository
from services.duitku_client import DuitkuClient
from services.notification_service import SendPulseMailer
from services.order_service import OrderLifecycle


@lru_cache(maxsize=1)
def get_gateway() -> DuitkuClient:
    return DuitkuClient()


@lru_cache(maxsize=1)
def get_notifier() -> SendPulseMailer:
    return SendPulseMailer()


def get_profile_repository() -> ProfileRepository:
    return ProfileRepository()


def get_order_service() -> OrderLifecycle:
    return OrderLifecycle(
        orders=OrderRepository(),
        promos=PromoRepository(),
        profiles=ProfileRepository(),
        gateway=get_gateway(),
        notifier=get_notifier(),
    )


def get_current_user(
    authorization: Optional[str] = Header(None),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> Profile:
    """
    Resolve the caller from a `Authorization: Bearer <supabase access token>` header.

    Raises 401 when the header is missing or the session is invalid.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = profiles.get_user_id_for_token(authorization[7:].strip())
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return profiles.get_profile(user_id) or Profile(user_id=user_id)


def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return user
