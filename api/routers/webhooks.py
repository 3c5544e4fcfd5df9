"""
Database Webhook Endpoints.

Receives Supabase database webhooks. A new row in `profiles` triggers the
welcome e-mail; other events are acknowledged and ignored.
"""

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException

from api.dependencies import get_order_service
from services.order_service import OrderLifecycle
from services.settings import get_webhook_secret

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhooks/supabase",
    summary="Supabase Database Webhook",
    include_in_schema=False,
)
def supabase_webhook(
    payload: Dict[str, Any] = Body(...),
    x_supabase_webhook_secret: Optional[str] = Header(None),
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Handle a Supabase database webhook.

    When WEBHOOK_SECRET is set, the `x-supabase-webhook-secret` header must
    match it. Processing errors are logged and still acknowledged with 200 so
    Supabase does not retry on logic errors.
    """
    expected = get_webhook_secret()
    if expected is not None:
        provided = x_supabase_webhook_secret or ""
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            logger.error("Webhook rejected: invalid secret header")
            raise HTTPException(status_code=401, detail="Unauthorized")
    else:
        logger.warning("WEBHOOK_SECRET is not set; accepting unauthenticated webhook")

    event_type = payload.get("type")
    table = payload.get("table")
    record = payload.get("record") or {}
    logger.info("Received %s event on %s", event_type, table)

    try:
        if table == "profiles" and event_type == "INSERT":
            service.handle_profile_created(record)
    except Exception:
        logger.exception("Webhook processing failed")
        return {"status": "error processed"}

    return {"status": "processed"}
