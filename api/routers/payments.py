"""
Payments API Endpoints.

Payment method listing for the checkout page and the server-to-server
callback the gateway calls when a payment status changes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_current_user, get_order_service
from api.errors import to_http_exception
from api.models import PaymentMethodListResponse, PaymentMethodResponse
from domain.profile import Profile
from services.duitku_client import CallbackPayload
from services.errors import ConfigurationError, SignatureMismatch
from services.order_service import OrderLifecycle

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/payments/methods",
    response_model=PaymentMethodListResponse,
    summary="List Payment Methods",
)
def list_payment_methods(
    amount: int = Query(..., gt=0, description="Order amount in IDR"),
    user: Profile = Depends(get_current_user),
    service: OrderLifecycle = Depends(get_order_service),
):
    """Payment methods the gateway offers for `amount`, with their fees."""
    try:
        methods = service.list_payment_methods(amount)
        return PaymentMethodListResponse(
            methods=[
                PaymentMethodResponse(
                    code=m.code,
                    name=m.name,
                    image_url=m.image_url,
                    total_fee=m.total_fee,
                )
                for m in methods
            ]
        )

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "fetch payment methods")


@router.post(
    "/payments/callback",
    response_class=PlainTextResponse,
    summary="Gateway Callback",
    include_in_schema=False,
)
async def payment_callback(
    request: Request,
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Receive a payment status callback from the gateway.

    No session auth: the signature is the only authorization.

    **Responses:**
    - 400 `Bad Parameter`: a required field is missing
    - 500 `Server Configuration Error`: gateway or database secrets missing
    - 400 `Bad Signature`: signature does not verify
    - 200 `OK`: everything else, including internal processing failures, so
      the gateway does not retry endlessly
    """
    form = await request.form()
    payload = CallbackPayload.from_form(form)

    logger.info(
        "Callback received: order=%s resultCode=%s reference=%s amount=%s",
        payload.merchant_order_id,
        payload.result_code,
        payload.reference,
        payload.amount,
    )

    missing = payload.missing_fields()
    if missing:
        logger.error("Callback missing required parameters: %s", ", ".join(missing))
        return PlainTextResponse("Bad Parameter", status_code=400)

    try:
        service.check_configuration()
    except ConfigurationError as e:
        logger.error("Callback cannot be processed: %s", e)
        return PlainTextResponse("Server Configuration Error", status_code=500)

    try:
        service.verify_callback(payload)
    except SignatureMismatch as e:
        logger.error("%s", e)
        return PlainTextResponse("Bad Signature", status_code=400)

    try:
        outcome = await run_in_threadpool(service.process_callback, payload)
        logger.info("Callback for order %s processed: %s", payload.merchant_order_id, outcome.value)
    except Exception:
        logger.exception("Callback processing failed for order %s", payload.merchant_order_id)

    return PlainTextResponse("OK", status_code=200)
