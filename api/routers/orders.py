"""
Orders API Endpoints.

Endpoints for creating orders, reading them and starting payment.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, get_order_service
from api.errors import to_http_exception
from api.models import (
    CreateOrderRequest,
    OrderFileResponse,
    OrderResponse,
    PayOrderRequest,
    PayOrderResponse,
)
from domain.order import Order, OrderFile
from domain.profile import Profile
from services.order_service import OrderLifecycle

router = APIRouter()


def order_to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=order.order_id,
        user_id=order.user_id,
        status=order.status.value,
        payment_status=order.payment_status.value,
        urgency_days=order.urgency_days,
        page_count_estimated=order.page_count_estimated,
        page_count_verified=order.page_count_verified,
        original_price=order.original_price,
        final_price=order.final_price,
        currency=order.currency,
        physical_copy=order.physical_copy,
        hard_copy_address=order.hard_copy_address,
        promo_code=order.promo_code,
        duitku_reference=order.duitku_reference,
        files=[
            OrderFileResponse(
                file_path=f.file_path,
                page_count=f.page_count,
                file_type=f.file_type.value,
            )
            for f in order.files
        ],
        created_at=order.created_at,
    )


@router.post(
    "/orders",
    response_model=OrderResponse,
    summary="Create Order",
    description="Create a translation order from uploaded documents. The price is computed server-side."
)
def create_order(
    request: CreateOrderRequest,
    user: Profile = Depends(get_current_user),
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Create an order in `payment_pending` / `unpaid` state.

    **Pricing:**
    The submitted `total_price` is never trusted. The server recomputes the
    price from pages, turnaround tier, hard-copy option and promo code.

    **Promo codes:**
    A promo code is revalidated and redeemed; an invalid code rejects the
    order with 400 and a displayable reason.
    """
    try:
        order = service.create_order(
            owner=user,
            files=[OrderFile(file_path=f.path, page_count=f.page_count) for f in request.files],
            urgency_days=request.urgency_days,
            hard_copy=request.hard_copy,
            hard_copy_address=request.hard_copy_address,
            promo_code=request.promo_code,
            client_total=request.total_price,
        )
        return order_to_response(order)

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "create order")


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    summary="Get Order",
)
def get_order(
    order_id: str,
    user: Profile = Depends(get_current_user),
    service: OrderLifecycle = Depends(get_order_service),
):
    """Read an order. Only the owner or an admin may access it."""
    try:
        return order_to_response(service.get_order(order_id, user))

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "fetch order")


@router.post(
    "/orders/{order_id}/pay",
    response_model=PayOrderResponse,
    summary="Start Payment",
    description="Request a payment transaction from the gateway for an unpaid order."
)
def pay_order(
    order_id: str,
    request: PayOrderRequest,
    user: Profile = Depends(get_current_user),
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Start payment for an order.

    **Process:**
    1. Checks the caller owns the order and it is not already paid
    2. Requests a transaction for the stored final price
    3. Stores the gateway reference and sets `payment_status` to `pending`

    Redirect the buyer to `payment_url` to complete payment. The order
    becomes `paid` only when the gateway callback arrives.
    """
    try:
        result = service.initiate_payment(
            order_id,
            user,
            payment_method=request.payment_method,
            phone_number=request.phone_number,
        )
        return PayOrderResponse(
            order_id=result.order.order_id,
            payment_status=result.order.payment_status.value,
            reference=result.transaction.reference,
            payment_url=result.transaction.payment_url,
            va_number=result.transaction.va_number,
            qr_string=result.transaction.qr_string,
        )

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "start payment")
