"""
Admin API Endpoints.

Fulfillment transitions performed by staff. Files are uploaded to storage by
the admin UI beforehand; these endpoints record them and advance the order.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_order_service, require_admin
from api.errors import to_http_exception
from api.models import AdminFileRequest, AdminOrderUpdateRequest, OrderResponse
from api.routers.orders import order_to_response
from domain.order import OrderStatus
from domain.profile import Profile
from services.order_service import OrderLifecycle

router = APIRouter()


@router.post(
    "/admin/orders/{order_id}/draft",
    response_model=OrderResponse,
    summary="Upload Draft",
    description="Record the watermarked draft and move the order to review."
)
def upload_draft(
    order_id: str,
    request: AdminFileRequest,
    admin: Profile = Depends(require_admin),
    service: OrderLifecycle = Depends(get_order_service),
):
    """The buyer is e-mailed that the draft is ready. E-mail failures do not fail the request."""
    try:
        return order_to_response(service.upload_draft(order_id, request.file_path))

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "upload draft")


@router.post(
    "/admin/orders/{order_id}/finalize",
    response_model=OrderResponse,
    summary="Finalize Order",
    description="Record the final translation and complete the order."
)
def finalize_order(
    order_id: str,
    request: AdminFileRequest,
    admin: Profile = Depends(require_admin),
    service: OrderLifecycle = Depends(get_order_service),
):
    """The buyer is e-mailed that the order is complete. E-mail failures do not fail the request."""
    try:
        return order_to_response(service.finalize(order_id, request.file_path))

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "finalize order")


@router.patch(
    "/admin/orders/{order_id}",
    response_model=OrderResponse,
    summary="Correct Order",
    description="Correct status, verified page count or final price."
)
def update_order(
    order_id: str,
    request: AdminOrderUpdateRequest,
    admin: Profile = Depends(require_admin),
    service: OrderLifecycle = Depends(get_order_service),
):
    """
    Admin correction.

    Unlike the draft/finalize transitions, a correction may move the status
    backwards. Only a forward move into review or completed e-mails the buyer.
    """
    try:
        status = None
        if request.status:
            try:
                status = OrderStatus(request.status)
            except ValueError:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid status '{request.status}'. Must be one of: "
                           f"{', '.join(s.value for s in OrderStatus)}"
                )

        order = service.update_order(
            order_id,
            status=status,
            page_count=request.page_count,
            final_price=request.final_price,
        )
        return order_to_response(order)

    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e, "update order")
