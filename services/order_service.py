"""
Order lifecycle service.

Coordinates order creation, payment initiation, gateway callback processing
and admin fulfillment transitions.

Handles:
- Server-side price recomputation (a client-submitted total is never trusted)
- Promo revalidation and redemption at order creation
- At-most-once application of the paid transition under gateway retries
- Best-effort notifications: e-mail failures are logged and never undo a
  status change
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional

from domain.order import FileType, Order, OrderFile, OrderStatus
from domain.profile import Profile
from domain.promo import PromoCode, PromoRejection
from domain.time import utc_now
from repositories.order_repository import OrderRepository
from repositories.profile_repository import ProfileRepository
from repositories.promo_repository import PromoRepository
from services.duitku_client import CallbackPayload, DuitkuClient, PaymentMethod, TransactionResult
from services.email_templates import status_email, welcome_email
from services.errors import (
    AuthorizationError,
    NotFoundError,
    OrderStateError,
    RepositoryError,
    SignatureMismatch,
    ValidationError,
)
from services.notification_service import Notifier
from services.pricing_service import PriceQuote, quote_order
from services.promo_service import PromoResult, validate_promo_code

logger = logging.getLogger(__name__)


_CORRECTION_NOTIFIED = (OrderStatus.REVIEW, OrderStatus.COMPLETED)


class CallbackOutcome(str, Enum):
    PAID = "paid"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNKNOWN_ORDER = "unknown_order"


@dataclass(frozen=True, slots=True)
class PaymentInitiation:
    order: Order
    transaction: TransactionResult


class OrderLifecycle:
    """
    Order lifecycle orchestrator.

    Collaborators are injected so each request can be served by short-lived
    instances over shared, long-lived clients.
    """

    def __init__(
        self,
        orders: OrderRepository,
        promos: PromoRepository,
        profiles: ProfileRepository,
        gateway: DuitkuClient,
        notifier: Notifier,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.orders = orders
        self.promos = promos
        self.profiles = profiles
        self.gateway = gateway
        self.notifier = notifier
        self._clock = clock

    def check_configuration(self) -> None:
        """
        Ensure gateway and database credentials are present.

        Raises:
            ConfigurationError: If a required secret is missing
        """
        _ = self.gateway.settings
        _ = self.orders.client

    # ------------------------------------------------------------------
    # Pricing and promo
    # ------------------------------------------------------------------

    def validate_promo(self, code: str) -> PromoResult:
        return validate_promo_code(code, self.promos.get_active_promo, self._clock())

    def quote(
        self,
        total_pages: int,
        urgency_days: int,
        hard_copy: bool = False,
        promo_code: Optional[str] = None,
    ) -> tuple[PriceQuote, Optional[PromoResult]]:
        """
        Price an order for display. A rejected promo prices without discount.

        Raises:
            ValidationError: If total_pages < 1
        """
        promo_result = self.validate_promo(promo_code) if promo_code else None
        discount = promo_result.discount_percent if promo_result and promo_result.applied else 0

        try:
            quote = quote_order(total_pages, urgency_days, hard_copy, discount)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return quote, promo_result

    # ------------------------------------------------------------------
    # Order creation and reads
    # ------------------------------------------------------------------

    def create_order(
        self,
        owner: Profile,
        files: List[OrderFile],
        urgency_days: int,
        hard_copy: bool = False,
        hard_copy_address: Optional[str] = None,
        promo_code: Optional[str] = None,
        client_total: Optional[int] = None,
    ) -> Order:
        """
        Create an order from already-uploaded source files.

        Process:
        1. Validate input (files present, page counts >= 1, address for hard copy)
        2. Revalidate and redeem the promo code, if any
        3. Recompute the price server-side
        4. Insert the order (payment_pending / unpaid), then its file rows

        If inserting the file rows fails after the order row was written, the
        order is left without files; the error is logged and re-raised.

        Raises:
            ValidationError: On missing/invalid input or a rejected promo code
            RepositoryError: If the store rejects an insert
        """
        if not files:
            raise ValidationError("No files provided")
        if any(f.page_count < 1 for f in files):
            raise ValidationError("Each file must have at least one page")
        if hard_copy and not (hard_copy_address or "").strip():
            raise ValidationError("A shipping address is required for a hard copy")

        total_pages = sum(f.page_count for f in files)

        promo: Optional[PromoCode] = None
        if promo_code:
            promo = self._claim_promo(promo_code)

        discount = promo.discount_percent if promo else 0
        quote = quote_order(total_pages, urgency_days, hard_copy, discount)

        if client_total is not None and client_total != quote.final_price:
            logger.warning(
                "Ignoring client-submitted total %s for user %s; server price is %s",
                client_total,
                owner.user_id,
                quote.final_price,
            )

        order = self.orders.insert_order(
            user_id=owner.user_id,
            urgency_days=quote.tier.days,
            page_count_estimated=total_pages,
            original_price=quote.original_price,
            final_price=quote.final_price,
            physical_copy=hard_copy,
            hard_copy_address=hard_copy_address.strip() if hard_copy and hard_copy_address else None,
            promo_code=promo.code if promo else None,
            currency=quote.currency,
        )

        source_files = [
            OrderFile(file_path=f.file_path, page_count=f.page_count, file_type=FileType.SOURCE)
            for f in files
        ]
        try:
            stored_files = self.orders.insert_files(order.order_id, source_files)
        except RepositoryError:
            logger.error("Order %s created but its files could not be stored", order.order_id)
            raise

        self._record_timeline(order.order_id, OrderStatus.PAYMENT_PENDING, "Order created")
        logger.info("Order %s created for user %s (%s IDR)", order.order_id, owner.user_id, order.final_price)

        return replace(order, files=stored_files)

    def _claim_promo(self, code: str) -> PromoCode:
        result = self.validate_promo(code)
        if not result.applied:
            raise ValidationError(result.message)

        promo = self.promos.get_active_promo(result.code)
        if promo is None or not self.promos.redeem(promo):
            raise ValidationError(PromoRejection.QUOTA_EXHAUSTED.message)
        return promo

    def get_order(self, order_id: str, requester: Profile) -> Order:
        """
        Raises:
            NotFoundError: If the order does not exist
            AuthorizationError: If the requester is neither owner nor admin
        """
        order = self._require_order(order_id)
        if not (order.is_owned_by(requester.user_id) or requester.is_admin):
            raise AuthorizationError("Not authorized to access this order")
        return order

    def _require_order(self, order_id: str, include_files: bool = True) -> Order:
        order = self.orders.get_order(order_id, include_files=include_files)
        if order is None:
            raise NotFoundError(f"Order not found: {order_id}")
        return order

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def list_payment_methods(self, amount: int) -> List[PaymentMethod]:
        if amount <= 0:
            raise ValidationError("Valid amount is required")
        return self.gateway.list_payment_methods(amount)

    def initiate_payment(
        self,
        order_id: str,
        requester: Profile,
        payment_method: str,
        phone_number: Optional[str] = None,
    ) -> PaymentInitiation:
        """
        Request a gateway transaction for an order and mark it pending.

        Raises:
            NotFoundError: If the order does not exist
            AuthorizationError: If the requester does not own the order
            OrderStateError: If the order is already paid
            ValidationError: If the payment method or buyer e-mail is missing
            GatewayError: If the gateway rejects the request
        """
        if not payment_method:
            raise ValidationError("Payment method is required")

        order = self._require_order(order_id, include_files=False)
        if not order.is_owned_by(requester.user_id):
            raise AuthorizationError("Not authorized to pay for this order")
        if not order.can_initiate_payment():
            raise OrderStateError("Order is already paid")

        profile = self.profiles.get_profile(requester.user_id) or requester
        if not profile.email:
            raise ValidationError("An e-mail address is required to pay")

        transaction = self.gateway.request_transaction(
            order_id=order.order_id,
            amount=order.final_price,
            payment_method=payment_method,
            product_details=f"Translation order {order.order_id} ({order.total_pages} pages)",
            email=profile.email,
            customer_name=profile.display_name,
            phone_number=phone_number or profile.whatsapp_number,
        )

        updated = self.orders.mark_payment_pending(order.order_id, transaction.reference)
        if updated is None:
            raise OrderStateError("Order was paid while the payment request was in flight")

        logger.info("Payment requested for order %s (reference %s)", order.order_id, transaction.reference)
        return PaymentInitiation(order=updated, transaction=transaction)

    def verify_callback(self, payload: CallbackPayload) -> None:
        """
        Raises:
            SignatureMismatch: If the callback signature does not verify
        """
        if not self.gateway.verify_callback_signature(payload):
            raise SignatureMismatch(f"Invalid callback signature for order {payload.merchant_order_id}")

    def process_callback(self, payload: CallbackPayload) -> CallbackOutcome:
        """
        Apply a verified gateway callback.

        On resultCode "00" the order becomes paid exactly once, and moves to
        processing unless an admin already advanced it. Repeated deliveries for an already-paid order change nothing and send
        no e-mail. Other result codes are only logged.
        """
        order_id = payload.merchant_order_id

        if not payload.is_success:
            logger.info("Non-success resultCode %s for order %s", payload.result_code, order_id)
            return CallbackOutcome.IGNORED

        order = self.orders.mark_paid(order_id, payload.reference)
        if order is None:
            if self.orders.get_order(order_id, include_files=False) is None:
                logger.error("Callback for unknown order %s", order_id)
                return CallbackOutcome.UNKNOWN_ORDER
            logger.info("Order %s already paid, ignoring duplicate callback", order_id)
            return CallbackOutcome.DUPLICATE

        if payload.amount != str(order.final_price):
            logger.warning(
                "Callback amount %s differs from order %s price %s",
                payload.amount,
                order_id,
                order.final_price,
            )

        logger.info("Order %s updated to paid", order_id)
        self._record_timeline(order_id, order.status, f"Payment received ({payload.reference})")
        if order.status is OrderStatus.PROCESSING:
            self._notify_status(order, OrderStatus.PROCESSING)
        return CallbackOutcome.PAID

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------

    def upload_draft(self, order_id: str, file_path: str) -> Order:
        """Attach the watermarked draft and move the order to review."""
        return self._advance_with_file(order_id, file_path, FileType.WATERMARKED, OrderStatus.REVIEW)

    def finalize(self, order_id: str, file_path: str) -> Order:
        """Attach the final translation and complete the order."""
        return self._advance_with_file(order_id, file_path, FileType.FINAL, OrderStatus.COMPLETED)

    def _advance_with_file(
        self,
        order_id: str,
        file_path: str,
        file_type: FileType,
        target: OrderStatus,
    ) -> Order:
        if not file_path:
            raise ValidationError("Missing file path")

        order = self._require_order(order_id, include_files=False)
        if not order.is_paid:
            raise OrderStateError(f"Order {order_id} has not been paid")
        if not order.status.can_advance_to(target):
            raise OrderStateError(f"Cannot move order from {order.status.value} to {target.value}")

        self.orders.insert_files(order_id, [OrderFile(file_path=file_path, page_count=0, file_type=file_type)])

        updated = self.orders.update_order(order_id, {"status": target.value})
        if updated is None:
            raise NotFoundError(f"Order not found: {order_id}")

        self._record_timeline(order_id, target, f"{file_type.value} file uploaded")
        if order.status is not target:
            self._notify_status(updated, target)
        return updated

    def update_order(
        self,
        order_id: str,
        status: Optional[OrderStatus] = None,
        page_count: Optional[int] = None,
        final_price: Optional[int] = None,
    ) -> Order:
        """
        Admin correction of status, verified page count or final price.

        Corrections may move the status in any direction. A correction that
        moves the order into review or completed e-mails the buyer as the
        draft/finalize transitions do; other corrections send nothing.
        """
        updates: dict[str, Any] = {}
        if status is not None:
            updates["status"] = status.value
        if page_count is not None:
            if page_count < 0:
                raise ValidationError("page_count must be >= 0")
            updates["page_count_verified"] = page_count
        if final_price is not None:
            if final_price < 0:
                raise ValidationError("final_price must be >= 0")
            updates["final_price"] = final_price

        if not updates:
            raise ValidationError("No fields to update")

        previous = self._require_order(order_id, include_files=False)

        updated = self.orders.update_order(order_id, updates)
        if updated is None:
            raise NotFoundError(f"Order not found: {order_id}")

        if status is not None:
            self._record_timeline(order_id, status, "Admin correction")
        if status in _CORRECTION_NOTIFIED and status is not previous.status:
            self._notify_status(updated, status)
        logger.info("Order %s corrected by admin: %s", order_id, sorted(updates))
        return updated

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def handle_profile_created(self, record: Mapping[str, Any]) -> bool:
        """Send the welcome e-mail for a newly created profile. Returns True if sent."""
        email = record.get("email") or record.get("user_email")
        if not email:
            logger.info("New profile %s has no e-mail, skipping welcome", record.get("id"))
            return False

        subject, html = welcome_email(record.get("full_name") or "Customer")
        return self._send_safely(str(email), record.get("full_name"), subject, html)

    def _notify_status(self, order: Order, status: OrderStatus) -> None:
        try:
            profile = self.profiles.get_profile(order.user_id)
        except RepositoryError:
            logger.exception("Could not load profile for order %s notification", order.order_id)
            return

        if profile is None or not profile.email:
            logger.info("No e-mail on file for order %s, skipping notification", order.order_id)
            return

        subject, html = status_email(status, profile.display_name, order.order_id)
        self._send_safely(profile.email, profile.full_name, subject, html)

    def _send_safely(self, to_address: str, to_name: Optional[str], subject: str, html: str) -> bool:
        try:
            self.notifier.send_transactional_email(to_address, to_name, subject, html)
        except Exception:
            logger.exception("Failed to send '%s' email to %s", subject, to_address)
            return False
        return True

    def _record_timeline(self, order_id: str, status: OrderStatus, notes: str) -> None:
        try:
            self.orders.add_timeline_entry(order_id, status, notes)
        except RepositoryError:
            logger.exception("Failed to record timeline entry for order %s", order_id)


__all__ = [
    "CallbackOutcome",
    "OrderLifecycle",
    "PaymentInitiation",
]
