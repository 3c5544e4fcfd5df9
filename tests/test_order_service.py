"""
Tests for `services/order_service.py`.

Covers:
- Order creation recomputes the price server-side and redeems promo codes.
- A file-insert failure leaves the order row and re-raises.
- Payment initiation ownership and state rules.
- Gateway callbacks apply the paid transition at most once.
- Admin transitions advance status and tolerate e-mail failures.
"""

from __future__ import annotations

import pytest

from domain.order import FileType, OrderFile, OrderStatus, PaymentStatus
from domain.profile import Profile
from fakes import MERCHANT_CODE, callback_signature
from services.duitku_client import CallbackPayload
from services.errors import (
    AuthorizationError,
    NotFoundError,
    OrderStateError,
    RepositoryError,
    SignatureMismatch,
    ValidationError,
)
from services.order_service import CallbackOutcome

BUYER = Profile("user-1", email="siti@example.com", full_name="Siti Aminah")
OTHER = Profile("user-2", email="budi@example.com", full_name="Budi")
ADMIN = Profile("admin-1", email="admin@tarjuman.org", role="admin")


def _create(service, pages=(5,), urgency_days=2, **kwargs):
    files = [OrderFile(file_path=f"uploads/doc-{i}.pdf", page_count=p) for i, p in enumerate(pages)]
    return service.create_order(owner=BUYER, files=files, urgency_days=urgency_days, **kwargs)


def _callback(order_id: str, amount: str, result_code: str = "00") -> CallbackPayload:
    return CallbackPayload.from_form({
        "merchantCode": MERCHANT_CODE,
        "amount": amount,
        "merchantOrderId": order_id,
        "resultCode": result_code,
        "reference": "DS1234ABCD",
        "signature": callback_signature(amount, order_id),
    })


def test_create_order_recomputes_price(db, service, caplog) -> None:
    """Verify the stored price ignores the client-submitted total."""

    with caplog.at_level("WARNING"):
        order = _create(service, pages=(3, 2), client_total=1000)

    assert order.final_price == 825000
    assert order.original_price == 825000
    assert order.page_count_estimated == 5
    assert order.status is OrderStatus.PAYMENT_PENDING
    assert order.payment_status is PaymentStatus.UNPAID
    assert [f.file_type for f in order.files] == [FileType.SOURCE, FileType.SOURCE]
    assert "Ignoring client-submitted total" in caplog.text

    stored = db.rows("orders")[0]
    assert stored["final_price"] == 825000
    assert db.rows("order_timeline")[0]["status"] == "payment_pending"


def test_create_order_input_validation(service) -> None:
    """Verify empty file lists, zero-page files and missing shipping address are rejected."""

    with pytest.raises(ValidationError, match="No files provided"):
        service.create_order(owner=BUYER, files=[], urgency_days=9)

    with pytest.raises(ValidationError):
        _create(service, pages=(0,))

    with pytest.raises(ValidationError, match="shipping address"):
        _create(service, hard_copy=True, hard_copy_address="  ")


def test_create_order_with_promo_redeems_once(db, service) -> None:
    """Verify a valid promo discounts the order and increments its usage counter."""

    db.add_promo("SAVE30", 30, max_uses=2)

    order = _create(service, pages=(10,), urgency_days=9, hard_copy=True, hard_copy_address="Jl. Merdeka 1", promo_code="save30")

    assert order.original_price == 770000
    assert order.final_price == 539000
    assert order.promo_code == "SAVE30"
    assert order.hard_copy_address == "Jl. Merdeka 1"
    assert db.rows("promo_codes")[0]["current_uses"] == 1


def test_create_order_with_exhausted_promo_is_rejected(db, service) -> None:
    """Verify an exhausted promo rejects the order and nothing is stored."""

    db.add_promo("SAVE30", 30, max_uses=1, current_uses=1)

    with pytest.raises(ValidationError, match="usage limit"):
        _create(service, promo_code="SAVE30")

    assert db.rows("orders") == []


def test_create_order_file_failure_keeps_order(db, service) -> None:
    """Verify a file-insert failure re-raises and leaves the order row behind."""

    db.fail("order_files", "insert")

    with pytest.raises(RepositoryError):
        _create(service)

    assert len(db.rows("orders")) == 1
    assert db.rows("order_files") == []


def test_quote_with_rejected_promo_has_no_discount(service) -> None:
    """Verify quoting with an unknown promo still prices the order."""

    quote, promo = service.quote(10, 9, hard_copy=True, promo_code="NOPE")

    assert quote.final_price == 770000
    assert promo is not None and not promo.applied


def test_get_order_access(service) -> None:
    """Verify only the owner or an admin can read an order."""

    order = _create(service)

    assert service.get_order(order.order_id, BUYER).order_id == order.order_id
    assert service.get_order(order.order_id, ADMIN).order_id == order.order_id

    with pytest.raises(AuthorizationError):
        service.get_order(order.order_id, OTHER)

    with pytest.raises(NotFoundError):
        service.get_order("missing", BUYER)


def test_initiate_payment_marks_pending(db, service, gateway_server) -> None:
    """Verify payment uses the stored price and stores the gateway reference."""

    order = _create(service)

    result = service.initiate_payment(order.order_id, BUYER, payment_method="VA")

    assert result.transaction.reference == "DS1234ABCD"
    assert result.order.payment_status is PaymentStatus.PENDING
    assert result.order.duitku_reference == "DS1234ABCD"

    _, body = gateway_server.requests[-1]
    assert body["paymentAmount"] == 825000
    assert body["email"] == "siti@example.com"
    assert body["productDetails"] == f"Translation order {order.order_id} (5 pages)"


def test_initiate_payment_rules(db, service) -> None:
    """Verify ownership, missing method and already-paid checks."""

    order = _create(service)

    with pytest.raises(ValidationError):
        service.initiate_payment(order.order_id, BUYER, payment_method="")

    with pytest.raises(AuthorizationError):
        service.initiate_payment(order.order_id, OTHER, payment_method="VA")

    with pytest.raises(NotFoundError):
        service.initiate_payment("missing", BUYER, payment_method="VA")

    db.rows("orders")[0]["payment_status"] = "paid"
    with pytest.raises(OrderStateError):
        service.initiate_payment(order.order_id, BUYER, payment_method="VA")


def test_verify_callback_rejects_bad_signature(service) -> None:
    """Verify a tampered amount fails signature verification."""

    payload = _callback("order-1", "825000")
    service.verify_callback(payload)

    tampered = CallbackPayload.from_form({
        "merchantCode": MERCHANT_CODE,
        "amount": "1000",
        "merchantOrderId": "order-1",
        "resultCode": "00",
        "signature": payload.signature,
    })
    with pytest.raises(SignatureMismatch):
        service.verify_callback(tampered)


def test_callback_is_applied_once(db, service, notifier) -> None:
    """Verify repeated success callbacks mark paid once and send one e-mail."""

    order = _create(service)
    payload = _callback(order.order_id, "825000")

    assert service.process_callback(payload) is CallbackOutcome.PAID
    assert service.process_callback(payload) is CallbackOutcome.DUPLICATE

    stored = db.rows("orders")[0]
    assert stored["payment_status"] == "paid"
    assert stored["status"] == "processing"
    assert stored["duitku_reference"] == "DS1234ABCD"

    assert len(notifier.sent) == 1
    assert notifier.sent[0].to_address == "siti@example.com"
    assert notifier.sent[0].subject == "We're processing your order!"


def test_callback_non_success_and_unknown_order(db, service, notifier) -> None:
    """Verify failed payments are ignored and unknown orders change nothing."""

    order = _create(service)

    assert service.process_callback(_callback(order.order_id, "825000", result_code="01")) is CallbackOutcome.IGNORED
    assert db.rows("orders")[0]["payment_status"] == "unpaid"

    assert service.process_callback(_callback("missing", "825000")) is CallbackOutcome.UNKNOWN_ORDER
    assert notifier.sent == []


def test_callback_survives_notifier_failure(db, service, notifier) -> None:
    """Verify an e-mail outage does not undo the paid transition."""

    order = _create(service)
    notifier.fail = True

    assert service.process_callback(_callback(order.order_id, "825000")) is CallbackOutcome.PAID
    assert db.rows("orders")[0]["payment_status"] == "paid"


def test_end_to_end_ekspres_order(db, service, notifier) -> None:
    """Verify quote, order, payment and callback for 5 pages on the ekspres tier."""

    quote, _ = service.quote(5, 2)
    assert quote.final_price == 825000

    order = _create(service, pages=(5,), urgency_days=2)
    payment = service.initiate_payment(order.order_id, BUYER, payment_method="VA")
    assert payment.order.payment_status is PaymentStatus.PENDING

    service.verify_callback(_callback(order.order_id, "825000"))
    assert service.process_callback(_callback(order.order_id, "825000")) is CallbackOutcome.PAID

    paid = service.get_order(order.order_id, BUYER)
    assert paid.is_paid
    assert paid.status is OrderStatus.PROCESSING
    assert len(notifier.sent) == 1


def test_admin_transitions(db, service, notifier) -> None:
    """Verify draft and finalize advance the status, add files and notify the buyer."""

    order = _create(service)
    service.process_callback(_callback(order.order_id, "825000"))
    notifier.sent.clear()

    draft = service.upload_draft(order.order_id, "drafts/order-1.pdf")
    assert draft.status is OrderStatus.REVIEW

    notifier.fail = True
    final = service.finalize(order.order_id, "final/order-1.pdf")
    assert final.status is OrderStatus.COMPLETED

    file_types = [f.file_type for f in service.get_order(order.order_id, ADMIN).files]
    assert FileType.WATERMARKED in file_types
    assert FileType.FINAL in file_types

    assert [e.subject for e in notifier.sent] == ["Your translation draft is ready for review"]

    with pytest.raises(OrderStateError):
        service.upload_draft(order.order_id, "drafts/again.pdf")

    with pytest.raises(ValidationError):
        service.finalize(order.order_id, "")


def test_admin_correction(db, service, notifier) -> None:
    """Verify corrections may move status backwards without e-mailing the buyer."""

    order = _create(service)
    service.process_callback(_callback(order.order_id, "825000"))
    service.finalize(order.order_id, "final/order-1.pdf")
    notifier.sent.clear()

    corrected = service.update_order(order.order_id, status=OrderStatus.PROCESSING, page_count=6, final_price=900000)

    assert corrected.status is OrderStatus.PROCESSING
    assert corrected.page_count_verified == 6
    assert corrected.final_price == 900000
    assert notifier.sent == []

    with pytest.raises(ValidationError):
        service.update_order(order.order_id)

    with pytest.raises(NotFoundError):
        service.update_order("missing", final_price=1)


def test_welcome_email_on_profile_created(service, notifier) -> None:
    """Verify a new profile with an e-mail receives the welcome message."""

    assert service.handle_profile_created({"id": "user-9", "email": "new@example.com", "full_name": "Rina"})
    assert not service.handle_profile_created({"id": "user-10"})

    assert len(notifier.sent) == 1
    assert notifier.sent[0].subject == "Welcome to Tarjuman!"


def test_correction_into_review_or_completed_notifies(db, service, notifier) -> None:
    """Verify a forward correction e-mails the buyer once per status reached."""

    order = _create(service)
    service.process_callback(_callback(order.order_id, "825000"))
    notifier.sent.clear()

    service.update_order(order.order_id, status=OrderStatus.REVIEW)
    service.update_order(order.order_id, status=OrderStatus.REVIEW, page_count=6)
    service.update_order(order.order_id, status=OrderStatus.COMPLETED)

    assert [e.subject for e in notifier.sent] == [
        "Your translation draft is ready for review",
        "Your translation is complete",
    ]


def test_unpaid_order_cannot_be_fulfilled(db, service, notifier) -> None:
    """Verify draft and finalize are refused until payment is received."""

    order = _create(service)

    with pytest.raises(OrderStateError):
        service.upload_draft(order.order_id, "drafts/order-1.pdf")

    with pytest.raises(OrderStateError):
        service.finalize(order.order_id, "final/order-1.pdf")

    stored = db.rows("orders")[0]
    assert stored["status"] == "payment_pending"
    assert [r["file_type"] for r in db.rows("order_files")] == ["source"]
    assert notifier.sent == []


def test_late_payment_keeps_advanced_status(db, service, notifier) -> None:
    """Verify a paid callback never moves an admin-advanced order backwards."""

    order = _create(service)
    service.update_order(order.order_id, status=OrderStatus.COMPLETED)
    notifier.sent.clear()

    assert service.process_callback(_callback(order.order_id, "825000")) is CallbackOutcome.PAID

    stored = db.rows("orders")[0]
    assert stored["payment_status"] == "paid"
    assert stored["status"] == "completed"
    assert notifier.sent == []
