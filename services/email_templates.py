"""
E-mail content for order lifecycle events.

Each builder returns (subject, html_body). User-provided values are HTML
escaped before interpolation.
"""

from __future__ import annotations

from html import escape

from domain.order import OrderStatus

SIGNATURE = "<br/><p>Best regards,<br/>The Tarjuman Team</p>"


def welcome_email(name: str) -> tuple[str, str]:
    html = (
        "<h2>Welcome to Tarjuman</h2>"
        f"<p>Hi {escape(name)},</p>"
        "<p>Your account is ready. Upload your documents any time to get a "
        "translation quote in seconds.</p>"
        f"{SIGNATURE}"
    )
    return "Welcome to Tarjuman!", html


def order_processing_email(name: str, order_id: str) -> tuple[str, str]:
    html = (
        "<h2>Payment Received</h2>"
        f"<p>Hi {escape(name)},</p>"
        "<p>Thank you for your payment!</p>"
        f"<p>Your order for translation services (Order ID: <b>{escape(order_id)}</b>) "
        "is now being processed.</p>"
        "<p>We will notify you once your draft is ready for review.</p>"
        f"{SIGNATURE}"
    )
    return "We're processing your order!", html


def draft_ready_email(name: str, order_id: str) -> tuple[str, str]:
    html = (
        "<h2>Your Draft Is Ready</h2>"
        f"<p>Hi {escape(name)},</p>"
        f"<p>The draft translation for order <b>{escape(order_id)}</b> is ready. "
        "Please log in to review it and let us know if anything needs changing.</p>"
        f"{SIGNATURE}"
    )
    return "Your translation draft is ready for review", html


def order_completed_email(name: str, order_id: str) -> tuple[str, str]:
    html = (
        "<h2>Order Completed</h2>"
        f"<p>Hi {escape(name)},</p>"
        f"<p>Your final translation for order <b>{escape(order_id)}</b> is complete "
        "and available for download from your dashboard.</p>"
        f"{SIGNATURE}"
    )
    return "Your translation is complete", html


STATUS_EMAILS = {
    OrderStatus.PROCESSING: order_processing_email,
    OrderStatus.REVIEW: draft_ready_email,
    OrderStatus.COMPLETED: order_completed_email,
}


def status_email(status: OrderStatus, name: str, order_id: str) -> tuple[str, str]:
    """
    E-mail for an order entering `status`.

    Raises:
        KeyError: If no e-mail is sent for this status
    """
    return STATUS_EMAILS[status](name, order_id)
