"""
Order repository (persistence).

This module provides *only* persistence operations for orders, their files
and the order timeline. It does not enforce lifecycle rules, with one
exception: payment updates are conditional on the order not already being
paid, so that a retried gateway callback cannot apply the paid transition
twice even when two deliveries race.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from domain.order import FileType, Order, OrderFile, OrderStatus, PaymentStatus
from domain.time import parse_utc_datetime, utc_now
from repositories.client import execute_query, get_supabase
from services.errors import RepositoryError

# Supabase table names.
# Keep these aligned with your database schema.
_ORDERS_TABLE: str = "orders"
_FILES_TABLE: str = "order_files"
_TIMELINE_TABLE: str = "order_timeline"


def _row_to_file(row: Mapping[str, Any]) -> OrderFile:
    return OrderFile(
        file_path=str(row["file_path"]),
        page_count=int(row.get("page_count") or 0),
        file_type=FileType(row.get("file_type") or FileType.SOURCE.value),
        file_id=str(row["id"]) if row.get("id") is not None else None,
        order_id=str(row["order_id"]) if row.get("order_id") is not None else None,
    )


def _row_to_order(row: Mapping[str, Any], files: Optional[List[OrderFile]] = None) -> Order:
    """Convert a Supabase row into an Order."""

    return Order(
        order_id=str(row["id"]),
        user_id=str(row["user_id"]),
        status=OrderStatus(row.get("status") or OrderStatus.PAYMENT_PENDING.value),
        payment_status=PaymentStatus(row.get("payment_status") or PaymentStatus.UNPAID.value),
        urgency_days=int(row.get("urgency_days") or 0),
        page_count_estimated=int(row.get("page_count_estimated") or 0),
        page_count_verified=row.get("page_count_verified"),
        original_price=int(row.get("original_price") or 0),
        final_price=int(row.get("final_price") or 0),
        physical_copy=bool(row.get("physical_copy")),
        hard_copy_address=row.get("hard_copy_address"),
        promo_code=row.get("promo_code"),
        currency=str(row.get("currency") or "IDR"),
        duitku_reference=row.get("duitku_reference"),
        files=files or [],
        created_at=parse_utc_datetime(row["created_at"]) if row.get("created_at") else None,
        updated_at=parse_utc_datetime(row["updated_at"]) if row.get("updated_at") else None,
    )


class OrderRepository:
    """
    Supabase-backed order storage.

    The client is resolved lazily so the repository can be constructed
    before credentials are checked.
    """

    def __init__(self, client: Any = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def insert_order(
        self,
        user_id: str,
        urgency_days: int,
        page_count_estimated: int,
        original_price: int,
        final_price: int,
        physical_copy: bool,
        hard_copy_address: Optional[str],
        promo_code: Optional[str] = None,
        currency: str = "IDR",
    ) -> Order:
        """
        Insert a new order in payment_pending / unpaid state.

        Returns:
            Order as stored (id and timestamps assigned by the database)
        """

        payload: dict[str, Any] = {
            "user_id": user_id,
            "status": OrderStatus.PAYMENT_PENDING.value,
            "payment_status": PaymentStatus.UNPAID.value,
            "urgency_days": urgency_days,
            "page_count_estimated": page_count_estimated,
            "original_price": original_price,
            "final_price": final_price,
            "physical_copy": physical_copy,
            "hard_copy_address": hard_copy_address if physical_copy else None,
            "promo_code": promo_code,
            "currency": currency,
        }

        rows = execute_query(
            self.client.table(_ORDERS_TABLE).insert(payload),
            "create order",
        )
        if not rows:
            raise RepositoryError("Failed to create order: no row returned")
        return _row_to_order(rows[0])

    def insert_files(self, order_id: str, files: Iterable[OrderFile]) -> List[OrderFile]:
        payload = [
            {
                "order_id": order_id,
                "file_path": f.file_path,
                "file_type": f.file_type.value,
                "page_count": f.page_count,
                "uploaded_at": utc_now().isoformat(),
            }
            for f in files
        ]
        if not payload:
            return []

        rows = execute_query(
            self.client.table(_FILES_TABLE).insert(payload),
            "create order files",
        )
        return [_row_to_file(row) for row in rows]

    def get_order(self, order_id: str, include_files: bool = True) -> Optional[Order]:
        rows = execute_query(
            self.client.table(_ORDERS_TABLE).select("*").eq("id", order_id).limit(1),
            "fetch order",
        )
        if not rows:
            return None

        files = self.list_files(order_id) if include_files else None
        return _row_to_order(rows[0], files)

    def list_files(self, order_id: str) -> List[OrderFile]:
        rows = execute_query(
            self.client.table(_FILES_TABLE).select("*").eq("order_id", order_id),
            "fetch order files",
        )
        return [_row_to_file(row) for row in rows]

    def update_order(self, order_id: str, fields: Mapping[str, Any]) -> Optional[Order]:
        """Apply an unconditional field update. Returns None if the order does not exist."""

        payload = dict(fields)
        payload["updated_at"] = utc_now().isoformat()

        rows = execute_query(
            self.client.table(_ORDERS_TABLE).update(payload).eq("id", order_id),
            "update order",
        )
        return _row_to_order(rows[0]) if rows else None

    def _update_unless_paid(self, order_id: str, fields: Mapping[str, Any], action: str) -> Optional[Order]:
        payload = dict(fields)
        payload["updated_at"] = utc_now().isoformat()

        rows = execute_query(
            self.client.table(_ORDERS_TABLE)
            .update(payload)
            .eq("id", order_id)
            .neq("payment_status", PaymentStatus.PAID.value),
            action,
        )
        return _row_to_order(rows[0]) if rows else None

    def mark_payment_pending(self, order_id: str, reference: str) -> Optional[Order]:
        """
        Store the gateway reference and set payment_status=pending.

        Returns None if the order is missing or already paid.
        """
        return self._update_unless_paid(
            order_id,
            {"payment_status": PaymentStatus.PENDING.value, "duitku_reference": reference},
            "mark order payment pending",
        )

    def mark_paid(self, order_id: str, reference: str) -> Optional[Order]:
        """
        Apply the paid transition: payment_status=paid, and status=processing
        if the order is still payment_pending. A status an admin already moved
        further is left alone.

        Returns the updated order, or None if the order is missing or was
        already paid (the transition is applied at most once).
        """
        order = self._update_unless_paid(
            order_id,
            {
                "payment_status": PaymentStatus.PAID.value,
                "duitku_reference": reference,
            },
            "mark order paid",
        )
        if order is None or order.status is not OrderStatus.PAYMENT_PENDING:
            return order

        rows = execute_query(
            self.client.table(_ORDERS_TABLE)
            .update({"status": OrderStatus.PROCESSING.value, "updated_at": utc_now().isoformat()})
            .eq("id", order_id)
            .eq("status", OrderStatus.PAYMENT_PENDING.value),
            "start processing paid order",
        )
        if rows:
            return _row_to_order(rows[0])
        return self.get_order(order_id, include_files=False) or order

    def add_timeline_entry(self, order_id: str, status: OrderStatus, notes: Optional[str] = None) -> None:
        execute_query(
            self.client.table(_TIMELINE_TABLE).insert({
                "order_id": order_id,
                "status": status.value,
                "notes": notes,
                "created_at": utc_now().isoformat(),
            }),
            "record order timeline",
        )


__all__ = ["OrderRepository"]
