"""
Completeness and duplicate checks for a capture batch.

Dedup policy, identical on every branch:
  * a valid extracted order id must not already exist in scope;
  * an OCR-derived profile phone must not already exist in scope;
  * the raw phone typed into the form never takes part in dedup.
Scope is the request's project id when given, every row otherwise.
"""
from __future__ import annotations

import re
from typing import Any, Optional

from sqlalchemy.orm import Query, Session

from promo_capture.models import CapturedOrderModel
from promo_capture.pipeline.classifier import CaptureBatch, clean_order_id
from promo_capture.schemas import EntryType

ORDER_EXISTS = "Order already exists"
PHONE_EXISTS = "This customer phone number already exists."

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class CaptureRejected(Exception):
    """Client-visible rejection of a capture request."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_amount(value: Any) -> Optional[float]:
    """Leading number of an OCR'd amount ("₹1,250.50" -> 1250.5), always positive."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return abs(float(value))
    match = _NUMBER_RE.search(str(value).replace(",", ""))
    if not match:
        return None
    return abs(float(match.group()))


def check_completeness(entry_type: EntryType, batch: CaptureBatch) -> None:
    order_id = clean_order_id((batch.order_data or {}).get("orderId"))
    phone = batch.profile_phone

    if entry_type is EntryType.ORDER and not order_id:
        raise CaptureRejected("Order Image is required")

    if entry_type is EntryType.SIGNUP and not phone:
        raise CaptureRejected("Profile Image is required")

    if entry_type is EntryType.BOTH:
        if not batch.order_url or not batch.profile_url:
            raise CaptureRejected("Both Order and Profile images are required")
        if not order_id:
            raise CaptureRejected("Valid Order Image is required")
        if not phone:
            raise CaptureRejected("Valid Profile Image with Phone number is required")


def _in_scope(query: Query, project_id: Optional[str]) -> Query:
    if project_id:
        query = query.filter(CapturedOrderModel.project_id == project_id)
    return query


def order_exists(
    db: Session,
    order_id: str,
    project_id: Optional[str],
    exclude_id: Optional[str] = None,
) -> bool:
    query = _in_scope(
        db.query(CapturedOrderModel.id).filter(CapturedOrderModel.order_id == order_id),
        project_id,
    )
    if exclude_id:
        query = query.filter(CapturedOrderModel.id != exclude_id)
    return query.first() is not None


def phone_exists(db: Session, phone: str, project_id: Optional[str]) -> bool:
    query = _in_scope(
        db.query(CapturedOrderModel.id).filter(CapturedOrderModel.customer_phone == phone),
        project_id,
    )
    return query.first() is not None


def check_duplicates(db: Session, batch: CaptureBatch, project_id: Optional[str]) -> None:
    order_id = clean_order_id((batch.order_data or {}).get("orderId"))
    if order_id and order_exists(db, order_id, project_id):
        raise CaptureRejected(ORDER_EXISTS)

    phone = batch.profile_phone
    if phone and phone_exists(db, phone, project_id):
        raise CaptureRejected(PHONE_EXISTS)


def validate_batch(
    db: Session,
    entry_type: EntryType,
    batch: CaptureBatch,
    project_id: Optional[str],
) -> None:
    check_completeness(entry_type, batch)
    check_duplicates(db, batch, project_id)
