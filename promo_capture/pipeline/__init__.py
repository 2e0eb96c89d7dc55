"""
Order capture pipeline.

Orchestrates, per image: extract → overlay → upload → classify; then
validate the batch, dedup against the store and insert exactly one row.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promo_capture.models import BrandModel, CapturedOrderModel
from promo_capture.pipeline.classifier import CaptureBatch
from promo_capture.pipeline.extractor import VisionExtractor
from promo_capture.pipeline.overlay import add_overlay
from promo_capture.pipeline.validation import (
    ORDER_EXISTS,
    CaptureRejected,
    clean_order_id,
    parse_amount,
    validate_batch,
)
from promo_capture.schemas import CaptureForm
from promo_capture.services.auth import touch_promoter
from promo_capture.services.storage import BlobStore

logger = logging.getLogger(__name__)

__all__ = ["BlobLease", "CaptureRejected", "UploadedImage", "capture_order"]


@dataclass
class UploadedImage:
    filename: str
    data: bytes
    content_type: Optional[str] = None


class BlobLease:
    """Blobs uploaded for one request.

    On exit every blob that was not explicitly kept is deleted, so a rejected
    or failed capture leaves nothing behind in the store.
    """

    def __init__(self, store: BlobStore):
        self.store = store
        self._names: dict[str, str] = {}  # url -> blob name
        self._kept: set[str] = set()

    def upload(self, name: str, data: bytes, content_type: str = "image/png") -> str:
        url = self.store.upload(name, data, content_type)
        self._names[url] = name
        return url

    def keep(self, urls: Iterable[str]) -> None:
        self._kept.update(urls)

    def release(self) -> list[str]:
        released: list[str] = []
        for url, name in self._names.items():
            if url in self._kept:
                continue
            try:
                self.store.delete(name)
                released.append(name)
            except Exception as e:
                logger.warning("Could not delete orphaned blob %s: %s", name, e)
        self._names.clear()
        return released

    def __enter__(self) -> "BlobLease":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        released = self.release()
        if released:
            logger.info("Released %d unreferenced blobs", len(released))
        return False


def blob_name(filename: str) -> str:
    return f"uploads/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{filename}"


def resolve_prompt(db: Session, brand_id: Optional[str]) -> Optional[str]:
    if not brand_id:
        return None
    brand = db.get(BrandModel, brand_id)
    return brand.ocr_prompt if brand and brand.ocr_prompt else None


def build_record(form: CaptureForm, batch: CaptureBatch) -> CapturedOrderModel:
    profile = batch.profile_data or {}
    order = batch.order_data or {}
    placed = order.get("orderPlaced")
    address = order.get("deliveryAddress")
    # the phone is stored exactly as dedup compared it; typed values fill gaps
    return CapturedOrderModel(
        id=str(uuid.uuid4()),
        customer_name=profile.get("name") or form.name,
        customer_phone=batch.profile_phone or form.phone,
        promoter_id=form.promoter_id,
        project_id=form.project_id,
        activity_loc_id=form.activity_loc_id,
        activity_id=form.activity_id,
        vendor_id=form.vendor_id,
        device_info=form.device_info,
        order_image=batch.order_url,
        profile_image=batch.profile_url,
        order_history_image=batch.history_url,
        order_id=clean_order_id(order.get("orderId")),
        order_address=str(address) if address is not None else None,
        cashback_amount=parse_amount(order.get("promoVoucher")),
        order_placed_at=str(placed) if placed is not None else None,
        status="PENDING",
        is_flagged=False,
        latitude=form.latitude,
        longitude=form.longitude,
        location=form.location,
    )


def capture_order(
    db: Session,
    form: CaptureForm,
    images: list[UploadedImage],
    extractor: VisionExtractor,
    store: BlobStore,
) -> CapturedOrderModel:
    """Run the capture workflow and return the stored row.

    Raises ``CaptureRejected`` for anything the client should fix.
    """
    if not images:
        raise CaptureRejected("No images uploaded")

    prompt = resolve_prompt(db, form.brand_id or form.vendor_id)
    batch = CaptureBatch()

    with BlobLease(store) as lease:
        for image in images:
            result = extractor.extract(image.data, prompt, image.content_type)
            stamped = add_overlay(image.data, form.latitude, form.longitude, form.location)
            url = lease.upload(blob_name(image.filename), stamped, "image/png")
            kind = batch.add(result, url)
            logger.info("Image %s classified as %s", image.filename, kind.value)

        validate_batch(db, form.entry_type, batch, form.project_id)

        record = build_record(form, batch)
        db.add(record)
        if form.promoter_id:
            touch_promoter(db, form.promoter_id)
        try:
            db.commit()
        except IntegrityError:
            # another request stored the same order id between check and insert
            db.rollback()
            logger.warning("Unique constraint hit for order %s", record.order_id)
            raise CaptureRejected(ORDER_EXISTS)
        lease.keep(record.blob_urls())

    logger.info(
        "Stored capture %s (entry=%s, order=%s, project=%s)",
        record.id, form.entry_type.value, record.order_id, record.project_id,
    )
    return record
