"""
Order capture API endpoints.

POST  /api/order               — capture images → one order row
GET   /api/orders/{id}         — get one captured order
POST  /api/orders/status       — bulk moderation status update
PATCH /api/orders/flag         — flag / unflag an order for review
PATCH /api/orders/{id}         — administrative correction of OCR fields
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promo_capture.config import settings
from promo_capture.database import get_db
from promo_capture.models import CapturedOrderModel, PromoterModel
from promo_capture.pipeline import CaptureRejected, UploadedImage, capture_order
from promo_capture.pipeline.extractor import VisionExtractor, get_extractor
from promo_capture.pipeline.validation import clean_order_id, order_exists
from promo_capture.schemas import (
    ApiMessage,
    CaptureForm,
    CaptureResponse,
    CapturedOrder,
    EntryType,
    OrderFlagRequest,
    OrderStatusUpdateRequest,
    OrderUpdateRequest,
)
from promo_capture.security import get_current_promoter, require_app_version, verify_api_key
from promo_capture.services.storage import BlobStore, get_blob_store

logger = logging.getLogger(__name__)
router = APIRouter()


def _reject(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


# ── POST /api/order ──────────────────────────────────────────────────────
@router.post(
    "/order",
    response_model=CaptureResponse,
    dependencies=[Depends(require_app_version)],
)
def create_order(
    entry_type: EntryType = Form(..., alias="entryType"),
    images: Optional[List[UploadFile]] = File(None),
    promoter_id: Optional[str] = Form(None, alias="promoterId"),
    project_id: Optional[str] = Form(None, alias="projectId"),
    brand_id: Optional[str] = Form(None, alias="brandId"),
    activity_loc_id: Optional[str] = Form(None, alias="activityLocId"),
    activity_id: Optional[str] = Form(None, alias="activityId"),
    vendor_id: Optional[str] = Form(None, alias="vendorId"),
    device_info: Optional[str] = Form(None, alias="deviceInfo"),
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    promoter: PromoterModel = Depends(get_current_promoter),
    db: Session = Depends(get_db),
    extractor: VisionExtractor = Depends(get_extractor),
    store: BlobStore = Depends(get_blob_store),
):
    if not images:
        return _reject("No images uploaded")
    if len(images) > settings.MAX_UPLOAD_IMAGES:
        return _reject(f"At most {settings.MAX_UPLOAD_IMAGES} images are allowed")

    form = CaptureForm(
        entry_type=entry_type,
        promoter_id=promoter_id,
        project_id=project_id,
        brand_id=brand_id,
        activity_loc_id=activity_loc_id,
        activity_id=activity_id,
        vendor_id=vendor_id,
        device_info=device_info,
        name=name,
        phone=phone,
        latitude=latitude,
        longitude=longitude,
        location=location,
    )
    logger.info(
        "Capture: promoter=%s entry=%s project=%s images=%d",
        promoter.id, entry_type.value, project_id, len(images),
    )

    try:
        uploads = [
            UploadedImage(
                filename=image.filename or "image",
                data=image.file.read(),
                content_type=image.content_type,
            )
            for image in images
        ]
        record = capture_order(db, form, uploads, extractor, store)
    except CaptureRejected as e:
        logger.info("Capture rejected: %s", e.message)
        return _reject(e.message, e.status_code)
    except Exception:
        logger.exception("Capture failed")
        return _reject("Processing failed", 500)

    return CaptureResponse(
        success=True,
        message="Images processed and data saved",
        data=CapturedOrder.model_validate(record),
    )


# ── POST /api/orders/status ──────────────────────────────────────────────
@router.post(
    "/orders/status",
    response_model=ApiMessage,
    dependencies=[Depends(verify_api_key)],
)
def update_order_status(req: OrderStatusUpdateRequest, db: Session = Depends(get_db)):
    if not req.orders:
        raise HTTPException(status_code=400, detail="Invalid request. Provide an array of orders.")

    updated = 0
    for item in req.orders:
        if not (item.id or item.order_id) or not item.status:
            continue
        conditions = []
        if item.id:
            conditions.append(CapturedOrderModel.id == item.id)
        if item.order_id:
            conditions.append(CapturedOrderModel.order_id == item.order_id)
        updated += (
            db.query(CapturedOrderModel)
            .filter(or_(*conditions))
            .update({CapturedOrderModel.status: item.status}, synchronize_session=False)
        )
    db.commit()
    logger.info("Updated status on %d orders", updated)
    return ApiMessage(success=True, message=f"Updated {updated} orders successfully.")


# ── PATCH /api/orders/flag ───────────────────────────────────────────────
@router.patch(
    "/orders/flag",
    response_model=CaptureResponse,
    dependencies=[Depends(require_app_version), Depends(verify_api_key)],
)
def update_order_flag(
    req: OrderFlagRequest,
    promoter: PromoterModel = Depends(get_current_promoter),
    db: Session = Depends(get_db),
):
    row = db.get(CapturedOrderModel, req.id)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    row.is_flagged = req.is_flagged
    db.commit()
    logger.info("Promoter %s set flag=%s on order %s", promoter.id, req.is_flagged, req.id)
    return CaptureResponse(
        success=True,
        message="Updated orders flag successfully.",
        data=CapturedOrder.model_validate(row),
    )


# ── GET /api/orders/{order_pk} ───────────────────────────────────────────
@router.get(
    "/orders/{order_pk}",
    response_model=CapturedOrder,
    dependencies=[Depends(verify_api_key)],
)
def get_order(order_pk: str, db: Session = Depends(get_db)):
    row = db.get(CapturedOrderModel, order_pk)
    if not row:
        logger.warning("Order not found: %s", order_pk)
        raise HTTPException(status_code=404, detail="Order not found")
    return CapturedOrder.model_validate(row)


# ── PATCH /api/orders/{order_pk} ─────────────────────────────────────────
@router.patch(
    "/orders/{order_pk}",
    response_model=CaptureResponse,
    dependencies=[Depends(verify_api_key)],
)
def update_order(order_pk: str, req: OrderUpdateRequest, db: Session = Depends(get_db)):
    row = db.get(CapturedOrderModel, order_pk)
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")

    changes = req.model_dump(exclude_unset=True)
    if "order_id" in changes:
        changes["order_id"] = clean_order_id(changes["order_id"])
        new_id = changes["order_id"]
        if new_id and order_exists(db, new_id, row.project_id, exclude_id=row.id):
            return _reject("Order ID already exists")

    for key, value in changes.items():
        setattr(row, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return _reject("Order ID already exists")
    logger.info("Corrected order %s: %s", order_pk, sorted(changes))
    return CaptureResponse(
        success=True,
        message="Updated orders successfully.",
        data=CapturedOrder.model_validate(row),
    )
