"""
Promoter login endpoints.

POST /api/auth/send-otp    — text a one-time code to a registered promoter
POST /api/auth/verify-otp  — exchange the code for a session token
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from promo_capture.database import get_db
from promo_capture.schemas import (
    ApiMessage,
    PromoterSummary,
    SendOtpRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from promo_capture.services.auth import AuthError, request_otp, verify_otp
from promo_capture.services.sms import SmsDeliveryError, SmsGateway, get_sms_gateway

logger = logging.getLogger(__name__)
router = APIRouter()


# ── POST /api/auth/send-otp ──────────────────────────────────────────────
@router.post("/auth/send-otp", response_model=ApiMessage)
def send_otp(
    req: SendOtpRequest,
    db: Session = Depends(get_db),
    gateway: SmsGateway = Depends(get_sms_gateway),
):
    try:
        request_otp(db, req.phone, gateway)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except SmsDeliveryError:
        raise HTTPException(status_code=500, detail="Failed to send OTP")
    return ApiMessage(success=True, message="OTP sent successfully")


# ── POST /api/auth/verify-otp ────────────────────────────────────────────
@router.post("/auth/verify-otp", response_model=VerifyOtpResponse)
def verify(req: VerifyOtpRequest, db: Session = Depends(get_db)):
    try:
        token, promoter = verify_otp(db, req.phone, req.otp)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return VerifyOtpResponse(
        token=token,
        promoter=PromoterSummary(id=promoter.id, phone=promoter.phone, status=promoter.status),
    )
