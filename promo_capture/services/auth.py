"""
Promoter OTP login and session tokens.

A promoter holds at most one live session: verifying an OTP stores the issued
JWT on the promoter row, and requests are only accepted while the token both
verifies and matches that stored value.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import jwt
from sqlalchemy.orm import Session

from promo_capture.config import settings
from promo_capture.models import ProjectPromoterModel, PromoterModel
from promo_capture.services.sms import SmsGateway

logger = logging.getLogger(__name__)

OTP_MESSAGE = (
    "Hello, Your OTP for logging into CYNQ is {otp}. "
    "Please do not share OTP with anyone."
)


class AuthError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def generate_otp() -> str:
    return f"{secrets.randbelow(10**6):06d}"


def create_session_token(promoter: PromoterModel, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    payload = {
        "id": promoter.id,
        "phone": promoter.phone,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> dict:
    """Raises ``jwt.PyJWTError`` on a bad signature or expired token."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def touch_promoter(db: Session, promoter_id: str, now: Optional[datetime] = None) -> bool:
    promoter = db.get(PromoterModel, promoter_id)
    if promoter is None:
        logger.warning("Promoter %s not found, last_active not refreshed", promoter_id)
        return False
    promoter.last_active = now or datetime.utcnow()
    return True


def request_otp(
    db: Session,
    phone: Optional[str],
    gateway: SmsGateway,
    now: Optional[datetime] = None,
) -> None:
    if not phone:
        raise AuthError("Phone number is required", 400)

    promoter = db.query(PromoterModel).filter(PromoterModel.phone == phone).first()
    if promoter is None:
        raise AuthError("User not found with this phone number", 404)
    if promoter.status != "ACTIVE":
        raise AuthError("User is not active", 403)

    assigned = (
        db.query(ProjectPromoterModel)
        .filter(ProjectPromoterModel.promoter_id == promoter.id)
        .count()
    )
    if not assigned:
        raise AuthError("User is not assigned to any project", 403)

    now = now or datetime.utcnow()
    otp = generate_otp()
    promoter.otp = otp
    promoter.otp_expires_at = now + timedelta(seconds=settings.OTP_TTL_SECONDS)
    db.commit()

    gateway.send(phone, OTP_MESSAGE.format(otp=otp))
    logger.info("OTP issued for promoter %s", promoter.id)


def verify_otp(
    db: Session,
    phone: Optional[str],
    otp: Optional[str],
    now: Optional[datetime] = None,
) -> tuple[str, PromoterModel]:
    """Return ``(token, promoter)`` after a successful OTP check."""
    if not phone or not otp:
        raise AuthError("Phone and OTP are required.", 400)

    promoter = db.query(PromoterModel).filter(PromoterModel.phone == phone).first()
    if promoter is None or promoter.otp != otp:
        raise AuthError("Invalid OTP.", 400)

    now = now or datetime.utcnow()
    if promoter.otp_expires_at is None or now > promoter.otp_expires_at:
        raise AuthError("OTP expired. Please request a new one.", 400)

    token = create_session_token(promoter, now)
    promoter.otp = None
    promoter.otp_expires_at = None
    promoter.last_active = now
    promoter.session_token = token
    db.commit()
    logger.info("Promoter %s logged in", promoter.id)
    return token, promoter


def clear_session_tokens(db: Session) -> int:
    """Log every promoter out; meant to run nightly."""
    count = (
        db.query(PromoterModel)
        .filter(PromoterModel.session_token.isnot(None))
        .update({PromoterModel.session_token: None}, synchronize_session=False)
    )
    db.commit()
    logger.info("Cleared %d promoter session tokens", count)
    return count
