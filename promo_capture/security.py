"""
Request guards shared by the routers.
"""
from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from promo_capture.config import settings
from promo_capture.database import get_db
from promo_capture.models import PromoterModel
from promo_capture.services.auth import decode_session_token

logger = logging.getLogger(__name__)


def require_app_version(x_app_version: Optional[str] = Header(None)) -> None:
    if x_app_version != settings.MIN_APP_VERSION:
        raise HTTPException(status_code=426, detail="Please update your app to continue")


def verify_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    if not x_api_key or x_api_key != settings.API_KEY:
        raise HTTPException(status_code=403, detail="Unauthorized request. Invalid API Key.")


def get_current_promoter(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> PromoterModel:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")
    token = authorization.split(" ", 1)[1].strip()

    promoter = (
        db.query(PromoterModel).filter(PromoterModel.session_token == token).first()
    )
    if promoter is None:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")

    try:
        claims = decode_session_token(token)
    except jwt.PyJWTError as e:
        logger.info("Rejected session for promoter %s: %s", promoter.id, e)
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid session")
    if claims.get("id") != promoter.id:
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid session")
    return promoter
