"""
Promoter login schemas
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class SendOtpRequest(BaseModel):
    phone: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    phone: Optional[str] = None
    otp: Optional[str] = None


class PromoterSummary(BaseModel):
    id: str
    phone: str
    status: str


class VerifyOtpResponse(BaseModel):
    success: bool = True
    message: str = "OTP verified successfully."
    token: str
    promoter: PromoterSummary
