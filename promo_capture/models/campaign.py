"""
Campaign entities read by the capture and auth workflows
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint

from promo_capture.database import Base


class BrandModel(Base):
    """Brand running the campaign; carries its own OCR prompt"""
    __tablename__ = "brands"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    ocr_prompt = Column(Text)
    status = Column(String, nullable=False, default="ACTIVE")  # ACTIVE, INACTIVE
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    brand_id = Column(String, index=True)
    status = Column(String, nullable=False, default="ACTIVE")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PromoterModel(Base):
    """Field promoter; logs in by OTP and holds one session token"""
    __tablename__ = "promoters"

    id = Column(String, primary_key=True)
    name = Column(String)
    phone = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False, default="ACTIVE")
    otp = Column(String)
    otp_expires_at = Column(DateTime)
    session_token = Column(Text, index=True)
    last_active = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ProjectPromoterModel(Base):
    __tablename__ = "project_promoters"
    __table_args__ = (
        UniqueConstraint("project_id", "promoter_id", name="uq_project_promoter"),
    )

    id = Column(String, primary_key=True)
    project_id = Column(String, nullable=False, index=True)
    promoter_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
