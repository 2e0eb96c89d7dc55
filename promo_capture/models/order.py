"""
Captured order model
"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, String, Text, UniqueConstraint

from promo_capture.database import Base

ORDER_STATUSES = ("PENDING", "APPROVED", "REJECTED")


class CapturedOrderModel(Base):
    """An order (or customer signup) captured by a promoter in the field"""
    __tablename__ = "captured_orders"
    __table_args__ = (
        # NULL project ids are distinct in SQL, so project-less rows rely on the lookup only
        UniqueConstraint("project_id", "order_id", name="uq_captured_orders_project_order"),
    )

    id = Column(String, primary_key=True)
    order_id = Column(String, index=True)  # from OCR, nullable
    customer_name = Column(String)
    customer_phone = Column(String, index=True)

    # Weak references to independently managed entities
    vendor_id = Column(String, index=True)
    promoter_id = Column(String, index=True)
    project_id = Column(String, index=True)
    activity_id = Column(String)
    activity_loc_id = Column(String, index=True)

    # OCR payload
    order_address = Column(Text)
    cashback_amount = Column(Float)
    order_placed_at = Column(String)  # free text as printed on the receipt

    # Stored artifacts
    order_image = Column(String)
    profile_image = Column(String)
    order_history_image = Column(String)

    status = Column(String, nullable=False, default="PENDING")  # PENDING, APPROVED, REJECTED
    is_flagged = Column(Boolean, nullable=False, default=False)
    latitude = Column(String)
    longitude = Column(String)
    location = Column(Text)
    device_info = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def blob_urls(self) -> set[str]:
        return {u for u in (self.order_image, self.profile_image, self.order_history_image) if u}
