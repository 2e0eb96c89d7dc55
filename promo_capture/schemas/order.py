"""
Order capture request / response schemas.

The mobile app and the admin panel speak camelCase; models are populated by
field name internally and serialised by alias.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class EntryType(str, Enum):
    ORDER = "order"
    SIGNUP = "signup"
    BOTH = "both"


OrderStatus = Literal["PENDING", "APPROVED", "REJECTED"]


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------

class CaptureForm(CamelModel):
    """Non-file form fields of ``POST /api/order``."""
    entry_type: EntryType
    promoter_id: Optional[str] = None
    project_id: Optional[str] = None
    brand_id: Optional[str] = None
    activity_loc_id: Optional[str] = None
    activity_id: Optional[str] = None
    vendor_id: Optional[str] = None
    device_info: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    location: Optional[str] = None


class CapturedOrder(CamelModel):
    id: str
    order_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    vendor_id: Optional[str] = None
    promoter_id: Optional[str] = None
    project_id: Optional[str] = None
    activity_id: Optional[str] = None
    activity_loc_id: Optional[str] = None
    order_address: Optional[str] = None
    cashback_amount: Optional[float] = None
    order_placed_at: Optional[str] = None
    order_image: Optional[str] = None
    profile_image: Optional[str] = None
    order_history_image: Optional[str] = None
    status: str = "PENDING"
    is_flagged: bool = False
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    location: Optional[str] = None
    device_info: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ApiMessage(BaseModel):
    success: bool
    message: str


class CaptureResponse(ApiMessage):
    data: Optional[CapturedOrder] = None


# ---------------------------------------------------------------------------
# Administrative actions
# ---------------------------------------------------------------------------

class OrderStatusItem(CamelModel):
    id: Optional[str] = None
    order_id: Optional[str] = None
    status: Optional[OrderStatus] = None


class OrderStatusUpdateRequest(BaseModel):
    orders: list[OrderStatusItem] = Field(default_factory=list)


class OrderFlagRequest(CamelModel):
    id: str
    is_flagged: bool


class OrderUpdateRequest(CamelModel):
    order_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    order_address: Optional[str] = None
    order_placed_at: Optional[str] = None
    cashback_amount: Optional[float] = None
