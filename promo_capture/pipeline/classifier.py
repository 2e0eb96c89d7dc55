"""
Per-image classification of extraction results.

Each request has one slot per kind (order, profile, history). The first image
that qualifies for a slot keeps it; later images of an already filled kind are
discarded so their blobs can be cleaned up.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ImageKind(str, Enum):
    ORDER = "order"
    PROFILE = "profile"
    HISTORY = "history"


# Values the model emits when it copies the schema instead of reading the image
PLACEHOLDER_ORDER_IDS = frozenset({"", "N/A", "string"})


def clean_order_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text in PLACEHOLDER_ORDER_IDS:
        return None
    return text


def classify(result: dict[str, Any]) -> ImageKind:
    # a placeholder id never claims the order slot
    if clean_order_id(result.get("orderId")):
        return ImageKind.ORDER
    if result.get("phone"):
        return ImageKind.PROFILE
    return ImageKind.HISTORY


def _profile_from_order(result: dict[str, Any]) -> Optional[dict[str, Any]]:
    name = result.get("customerName")
    phone = result.get("customerPhone")
    if not name and not phone:
        return None
    return {"name": name, "phone": phone}


@dataclass
class CaptureBatch:
    order_data: Optional[dict[str, Any]] = None
    order_url: Optional[str] = None
    profile_data: Optional[dict[str, Any]] = None
    profile_url: Optional[str] = None
    history_url: Optional[str] = None
    discarded_urls: list[str] = field(default_factory=list)

    def add(self, result: dict[str, Any], url: str) -> ImageKind:
        kind = classify(result)

        if kind is ImageKind.ORDER:
            if self.order_data is not None:
                self._discard(kind, url)
                return kind
            self.order_data = result
            self.order_url = url
            if self.profile_data is None:
                self.profile_data = _profile_from_order(result)

        elif kind is ImageKind.PROFILE:
            if self.profile_url is not None:
                self._discard(kind, url)
                return kind
            # a real profile image outranks identity printed on the receipt
            self.profile_data = result
            self.profile_url = url

        else:
            if self.history_url is not None:
                self._discard(kind, url)
                return kind
            self.history_url = url

        return kind

    def _discard(self, kind: ImageKind, url: str) -> None:
        logger.info("Discarding extra %s image %s", kind.value, url)
        self.discarded_urls.append(url)

    @property
    def profile_phone(self) -> str:
        if not self.profile_data:
            return ""
        return str(self.profile_data.get("phone") or "").strip()
