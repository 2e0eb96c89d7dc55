"""
MSG91 SMS gateway client.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from promo_capture.config import settings

logger = logging.getLogger(__name__)


class SmsDeliveryError(RuntimeError):
    pass


class SmsGateway:
    def __init__(
        self,
        auth_key: str,
        sender_id: str,
        template_id: str,
        country_code: str = "91",
        api_url: str = "https://api.msg91.com/api/v2/sendsms",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.auth_key = auth_key
        self.sender_id = sender_id
        self.template_id = template_id
        self.country_code = country_code
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(self, phone: str, message: str) -> dict[str, Any]:
        return {
            "sender": self.sender_id,
            "route": "4",
            "DLT_TE_ID": self.template_id,
            "sms": [{"message": message, "to": [f"{self.country_code}{phone}"]}],
        }

    def send(self, phone: str, message: str) -> dict:
        headers = {"Content-Type": "application/json", "authkey": self.auth_key}
        try:
            resp = self.session.post(
                self.api_url,
                json=self.build_payload(phone, message),
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("SMS delivery to %s failed: %s", phone, e)
            raise SmsDeliveryError("Failed to send SMS") from e
        logger.info("SMS sent to %s", phone)
        try:
            return resp.json()
        except ValueError:
            return {"raw": resp.text}


_gateway: Optional[SmsGateway] = None


def get_sms_gateway() -> SmsGateway:
    global _gateway
    if _gateway is None:
        _gateway = SmsGateway(
            auth_key=settings.SMS_AUTH_KEY,
            sender_id=settings.SMS_SENDER_ID,
            template_id=settings.SMS_TEMPLATE_ID,
            country_code=settings.SMS_COUNTRY_CODE,
            api_url=settings.SMS_API_URL,
        )
    return _gateway
