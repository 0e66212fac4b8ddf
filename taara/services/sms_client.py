"""Client for the SMS relay backend.

The relay is a separate process that forwards text messages to the SMS
provider. Every call here is fire-and-forget relative to the request
lifecycle: failures are logged and reported as ``False``, never raised.
"""
import logging
from typing import Any, Optional

import httpx

from taara.config import settings

logger = logging.getLogger(__name__)


class SmsClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, body: dict[str, Any]) -> bool:
        try:
            resp = self._client.post(path, json=body)
            resp.raise_for_status()
            result = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("SMS relay call %s failed: %s", path, exc)
            return False

        if not isinstance(result, dict):
            logger.warning("SMS relay returned an unexpected body for %s: %r", path, result)
            return False
        if not result.get("success", False):
            logger.warning("SMS relay rejected %s: %s", path, result.get("error") or result.get("message"))
            return False
        logger.info("SMS relay accepted %s", path)
        return True

    def send_adoption_notification(
        self, owner_phone: str, pet_name: str, adopter_name: str, adopter_contact: str, adoption_id: str,
    ) -> bool:
        """Tell the shelter owner that a new adoption request arrived."""
        return self._post("/api/sms/adoption-notification", {
            "ownerPhone": owner_phone,
            "petName": pet_name,
            "adopterName": adopter_name,
            "adopterContact": adopter_contact,
            "adoptionId": adoption_id,
        })

    def send_approval_notification(self, phone_number: str, pet_name: str, organization_name: str) -> bool:
        return self._post("/api/sms/approval-notification", {
            "phoneNumber": phone_number,
            "petName": pet_name,
            "organizationName": organization_name,
        })

    def send_rejection_notification(
        self, phone_number: str, pet_name: str, organization_name: str, reason: str,
    ) -> bool:
        return self._post("/api/sms/rejection-notification", {
            "phoneNumber": phone_number,
            "petName": pet_name,
            "organizationName": organization_name,
            "reason": reason,
        })

    def balance(self) -> Optional[dict[str, Any]]:
        try:
            resp = self._client.get("/api/sms/balance")
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("SMS relay balance check failed: %s", exc)
            return None


def build_sms_client() -> Optional[SmsClient]:
    """Return a client for the configured relay, or None when SMS is disabled."""
    if not settings.SMS_RELAY_URL:
        return None
    return SmsClient(settings.SMS_RELAY_URL, timeout=settings.SMS_TIMEOUT_SECONDS)
