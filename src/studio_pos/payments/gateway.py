from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from ..core.enums import PaymentStatus
from ..core.exceptions import UpstreamError
from .model import PaymentConfirmation
from .pricing import from_cents

logger = logging.getLogger(__name__)

SQUARE_HOSTS = {
    "production": "https://connect.squareup.com",
    "sandbox": "https://connect.squareupsandbox.com",
}
SQUARE_API_VERSION = "2024-01-18"
REQUEST_TIMEOUT_SECONDS = 15


class PaymentGateway(Protocol):
    def charge(
        self,
        *,
        source_id: str,
        amount_cents: int,
        tip_cents: int,
        idempotency_key: str,
        note: str,
        buyer_email: Optional[str] = None,
    ) -> PaymentConfirmation:
        """Charge ``amount_cents + tip_cents``.

        Declines come back as a failed confirmation; transport problems raise
        ``UpstreamError``.
        """

        raise NotImplementedError


class SquarePaymentGateway(PaymentGateway):
    """Square Payments API over plain HTTPS."""

    def __init__(
        self,
        *,
        access_token: str,
        location_id: str,
        environment: str = "sandbox",
        session: Optional[requests.Session] = None,
    ):
        self._access_token = access_token
        self._location_id = location_id
        self._base_url = SQUARE_HOSTS.get(environment, SQUARE_HOSTS["sandbox"])
        self._session = session or requests.Session()

    def charge(
        self,
        *,
        source_id: str,
        amount_cents: int,
        tip_cents: int,
        idempotency_key: str,
        note: str,
        buyer_email: Optional[str] = None,
    ) -> PaymentConfirmation:
        body = {
            "source_id": source_id,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": int(amount_cents) + int(tip_cents), "currency": "USD"},
            "location_id": self._location_id,
            "note": note,
        }
        if tip_cents > 0:
            body["tip_money"] = {"amount": int(tip_cents), "currency": "USD"}
        if buyer_email:
            body["buyer_email_address"] = buyer_email

        try:
            resp = self._session.post(
                f"{self._base_url}/v2/payments",
                json=body,
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Square-Version": SQUARE_API_VERSION,
                    "Content-Type": "application/json",
                },
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error("Square request failed: %s", e)
            raise UpstreamError("Payment gateway unreachable") from e

        if resp.status_code >= 500:
            logger.error("Square returned %s: %s", resp.status_code, resp.text[:500])
            raise UpstreamError("Payment gateway error")

        data = resp.json()
        payment = data.get("payment") or {}
        if resp.status_code >= 400 or payment.get("status") != "COMPLETED":
            errors = data.get("errors") or []
            detail = errors[0].get("detail") if errors else "Payment was not completed"
            logger.warning("Square payment not completed: %s", detail)
            return PaymentConfirmation(
                payment_id=payment.get("id"),
                status=PaymentStatus.FAILED,
                amount_paid=from_cents(0),
                error=detail,
            )

        logger.info("Square payment %s completed", payment.get("id"))
        return PaymentConfirmation(
            payment_id=payment["id"],
            status=PaymentStatus.COMPLETED,
            amount_paid=from_cents(amount_cents),
            tip_amount=from_cents(tip_cents),
            receipt_url=payment.get("receipt_url"),
        )
