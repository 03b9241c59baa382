import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class TossPaymentError(Exception):
    """The gateway declined the confirmation."""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class TossUnavailable(Exception):
    """The gateway could not be reached or answered garbage."""


async def confirm_payment(
    secret_key: str,
    payment_key: str,
    order_id: str,
    amount: int,
    *,
    url: str,
    timeout: float = 10,
) -> dict[str, Any]:
    """Confirm an authorised card payment and return the gateway's payment object.

    The secret key is sent as the HTTP Basic user name with an empty password.
    """
    payload = {"paymentKey": payment_key, "orderId": order_id, "amount": amount}
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                url, json=payload, auth=(secret_key, ""), timeout=timeout
            )
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.error("Toss confirm request failed: %s", exc)
        raise TossUnavailable("payment gateway unavailable") from exc
    except ValueError as exc:
        logger.error("Toss confirm response parsing failed: %s", exc)
        raise TossUnavailable("invalid gateway response") from exc

    if resp.is_error:
        code = data.get("code") if isinstance(data, dict) else None
        message = data.get("message") if isinstance(data, dict) else None
        logger.warning("Toss rejected order %s: %s", order_id, code)
        raise TossPaymentError(
            code or "PAYMENT_FAILED", message or "Payment confirmation failed"
        )
    return data if isinstance(data, dict) else {}
