import base64
import hashlib
import hmac
import logging
from typing import Any, Dict

import requests

from core.config import settings
from core.exceptions import GatewayError

logger = logging.getLogger(__name__)

SNAP_BASE_URLS = {
    True: "https://app.midtrans.com/snap/v1",
    False: "https://app.sandbox.midtrans.com/snap/v1",
}
CORE_API_BASE_URLS = {
    True: "https://api.midtrans.com/v2",
    False: "https://api.sandbox.midtrans.com/v2",
}

# Midtrans test notifications wrap the real id: payment_notif_test_<merchant>_<order_id>
TEST_NOTIFICATION_PREFIX = "payment_notif_test_"


def _headers() -> Dict[str, str]:
    auth = base64.b64encode(f"{settings.MIDTRANS_SERVER_KEY}:".encode()).decode()
    return {
        "Authorization": f"Basic {auth}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def _request(method: str, url: str, **kwargs) -> Dict[str, Any]:
    try:
        resp = requests.request(method, url, headers=_headers(), timeout=settings.MIDTRANS_TIMEOUT_SECONDS, **kwargs)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as exc:
        logger.warning("Midtrans %s %s failed: %s", method, url, exc)
        raise GatewayError(f"Payment provider request failed: {exc}") from exc
    except ValueError as exc:
        raise GatewayError("Payment provider returned an invalid response") from exc


def create_session(order_id: str, amount: float, customer: Dict[str, Any] | None = None) -> Dict[str, str]:
    """Open a Snap checkout session. Returns ``{"token", "redirect_url"}``."""
    customer = customer or {}
    payload = {
        "transaction_details": {
            "order_id": order_id,
            "gross_amount": int(round(float(amount))),  # IDR has no minor unit
        },
        "credit_card": {"secure": True},
        "customer_details": {
            "first_name": customer.get("name"),
            "email": customer.get("email"),
            "phone": customer.get("phone"),
        },
    }
    data = _request("POST", f"{SNAP_BASE_URLS[settings.MIDTRANS_IS_PRODUCTION]}/transactions", json=payload)
    token = data.get("token")
    redirect_url = data.get("redirect_url")
    if not token or not redirect_url:
        raise GatewayError("Payment provider did not return a checkout session")
    return {"token": token, "redirect_url": redirect_url}


def get_status(order_id: str) -> Dict[str, Any]:
    return _request("GET", f"{CORE_API_BASE_URLS[settings.MIDTRANS_IS_PRODUCTION]}/{order_id}/status")


def unwrap_order_id(order_id: str) -> str:
    if not order_id.startswith(TEST_NOTIFICATION_PREFIX):
        return order_id
    parts = order_id.split("_")
    if len(parts) > 4:
        return "_".join(parts[4:])
    return parts[-1]


def signature_for(order_id: str, status_code: str, gross_amount: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{settings.MIDTRANS_SERVER_KEY}"
    return hashlib.sha512(raw.encode()).hexdigest()


def verify_signature(order_id: str, status_code: str | None, gross_amount: str | None, signature_key: str | None) -> bool:
    if not (status_code and gross_amount and signature_key):
        return False
    return hmac.compare_digest(signature_for(order_id, status_code, gross_amount), signature_key)
