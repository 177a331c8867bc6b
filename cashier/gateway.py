import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
PRODUCTION_SNAP_URL = "https://app.midtrans.com/snap/v1/transactions"


def build_session(max_retries):
    """
    Session with bounded retries on connection failures and gateway 5xx.
    Read timeouts are not retried: the transaction may already exist.
    """
    retry = Retry(
        total=max_retries,
        connect=max_retries,
        read=0,
        status=max_retries,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset({"POST"}),
        backoff_factor=0.5,
        raise_on_status=False,
    )
    session = requests.Session()
    session.mount("https://", HTTPAdapter(max_retries=retry))
    return session


class SnapGateway:
    """Midtrans Snap: opens a payment session and returns its token."""

    def __init__(self, server_key, url=SANDBOX_SNAP_URL, timeout=10, max_retries=2, session=None):
        self.server_key = server_key
        self.url = url
        self.timeout = timeout
        self.session = session or build_session(max_retries)

    def create_transaction(self, payload):
        """
        POST the transaction and return {"token", "redirect_url"}.
        Raises UpstreamError on transport failures, non-2xx answers and
        answers without a token.
        """
        order_id = payload["transaction_details"]["order_id"]
        try:
            response = self.session.post(
                self.url,
                json=payload,
                # Midtrans expects the server key as the basic-auth user, empty password
                auth=(self.server_key, ""),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Snap request for %s failed: %s", order_id, e)
            raise UpstreamError("Payment gateway unreachable", details=str(e)) from e

        if response.status_code >= 400:
            logger.error("Snap rejected %s with %s: %s", order_id, response.status_code, response.text)
            raise UpstreamError(
                f"Payment gateway rejected the request ({response.status_code})",
                details=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Payment gateway returned a malformed response", details=response.text) from e

        if not isinstance(data, dict) or not data.get("token"):
            logger.error("Snap response for %s has no token: %s", order_id, data)
            raise UpstreamError("Snap token not found in gateway response", details=str(data))

        logger.info("Snap token issued for %s", order_id)
        return {"token": data["token"], "redirect_url": data.get("redirect_url")}
