"""
Opening payment sessions: validate the cart, price it, ask Snap for a token
and only then persist the pending order.
"""
import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal

from .amounts import wire_number
from .exceptions import NotFoundError, PersistenceError, ValidationError
from .forms import SessionRequestForm, error_summary
from .orders import build_record

logger = logging.getLogger(__name__)

# placeholders used when a directory profile lacks contact fields
UNKNOWN_EMAIL = "unknown@gmail.com"
UNKNOWN_PHONE = "0000000000"


def gross_amount(items):
    return sum((item["price"] * item["quantity"] for item in items), Decimal(0))


def _millis():
    return time.time_ns() // 1_000_000


class OrderIdGenerator:
    """
    Appends a millisecond suffix to client order ids. Suffixes are strictly
    increasing within the process, so two requests in the same millisecond
    still get different ids.
    """

    def __init__(self, clock_ms=_millis):
        self._clock_ms = clock_ms
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self, base):
        with self._lock:
            stamp = max(self._clock_ms(), self._last + 1)
            self._last = stamp
        return f"{base}-{stamp}"


@dataclass
class SessionResult:
    token: str
    redirect_url: str
    order_id: str
    gross_amount: Decimal

    def to_response(self):
        return {"token": self.token, "redirectUrl": self.redirect_url, "orderId": self.order_id}


class SessionService:
    def __init__(self, gateway, orders, directory, clock, id_generator=None):
        self.gateway = gateway
        self.orders = orders
        self.directory = directory
        self.clock = clock
        self.ids = id_generator or OrderIdGenerator()

    def _resolve_customer(self, cleaned):
        """Return (customer_details, cashier_name) for the gateway and the record."""
        if cleaned.get("customerDetails"):
            customer = cleaned["customerDetails"]
            return customer, customer["first_name"]

        customer_id = cleaned["customerId"]
        profile = self.directory.get(customer_id)
        if not profile:
            logger.warning("Customer %s not found", customer_id)
            raise NotFoundError(f"Customer {customer_id} not found")

        name = profile.get("name") or "Unknown"
        customer = {
            "first_name": name,
            "email": profile.get("email") or UNKNOWN_EMAIL,
            "phone": profile.get("phone") or UNKNOWN_PHONE,
        }
        return customer, name

    def open_session(self, data):
        form = SessionRequestForm(data)
        if not form.is_valid():
            raise ValidationError(f"Missing or invalid fields: {error_summary(form)}")
        cleaned = form.cleaned_data

        customer, cashier_name = self._resolve_customer(cleaned)
        items = cleaned["items"]
        amount = gross_amount(items)
        order_id = self.ids.next_id(cleaned["orderId"])

        payload = {
            "transaction_details": {"order_id": order_id, "gross_amount": wire_number(amount)},
            "customer_details": customer,
            "item_details": [
                {
                    "id": item["id"],
                    "name": item["name"],
                    "price": wire_number(item["price"]),
                    "quantity": item["quantity"],
                }
                for item in items
            ],
        }
        logger.info("Requesting Snap token for %s, gross amount %s", order_id, amount)
        snap = self.gateway.create_transaction(payload)

        record = build_record(
            order_id=order_id,
            gross_amount=amount,
            items=items,
            fulfillment_mode=cleaned["fulfillmentMode"],
            customer=customer,
            cashier_name=cashier_name,
            timestamp=self.clock.timestamp(),
        )
        try:
            self.orders.create(record)
        except PersistenceError:
            # the client holds a token for an order we have no record of
            logger.error(
                "Snap token issued for %s but the order record was not saved; "
                "reconcile this order manually", order_id,
            )
            raise

        return SessionResult(
            token=snap["token"],
            redirect_url=snap.get("redirect_url"),
            order_id=order_id,
            gross_amount=amount,
        )
