"""
Payment notification state machine.

A notification is validated, its status normalised through the sandbox
policy, written to the order (never regressing a terminal status) and, on
the first settled status, the order's stock decrement runs. Any failure
propagates so the gateway gets a 5xx and redelivers; redelivery is safe
because the decrement is claimed once per order.
"""
import logging
from dataclasses import dataclass, field

from .exceptions import NotFoundError, ValidationError
from .forms import NotificationForm, error_summary
from .policies import PENDING, NotificationSignature, SandboxSettlementPolicy, allows_transition, is_settled

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    order_id: str
    status: str
    redirect_to_receipt: bool
    status_applied: bool = True
    stock_decremented: bool = False
    warnings: list = field(default_factory=list)

    def to_response(self):
        message = "Transaction status updated" if self.status_applied else "Transaction status unchanged"
        return {
            "message": message,
            "orderId": self.order_id,
            "status": self.status,
            "redirectToReceipt": self.redirect_to_receipt,
            "stockDecremented": self.stock_decremented,
        }


class ReconciliationEngine:
    def __init__(self, orders, decrement, clock, settlement_policy=None, signature=None):
        self.orders = orders
        self.decrement = decrement
        self.clock = clock
        self.settlement_policy = settlement_policy or SandboxSettlementPolicy(enabled=False)
        self.signature = signature or NotificationSignature(server_key="", enabled=False)

    def handle_notification(self, payload):
        form = NotificationForm(payload)
        if not form.is_valid():
            logger.error("Invalid notification: %s", form.errors.as_json())
            raise ValidationError(f"Invalid notification data: {error_summary(form)}")
        if not self.signature.verify(payload):
            logger.error("Notification signature mismatch for %s", payload.get("order_id"))
            raise ValidationError("Invalid notification signature")

        data = form.cleaned_data
        order_id = data["order_id"]
        order = self.orders.get(order_id)
        if not order:
            logger.error("Notification for unknown order %s", order_id)
            raise NotFoundError(f"Transaction {order_id} not found")

        status = self.settlement_policy.canonical_status(data["payment_type"], data["transaction_status"])
        current = order.get("status", PENDING)

        if not allows_transition(current, status):
            logger.info("Order %s stays %s, ignoring late %s", order_id, current, status)
            return NotificationResult(
                order_id=order_id,
                status=current,
                redirect_to_receipt=is_settled(current),
                status_applied=False,
            )

        settled = is_settled(status)
        self.orders.apply_status(order_id, current, {
            "transaction_id": data["transaction_id"],
            "status": status,
            "payment_method": data["payment_type"],
            "gross_amount": data["gross_amount"],
            "va_numbers": data["va_numbers"],
            "last_updated_at": self.clock.timestamp(),
            "redirect_to_receipt": settled,
        })
        logger.info("Order %s updated with status %s", order_id, status)

        result = NotificationResult(order_id=order_id, status=status, redirect_to_receipt=settled)
        if settled and not order.get("settlement_applied"):
            outcome = self.decrement.apply(order)
            result.stock_decremented = outcome.applied
            result.warnings = outcome.warnings
        return result
