"""
Status and stock policies applied by the reconciliation engine.

Each policy is a small object built from settings in cashier.services, so a
deployment can swap or disable one without touching the engine.
"""
import hashlib
import hmac
import logging
from decimal import Decimal

logger = logging.getLogger(__name__)

PENDING = "pending"
SETTLED_STATUSES = frozenset({"settlement", "capture"})
FAILED_STATUSES = frozenset({"deny", "cancel", "expire", "failure"})
REVERSAL_STATUSES = frozenset({"refund", "partial_refund", "chargeback", "partial_chargeback"})


def is_settled(status):
    return status in SETTLED_STATUSES


def status_rank(status):
    """0 = still open, 1 = settled or failed, 2 = reversed after settlement."""
    if status in REVERSAL_STATUSES:
        return 2
    if status in SETTLED_STATUSES or status in FAILED_STATUSES:
        return 1
    return 0


def allows_transition(current, new):
    """
    Whether a stored status may be replaced by `new`.
    Terminal statuses never regress; a settled order may move between settled
    statuses (capture then settlement) and may still be reversed.
    """
    if current == new or status_rank(current) == 0:
        return True
    if current in SETTLED_STATUSES and new in SETTLED_STATUSES:
        return True
    if new in REVERSAL_STATUSES:
        return current in SETTLED_STATUSES or current in REVERSAL_STATUSES
    return False


class SandboxSettlementPolicy:
    """
    The Midtrans sandbox never sends a settlement for bank transfers, so a
    pending bank transfer is treated as settled while this policy is enabled.
    Production deployments disable it (MIDTRANS_SANDBOX_AUTO_SETTLE=false).
    """

    def __init__(self, enabled=True, payment_types=("bank_transfer",)):
        self.enabled = enabled
        self.payment_types = frozenset(payment_types)

    def canonical_status(self, payment_type, raw_status):
        if self.enabled and raw_status == PENDING and payment_type in self.payment_types:
            logger.warning("Sandbox auto-settle: %s %s treated as settlement", payment_type, raw_status)
            return "settlement"
        return raw_status


class ConsumableBasis:
    PER_QUANTITY = "per_quantity"  # one unit per ordered portion
    PER_LINE = "per_line"          # one unit per line item
    PER_ORDER = "per_order"        # one unit per order

    ALL = (PER_QUANTITY, PER_LINE, PER_ORDER)


class TakeawayConsumablesPolicy:
    """Disposable items (cutlery, wrapping) used up by a take-away order."""

    def __init__(self, item_ids=(), basis=ConsumableBasis.PER_QUANTITY):
        if basis not in ConsumableBasis.ALL:
            raise ValueError(f"Unknown consumable basis '{basis}', expected one of {ConsumableBasis.ALL}")
        self.item_ids = tuple(item_ids)
        self.basis = basis

    def units_for(self, line_items):
        if self.basis == ConsumableBasis.PER_ORDER:
            return Decimal(1)
        if self.basis == ConsumableBasis.PER_LINE:
            return Decimal(len(line_items))
        return sum((Decimal(item["quantity"]) for item in line_items), Decimal(0))

    def deltas(self, line_items):
        units = self.units_for(line_items)
        if not units:
            return {}
        return {item_id: -units for item_id in self.item_ids}


class NotificationSignature:
    """
    Midtrans signs notifications with
    sha512(order_id + status_code + gross_amount + server_key).
    """

    def __init__(self, server_key, enabled=False):
        if enabled and not server_key:
            raise ValueError("Notification signatures cannot be verified without a server key")
        self.server_key = server_key or ""
        self.enabled = enabled

    def expected(self, order_id, status_code, gross_amount):
        raw = f"{order_id}{status_code}{gross_amount}{self.server_key}"
        return hashlib.sha512(raw.encode("utf-8")).hexdigest()

    def verify(self, payload):
        if not self.enabled:
            return True
        signature = payload.get("signature_key") or ""
        expected = self.expected(
            payload.get("order_id", ""),
            payload.get("status_code", ""),
            payload.get("gross_amount", ""),
        )
        return hmac.compare_digest(signature, expected)
