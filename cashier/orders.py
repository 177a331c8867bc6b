import logging

from aws_config import ORDERS_TABLE
from aws_lib.dynamodb_client import ConditionFailedError, UpdateOp

from .exceptions import PersistenceError, store_errors
from .policies import PENDING

logger = logging.getLogger(__name__)

DINE_IN = "DineIn"
TAKE_AWAY = "TakeAway"
FULFILLMENT_MODES = (DINE_IN, TAKE_AWAY)


def build_record(order_id, gross_amount, items, fulfillment_mode, customer, cashier_name, timestamp):
    """A freshly opened order: pending, no payment method, stock untouched."""
    return {
        "order_id": order_id,
        "transaction_id": None,
        "status": PENDING,
        "payment_method": "unknown",
        "gross_amount": gross_amount,
        "fulfillment_mode": fulfillment_mode,
        "items": [
            {
                "menu_item_id": item["id"],
                "name": item.get("name") or item["id"],
                "quantity": item["quantity"],
                "unit_price": item["price"],
            }
            for item in items
        ],
        "customer": customer,
        "cashier_name": cashier_name,
        "va_numbers": [],
        "redirect_to_receipt": False,
        "settlement_applied": False,
        "created_at": timestamp,
        "last_updated_at": timestamp,
    }


class OrderStore:
    """One record per order id in the Orders table."""

    def __init__(self, ddb, clock, table=ORDERS_TABLE):
        self.ddb = ddb
        self.clock = clock
        self.table = table

    def create(self, record):
        with store_errors("save order"):
            try:
                self.ddb.put(self.table, record, unique_key="order_id")
            except ConditionFailedError as e:
                raise PersistenceError(f"Order {record['order_id']} already exists") from e
        logger.info("Order %s saved with status %s", record["order_id"], record["status"])

    def get(self, order_id):
        with store_errors("read order"):
            return self.ddb.get(self.table, {"order_id": order_id})

    def apply_status(self, order_id, previous_status, fields):
        """
        Write status fields only if the stored status is still the one the
        caller read; a concurrent writer makes this fail instead of racing.
        """
        op = UpdateOp(
            table=self.table,
            key={"order_id": order_id},
            set_fields=fields,
            must_exist=True,
            expected={"status": previous_status},
        )
        with store_errors("update order"):
            try:
                return self.ddb.update(op)
            except ConditionFailedError as e:
                raise PersistenceError(
                    f"Order {order_id} was updated concurrently, retry the notification"
                ) from e

    def settlement_claim_op(self, order_id):
        """Flip settlement_applied exactly once; fails if it is already set."""
        return UpdateOp(
            table=self.table,
            key={"order_id": order_id},
            set_fields={"settlement_applied": True, "settled_at": self.clock.timestamp()},
            must_exist=True,
            expected_not={"settlement_applied": True},
        )
