from decimal import Decimal

from aws_config import INVENTORY_TABLE
from aws_lib.dynamodb_client import UpdateOp

from .consumption import INFLOW
from .exceptions import NotFoundError, ValidationError, store_errors


class InventoryLedger:
    """
    Stock levels per inventory item (ingredients and consumables).

    Stock only ever moves through `ADD stock :delta`; nothing here reads a
    quantity and writes it back, so concurrent orders cannot lose updates.
    Stock may go negative when an order is oversold.
    """

    def __init__(self, ddb, table=INVENTORY_TABLE, consumption=None):
        self.ddb = ddb
        self.table = table
        self.consumption = consumption

    def get(self, item_id):
        with store_errors("read inventory"):
            return self.ddb.get(self.table, {"item_id": item_id})

    def get_many(self, item_ids):
        """Return {item_id: item} for the ids that exist."""
        with store_errors("read inventory"):
            items = self.ddb.batch_get(self.table, [{"item_id": i} for i in item_ids])
        return {item["item_id"]: item for item in items}

    def delta_op(self, item_id, delta):
        return UpdateOp(
            table=self.table,
            key={"item_id": item_id},
            add_fields={"stock": Decimal(delta)},
            must_exist=True,
        )

    def receive_stock(self, item_id, quantity):
        """Record a delivery: positive delta plus an inflow consumption entry."""
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise ValidationError("Restock quantity must be positive")
        item = self.get(item_id)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")

        ops = [self.delta_op(item_id, quantity)]
        if self.consumption is not None:
            ops.append(self.consumption.entry_op(item, quantity, direction=INFLOW))
        with store_errors("record restock"):
            self.ddb.transact(ops)
