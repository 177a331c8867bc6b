from decimal import Decimal

from aws_config import CONSUMPTION_LOG_TABLE
from aws_lib.dynamodb_client import UpdateOp

from .exceptions import store_errors

OUTFLOW = "outflow"
INFLOW = "inflow"


class ConsumptionLog:
    """
    Daily rollup of how much of each inventory item moved, per direction.
    Entries are keyed by (log_date, "<direction>#<item_id>") so a new day
    starts a fresh counter.
    """

    def __init__(self, ddb, clock, table=CONSUMPTION_LOG_TABLE):
        self.ddb = ddb
        self.clock = clock
        self.table = table

    @staticmethod
    def entry_key(direction, item_id):
        return f"{direction}#{item_id}"

    def entry_op(self, item, quantity, direction=OUTFLOW, log_date=None):
        """
        Build the ADD for one entry. Display metadata is copied from the live
        inventory item so reports follow renames.
        """
        if direction not in (INFLOW, OUTFLOW):
            raise ValueError(f"Unknown direction '{direction}'")
        log_date = log_date or self.clock.today()
        return UpdateOp(
            table=self.table,
            key={"log_date": log_date, "entry_key": self.entry_key(direction, item["item_id"])},
            set_fields={
                "direction": direction,
                "item_id": item["item_id"],
                "display_name": item.get("name", item["item_id"]),
                "category": item.get("category", ""),
                "unit": item.get("unit", ""),
            },
            add_fields={"total_consumed": Decimal(quantity)},
        )

    def entry(self, item_id, direction=OUTFLOW, log_date=None):
        log_date = log_date or self.clock.today()
        with store_errors("read consumption log"):
            return self.ddb.get(self.table, {
                "log_date": log_date,
                "entry_key": self.entry_key(direction, item_id),
            })
