"""
Stock decrement for a settled order.

The order's own line-item snapshot is resolved to ingredients through the
menu, deltas are summed per ingredient, take-away consumables are added,
and everything is written in one DynamoDB transaction together with the
order's settlement_applied claim. The claim makes a duplicate notification
a no-op instead of a second decrement.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from botocore.exceptions import BotoCoreError, ClientError

from aws_lib.dynamodb_client import MAX_TRANSACT_ITEMS, TransactionCancelledError

from .consumption import OUTFLOW
from .exceptions import PersistenceError
from .orders import TAKE_AWAY

logger = logging.getLogger(__name__)


@dataclass
class PartialDecrementWarning:
    """An ingredient referenced by the menu is missing from the inventory."""
    order_id: str
    item_id: str
    menu_item_ids: list

    def message(self):
        menu_items = ", ".join(self.menu_item_ids) or "take-away consumables"
        return (f"Order {self.order_id}: inventory item {self.item_id} "
                f"(used by {menu_items}) not found, skipped")


@dataclass
class DecrementOutcome:
    applied: bool
    deltas: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)


class InventoryDecrement:
    def __init__(self, ddb, orders, ledger, consumption, catalog, consumables, alerts,
                 low_stock_threshold=None):
        self.ddb = ddb
        self.orders = orders
        self.ledger = ledger
        self.consumption = consumption
        self.catalog = catalog
        self.consumables = consumables
        self.alerts = alerts
        self.low_stock_threshold = low_stock_threshold

    def compute_deltas(self, line_items, fulfillment_mode):
        """
        Return ({item_id: negative delta}, {item_id: [menu item ids]}).
        Menu items without an ingredient definition are skipped.
        """
        deltas = defaultdict(Decimal)
        used_by = defaultdict(list)
        definitions = {}

        for line in line_items:
            menu_item_id = line["menu_item_id"]
            if menu_item_id not in definitions:
                definitions[menu_item_id] = self.catalog.required_ingredients(menu_item_id)
            quantity = Decimal(line["quantity"])

            for ingredient in definitions[menu_item_id]:
                ingredient_id = ingredient["ingredient_id"]
                deltas[ingredient_id] -= Decimal(ingredient["quantity_per_unit"]) * quantity
                if menu_item_id not in used_by[ingredient_id]:
                    used_by[ingredient_id].append(menu_item_id)

        if fulfillment_mode == TAKE_AWAY:
            for item_id, delta in self.consumables.deltas(line_items).items():
                deltas[item_id] += delta

        return {k: v for k, v in deltas.items() if v}, dict(used_by)

    def apply(self, order):
        order_id = order["order_id"]
        deltas, used_by = self.compute_deltas(order.get("items") or [], order.get("fulfillment_mode"))

        stock = self.ledger.get_many(list(deltas)) if deltas else {}
        warnings = [
            PartialDecrementWarning(order_id, item_id, used_by.get(item_id, []))
            for item_id in deltas if item_id not in stock
        ]
        present = {item_id: delta for item_id, delta in deltas.items() if item_id in stock}

        log_date = self.consumption.clock.today()
        ops = [self.orders.settlement_claim_op(order_id)]
        ops += [self.ledger.delta_op(item_id, delta) for item_id, delta in present.items()]
        ops += [self.consumption.entry_op(stock[item_id], -delta, OUTFLOW, log_date)
                for item_id, delta in present.items()]
        if len(ops) > MAX_TRANSACT_ITEMS:
            raise PersistenceError(f"Order {order_id} touches too many inventory items to settle atomically")

        try:
            self.ddb.transact(ops)
        except TransactionCancelledError as e:
            if e.failed_condition_at(0):
                logger.info("Stock for order %s was already decremented, skipping", order_id)
                return DecrementOutcome(applied=False)
            logger.error("Stock decrement for %s cancelled: %s", order_id, e.reasons)
            raise PersistenceError(f"Failed to decrement stock for order {order_id}", details=str(e)) from e
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"Failed to decrement stock for order {order_id}", details=str(e)) from e

        logger.info("Stock decremented for order %s: %s", order_id,
                    {item_id: str(delta) for item_id, delta in present.items()})
        for warning in warnings:
            self.alerts.warn("Missing inventory item", warning.message())
        self._check_low_stock(present)
        return DecrementOutcome(applied=True, deltas=present, warnings=warnings)

    def _check_low_stock(self, item_ids):
        if self.low_stock_threshold is None or not item_ids:
            return
        try:
            levels = self.ledger.get_many(list(item_ids))
        except PersistenceError:
            # the decrement is committed; a missed alert must not fail it
            logger.exception("Could not read stock levels for low-stock check")
            return
        for item in levels.values():
            level = item.get("stock", 0)
            if level < self.low_stock_threshold:
                self.alerts.warn(
                    "Low stock alert",
                    f"{item.get('name', item['item_id'])} low: {level} {item.get('unit', '')}".strip(),
                )
