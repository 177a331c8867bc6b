"""
Pytest configuration and shared fixtures.

DynamoDB is replaced by FakeDynamoDB, an in-memory stand-in for
aws_lib.dynamodb_client.DynamoDBClient that honours the same conditions
and all-or-nothing transactions.
"""
import copy
import os
import threading
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "cashier_site.settings")
django.setup()

import pytest  # noqa: E402
from django.apps import apps  # noqa: E402
from django.test import override_settings  # noqa: E402

from aws_lib.dynamodb_client import ConditionFailedError, TransactionCancelledError  # noqa: E402
from cashier.clock import Clock  # noqa: E402
from cashier.services import build_services  # noqa: E402
from infra_setup import TABLES  # noqa: E402

KEY_ATTRIBUTES = {table: tuple(name for name, _ in schema) for table, schema in TABLES.items()}


def _plain(value):
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else value
    return value


class FakeDynamoDB:
    def __init__(self):
        self.tables = defaultdict(dict)
        self.lock = threading.RLock()
        self.transactions = []
        self.transact_error = None

    def _key(self, table, key_or_item):
        return tuple(key_or_item[attr] for attr in KEY_ATTRIBUTES[table])

    def seed(self, table, *items):
        for item in items:
            self.tables[table][self._key(table, item)] = copy.deepcopy(item)

    def item(self, table, **key):
        return _plain(copy.deepcopy(self.tables[table].get(self._key(table, key), {})))

    # DynamoDBClient interface

    def get(self, table, key, consistent=True):
        with self.lock:
            return self.item(table, **key)

    def batch_get(self, table, keys):
        with self.lock:
            return [self.item(table, **k) for k in keys if self._key(table, k) in self.tables[table]]

    def put(self, table, item, unique_key=None):
        with self.lock:
            key = self._key(table, item)
            if unique_key and key in self.tables[table]:
                raise ConditionFailedError(f"{table} item already exists")
            self.tables[table][key] = copy.deepcopy(item)

    def _holds(self, op):
        current = self.tables[op.table].get(self._key(op.table, op.key))
        if op.must_exist and current is None:
            return False
        current = current or {}
        for attr, value in op.expected.items():
            if attr not in current or current[attr] != value:
                return False
        for attr, value in op.expected_not.items():
            if attr in current and current[attr] == value:
                return False
        return True

    def _write(self, op):
        key = self._key(op.table, op.key)
        item = copy.deepcopy(self.tables[op.table].get(key)) or dict(op.key)
        item.update(copy.deepcopy(op.set_fields))
        for attr, delta in op.add_fields.items():
            item[attr] = item.get(attr, 0) + delta
        self.tables[op.table][key] = item
        return _plain(copy.deepcopy(item))

    def update(self, op):
        with self.lock:
            if not self._holds(op):
                raise ConditionFailedError(f"Condition failed on {op.table} {op.key}")
            return self._write(op)

    def transact(self, ops):
        with self.lock:
            if self.transact_error is not None:
                raise self.transact_error
            reasons = ["None" if self._holds(op) else "ConditionalCheckFailed" for op in ops]
            if "ConditionalCheckFailed" in reasons:
                raise TransactionCancelledError(reasons)
            for op in ops:
                self._write(op)
            self.transactions.append(list(ops))


class FixedClock(Clock):
    def __init__(self, moment=None):
        super().__init__("Asia/Jakarta")
        self.moment = moment or datetime(2026, 10, 17, 10, 30, 0, tzinfo=ZoneInfo("Asia/Jakarta"))

    def now(self):
        return self.moment


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def ddb():
    fake = FakeDynamoDB()
    fake.seed(
        "Inventory",
        {"item_id": "ing1", "name": "Beras", "category": "Bahan Pokok", "unit": "gram", "stock": Decimal(100)},
        {"item_id": "ing2", "name": "Telur", "category": "Protein", "unit": "butir", "stock": Decimal(50)},
        {"item_id": "cutlery", "name": "Sendok & Garpu", "category": "Kemasan", "unit": "set", "stock": Decimal(40)},
        {"item_id": "wrap", "name": "Kertas Nasi", "category": "Kemasan", "unit": "lembar", "stock": Decimal(40)},
    )
    fake.seed(
        "Menu",
        {"menu_item_id": "m1", "name": "Nasi Goreng",
         "required_ingredients": [{"ingredient_id": "ing1", "quantity_per_unit": Decimal(5)}]},
        {"menu_item_id": "m2", "name": "Nasi Telur",
         "required_ingredients": [
             {"ingredient_id": "ing1", "quantity_per_unit": Decimal(1)},
             {"ingredient_id": "ing2", "quantity_per_unit": Decimal(2)},
         ]},
        {"menu_item_id": "m3", "name": "Es Teh"},
        {"menu_item_id": "m4", "name": "Sate",
         "required_ingredients": [{"ingredient_id": "ghost", "quantity_per_unit": Decimal(3)}]},
    )
    fake.seed(
        "Users",
        {"user_id": "c1", "name": "Budi", "email": "budi@example.com", "phone": "081234567890"},
        {"user_id": "c2"},
    )
    return fake


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.create_transaction.return_value = {
        "token": "snap-token-123",
        "redirect_url": "https://app.sandbox.midtrans.com/snap/v2/vtweb/snap-token-123",
    }
    return gw


@pytest.fixture
def alerts():
    return MagicMock()


@pytest.fixture
def settings_overrides():
    return {
        "TAKEAWAY_CONSUMABLE_IDS": ["cutlery", "wrap"],
        "TAKEAWAY_CONSUMABLE_BASIS": "per_quantity",
        "MIDTRANS_SANDBOX_AUTO_SETTLE": True,
        "MIDTRANS_VERIFY_SIGNATURE": False,
        "LOW_STOCK_THRESHOLD": 5,
    }


@pytest.fixture
def services(ddb, gateway, alerts, clock, settings_overrides):
    with override_settings(**settings_overrides):
        built = build_services(ddb=ddb, gateway=gateway, alerts=alerts, clock=clock)
    config = apps.get_app_config("cashier")
    previous = config.services
    config.services = built
    yield built
    config.services = previous


@pytest.fixture
def pending_order(ddb):
    """Order A1 opened for two portions of m1, dine in."""
    record = {
        "order_id": "A1-1760000000000",
        "transaction_id": None,
        "status": "pending",
        "payment_method": "unknown",
        "gross_amount": Decimal(20000),
        "fulfillment_mode": "DineIn",
        "items": [{"menu_item_id": "m1", "name": "Nasi Goreng", "quantity": 2, "unit_price": Decimal(10000)}],
        "customer": {"first_name": "Budi"},
        "cashier_name": "Budi",
        "va_numbers": [],
        "redirect_to_receipt": False,
        "settlement_applied": False,
        "created_at": "2026-10-17 10:00:00",
        "last_updated_at": "2026-10-17 10:00:00",
    }
    ddb.seed("Orders", record)
    return record


def notification(order_id="A1-1760000000000", status="settlement", payment_type="gopay", **extra):
    payload = {
        "order_id": order_id,
        "transaction_status": status,
        "transaction_id": "t1",
        "payment_type": payment_type,
        "gross_amount": "20000.00",
        "status_code": "200",
    }
    payload.update(extra)
    return payload
