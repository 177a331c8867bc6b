"""
Builds the cashier's collaborators from Django settings. The process owns
one Services instance (see CashierConfig.get_services); views never create
clients themselves.
"""
from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from aws_config import get_sns_topic_arn
from aws_lib.dynamodb_client import DynamoDBClient
from aws_lib.sns_client import SNSClient

from .alerts import AlertChannel
from .catalog import CustomerDirectory, MenuCatalog
from .clock import Clock
from .consumption import ConsumptionLog
from .decrement import InventoryDecrement
from .gateway import SnapGateway
from .inventory import InventoryLedger
from .orders import OrderStore
from .policies import NotificationSignature, SandboxSettlementPolicy, TakeawayConsumablesPolicy
from .reconciliation import ReconciliationEngine
from .sessions import SessionService


@dataclass
class Services:
    sessions: SessionService
    reconciler: ReconciliationEngine
    orders: OrderStore
    ledger: InventoryLedger


def build_services(ddb=None, gateway=None, alerts=None, clock=None):
    ddb = ddb or DynamoDBClient()
    clock = clock or Clock(settings.STORE_TIMEZONE)

    if gateway is None:
        gateway = SnapGateway(
            server_key=settings.MIDTRANS_SERVER_KEY,
            url=settings.MIDTRANS_SNAP_URL,
            timeout=settings.MIDTRANS_TIMEOUT,
            max_retries=settings.MIDTRANS_MAX_RETRIES,
        )
    if alerts is None:
        if settings.ALERTS_SNS_ENABLED:
            alerts = AlertChannel(SNSClient(), get_sns_topic_arn())
        else:
            alerts = AlertChannel()

    orders = OrderStore(ddb, clock)
    consumption = ConsumptionLog(ddb, clock)
    ledger = InventoryLedger(ddb, consumption=consumption)
    decrement = InventoryDecrement(
        ddb=ddb,
        orders=orders,
        ledger=ledger,
        consumption=consumption,
        catalog=MenuCatalog(ddb),
        consumables=TakeawayConsumablesPolicy(
            item_ids=settings.TAKEAWAY_CONSUMABLE_IDS,
            basis=settings.TAKEAWAY_CONSUMABLE_BASIS,
        ),
        alerts=alerts,
        low_stock_threshold=settings.LOW_STOCK_THRESHOLD,
    )
    try:
        signature = NotificationSignature(
            settings.MIDTRANS_SERVER_KEY,
            enabled=settings.MIDTRANS_VERIFY_SIGNATURE,
        )
    except ValueError as e:
        raise ImproperlyConfigured(
            "MIDTRANS_VERIFY_SIGNATURE is on but MIDTRANS_SERVER_KEY is empty"
        ) from e

    reconciler = ReconciliationEngine(
        orders=orders,
        decrement=decrement,
        clock=clock,
        settlement_policy=SandboxSettlementPolicy(
            enabled=settings.MIDTRANS_SANDBOX_AUTO_SETTLE,
            payment_types=settings.MIDTRANS_SANDBOX_SETTLE_TYPES,
        ),
        signature=signature,
    )
    sessions = SessionService(gateway, orders, CustomerDirectory(ddb), clock)
    return Services(sessions=sessions, reconciler=reconciler, orders=orders, ledger=ledger)
