import hmac
import json
import logging
from decimal import Decimal
from functools import wraps

from django.apps import apps
from django.conf import settings
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .amounts import parse_amount, wire_number
from .exceptions import AuthenticationError, CashierError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def get_services():
    return apps.get_app_config("cashier").get_services()


def json_body(request):
    """Parse the request body, keeping every fractional number as a Decimal."""
    try:
        data = json.loads(request.body or b"{}", parse_float=Decimal)
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def api_view(view):
    """Turn cashier errors into {"error": kind, "details": message} responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except CashierError as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log("%s %s failed: %s (%s)", request.method, request.path, e.message, e.details or "-")
            return JsonResponse(e.to_response(), status=e.status_code)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return JsonResponse(
                {"error": "internal_error", "details": "Internal server error"},
                status=500,
            )
    return wrapper


def staff_token_required(view):
    """
    Guards back-office endpoints with the shared CASHIER_STAFF_TOKEN, sent as
    `Authorization: Bearer <token>`. With no token configured every call is
    refused.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        expected = settings.CASHIER_STAFF_TOKEN
        scheme, _, supplied = request.headers.get("Authorization", "").partition(" ")
        if not expected or scheme.lower() != "bearer" or not hmac.compare_digest(
            supplied.strip().encode(), expected.encode()
        ):
            raise AuthenticationError("A valid staff token is required")
        return view(request, *args, **kwargs)
    return wrapper


@require_GET
def health(request):
    return HttpResponse("Midtrans Payment Gateway Server is Running!", content_type="text/plain")


@csrf_exempt
@require_POST
@api_view
def get_snap_token(request):
    """
    Opens a Snap payment session:
    1. Validates the cart and resolves the customer
    2. Gets a token from Midtrans
    3. Saves the order as pending
    """
    result = get_services().sessions.open_session(json_body(request))
    return JsonResponse(result.to_response())


@csrf_exempt
@require_POST
@api_view
def midtrans_notification(request):
    """Applies a Midtrans status notification and decrements stock on settlement."""
    result = get_services().reconciler.handle_notification(json_body(request))
    return JsonResponse(result.to_response())


@require_GET
@api_view
def transaction_status(request, order_id):
    """Lets the POS poll whether to show the receipt."""
    order = get_services().orders.get(order_id)
    if not order:
        raise NotFoundError(f"Transaction {order_id} not found")
    return JsonResponse({
        "orderId": order["order_id"],
        "status": order.get("status"),
        "paymentMethod": order.get("payment_method"),
        "grossAmount": wire_number(order.get("gross_amount", 0)),
        "redirectToReceipt": bool(order.get("redirect_to_receipt")),
    })


@csrf_exempt
@require_POST
@api_view
@staff_token_required
def restock(request, item_id):
    """Adds delivered stock to an inventory item and logs the inflow."""
    quantity = parse_amount(json_body(request).get("quantity"))
    if quantity is None:
        raise ValidationError("quantity must be a number")
    ledger = get_services().ledger
    ledger.receive_stock(item_id, quantity)
    item = ledger.get(item_id)
    return JsonResponse({"itemId": item_id, "stock": wire_number(item.get("stock", 0))})
