"""
Tests for opening payment sessions.
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from cashier.exceptions import NotFoundError, PersistenceError, UpstreamError, ValidationError
from cashier.sessions import OrderIdGenerator, gross_amount


def session_request(**overrides):
    data = {
        "orderId": "A1",
        "customerId": "c1",
        "items": [{"id": "m1", "price": 10000, "quantity": 2}],
    }
    data.update(overrides)
    return data


class TestOpenSession:
    def test_scenario_pending_record_and_gateway_amount(self, services, ddb, gateway):
        result = services.sessions.open_session(session_request())

        payload = gateway.create_transaction.call_args[0][0]
        assert payload["transaction_details"]["gross_amount"] == 20000
        assert payload["transaction_details"]["order_id"] == result.order_id
        assert payload["customer_details"]["first_name"] == "Budi"
        assert payload["item_details"] == [{"id": "m1", "name": "m1", "price": 10000, "quantity": 2}]

        order = ddb.item("Orders", order_id=result.order_id)
        assert order["status"] == "pending"
        assert order["gross_amount"] == 20000
        assert order["payment_method"] == "unknown"
        assert order["settlement_applied"] is False
        assert order["fulfillment_mode"] == "DineIn"
        assert order["cashier_name"] == "Budi"
        assert order["created_at"] == "2026-10-17 10:30:00"
        assert order["items"] == [{"menu_item_id": "m1", "name": "m1", "quantity": 2, "unit_price": 10000}]

    def test_response_shape(self, services):
        result = services.sessions.open_session(session_request())

        response = result.to_response()
        assert response["token"] == "snap-token-123"
        assert response["redirectUrl"].endswith("snap-token-123")
        assert response["orderId"].startswith("A1-")

    def test_decimal_prices_sum_exactly(self, services, ddb, gateway):
        items = [
            {"id": "m1", "price": Decimal("0.10"), "quantity": 3},
            {"id": "m2", "price": Decimal("0.20"), "quantity": 1},
        ]

        result = services.sessions.open_session(session_request(items=items))

        assert result.gross_amount == Decimal("0.50")
        assert ddb.item("Orders", order_id=result.order_id)["gross_amount"] == Decimal("0.50")

    def test_customer_details_skip_directory(self, services, ddb, gateway):
        details = {"first_name": "Sari", "email": "sari@example.com"}

        result = services.sessions.open_session(
            session_request(customerId=None, customerDetails=details)
        )

        payload = gateway.create_transaction.call_args[0][0]
        assert payload["customer_details"] == {"first_name": "Sari", "email": "sari@example.com"}
        assert ddb.item("Orders", order_id=result.order_id)["cashier_name"] == "Sari"

    def test_directory_placeholders_for_missing_contact(self, services, gateway):
        services.sessions.open_session(session_request(customerId="c2"))

        customer = gateway.create_transaction.call_args[0][0]["customer_details"]
        assert customer == {"first_name": "Unknown", "email": "unknown@gmail.com", "phone": "0000000000"}

    @pytest.mark.parametrize("mode,expected", [
        ("TakeAway", "TakeAway"),
        ("Take Away", "TakeAway"),
        ("dine_in", "DineIn"),
        (None, "DineIn"),
    ])
    def test_fulfillment_mode(self, services, ddb, mode, expected):
        result = services.sessions.open_session(session_request(fulfillmentMode=mode))

        assert ddb.item("Orders", order_id=result.order_id)["fulfillment_mode"] == expected

    def test_legacy_takeaway_flag(self, services, ddb):
        result = services.sessions.open_session(session_request(takeaway=True))

        assert ddb.item("Orders", order_id=result.order_id)["fulfillment_mode"] == "TakeAway"


class TestOpenSessionFailures:
    @pytest.mark.parametrize("overrides", [
        {"orderId": ""},
        {"orderId": "X" * 60},
        {"items": []},
        {"items": [{"id": "m1", "price": 1000, "quantity": 0}]},
        {"items": [{"id": "m1", "price": -1, "quantity": 1}]},
        {"items": [{"price": 1000, "quantity": 1}]},
        {"customerId": None},
        {"fulfillmentMode": "Delivery"},
    ])
    def test_invalid_request_rejected_before_gateway(self, services, ddb, gateway, overrides):
        with pytest.raises(ValidationError):
            services.sessions.open_session(session_request(**overrides))

        gateway.create_transaction.assert_not_called()
        assert not ddb.tables["Orders"]

    def test_unknown_customer(self, services, ddb, gateway):
        with pytest.raises(NotFoundError):
            services.sessions.open_session(session_request(customerId="ghost"))

        gateway.create_transaction.assert_not_called()
        assert not ddb.tables["Orders"]

    def test_gateway_failure_writes_no_record(self, services, ddb, gateway):
        gateway.create_transaction.side_effect = UpstreamError("Snap token not found in gateway response")

        with pytest.raises(UpstreamError):
            services.sessions.open_session(session_request())

        assert not ddb.tables["Orders"]

    def test_store_failure_after_token_is_reported(self, services, ddb, caplog):
        services.sessions.orders = MagicMock()
        services.sessions.orders.create.side_effect = PersistenceError("Failed to save order")

        with pytest.raises(PersistenceError):
            services.sessions.open_session(session_request())

        assert "reconcile this order manually" in caplog.text


class TestOrderIds:
    def test_same_millisecond_still_unique(self):
        generator = OrderIdGenerator(clock_ms=lambda: 1760000000000)

        ids = [generator.next_id("A1") for _ in range(5)]

        assert len(set(ids)) == 5
        assert ids[0] == "A1-1760000000000"
        assert ids[1] == "A1-1760000000001"

    def test_repeated_requests_get_distinct_ids(self, services):
        first = services.sessions.open_session(session_request())
        second = services.sessions.open_session(session_request())

        assert first.order_id != second.order_id


def test_gross_amount_is_exact_sum():
    items = [
        {"price": Decimal("12500.50"), "quantity": 3},
        {"price": Decimal("0.01"), "quantity": 7},
    ]

    assert gross_amount(items) == Decimal("37501.57")

    def test_longest_order_id_fits_gateway_limit(self, services, gateway):
        result = services.sessions.open_session(session_request(orderId="X" * 36))

        sent = gateway.create_transaction.call_args.args[0]["transaction_details"]["order_id"]
        assert sent == result.order_id
        assert len(sent) <= 50
