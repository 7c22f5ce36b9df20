"""
Tests for the workstation HTTP API.
"""

import asyncio
from decimal import Decimal

import jwt
import pytest
from starlette.websockets import WebSocketDisconnect

from shared.config.settings import JWT_AUDIENCE, JWT_ISSUER
from shared.security.auth import sign_scope_token, verify_scope_token
from workstation_api.routers._common import SCOPE_HEADER
from workstation_api.services.domain import EmployeeAuthGuard
from tests.conftest import DIGITAL, R1, R2


def _cash(restaurant_id: str = R1) -> str:
    return f"/api/restaurants/{restaurant_id}/cash"


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "workstation-api"


class TestAuthEndpoints:
    def test_login_success(self, client):
        response = client.post(
            f"/api/restaurants/{R1}/auth/login",
            json={"login": "1234", "pin": "5678"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["employee"]["name"] == "Ana Souza"
        assert "password" not in data["employee"]
        assert data["workstation"] == "cashier"
        assert data["redirect_to"] == f"/cashier/{R1}"

    def test_login_unknown_employee(self, client):
        response = client.post(
            f"/api/restaurants/{R2}/auth/login",
            json={"login": "1234", "pin": "5678"},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_LOGIN"

    def test_login_wrong_pin(self, client):
        response = client.post(
            f"/api/restaurants/{R1}/auth/login",
            json={"login": "1234", "pin": "0000"},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "WRONG_PASSWORD"

    def test_login_unknown_restaurant(self, client):
        response = client.post(
            "/api/restaurants/nowhere/auth/login",
            json={"login": "1234", "pin": "5678"},
        )
        assert response.status_code == 404

    def test_login_issues_scope_token(self, client):
        response = client.post(f"/api/restaurants/{R1}/auth/login", json={"login": "1234", "pin": "5678"})
        assert response.status_code == 200
        claims = verify_scope_token(response.json()["scope_token"], R1)
        assert claims["restaurant_id"] == R1
        assert claims["role"] == "Caixa"
        assert len(claims["sub"]) >= 32

    def test_relogin_on_same_tab_keeps_scope(self, client, cashier_headers):
        response = client.post(
            f"/api/restaurants/{R1}/auth/login",
            json={"login": "3333", "pin": "1111"},
            headers=cashier_headers,
        )
        new_token = response.json()["scope_token"]
        assert verify_scope_token(new_token, R1)["sub"] == verify_scope_token(cashier_headers[SCOPE_HEADER], R1)["sub"]

        # Same tab, session replaced
        response = client.get(f"/api/restaurants/{R1}/auth/session", headers=cashier_headers)
        assert response.json()["employee"]["login"] == "3333"

    def test_login_is_rate_limited(self, client):
        for _ in range(5):
            client.post(
                f"/api/restaurants/{R1}/auth/login",
                json={"login": "1234", "pin": "0000"},
            )
        response = client.post(
            f"/api/restaurants/{R1}/auth/login",
            json={"login": "1234", "pin": "5678"},
        )
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"

    def test_session_endpoint(self, client, cashier_headers):
        response = client.get(f"/api/restaurants/{R1}/auth/session", params={"role": "Caixa"}, headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["employee"]["login"] == "1234"

    def test_session_of_other_restaurant_is_purged(self, client, cashier_headers):
        response = client.get(f"/api/restaurants/{R2}/auth/session", headers=cashier_headers)
        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "SESSION_SCOPE_MISMATCH"
        assert body["redirect_to"] == f"/employee-login/{R2}"

        # Purged: the original restaurant no longer accepts it either
        response = client.get(f"/api/restaurants/{R1}/auth/session", headers=cashier_headers)
        assert response.status_code == 401
        assert response.json()["redirect_to"] == f"/employee-login/{R1}"

    def test_logout(self, client, cashier_headers):
        response = client.post(f"/api/restaurants/{R1}/auth/logout", headers=cashier_headers)
        assert response.json() == {"success": True, "redirect_to": f"/employee-login/{R1}"}
        assert client.get(f"/api/restaurants/{R1}/auth/session", headers=cashier_headers).status_code == 401


class TestScopeTokens:
    """A scope is only accepted inside a token the server signed."""

    def test_copied_scope_id_is_rejected(self, client, cashier_headers):
        scope_id = verify_scope_token(cashier_headers[SCOPE_HEADER], R1)["sub"]
        stranger = {SCOPE_HEADER: scope_id}

        response = client.get(f"{_cash()}/active", headers=stranger)
        assert response.status_code == 401
        assert response.json()["code"] == "SESSION_REQUIRED"
        response = client.post(f"{_cash()}/sessions", json={"opening_balance": "10"}, headers=stranger)
        assert response.status_code == 401

        assert client.get(f"{_cash()}/active", headers=cashier_headers).status_code == 200

    def test_guessed_scope_is_rejected(self, client, cashier_headers):
        response = client.get(f"{_cash()}/active", headers={SCOPE_HEADER: f"scope-{R1}-1234"})
        assert response.status_code == 401
        assert response.json()["redirect_to"] == f"/employee-login/{R1}"

    def test_stranger_cannot_purge_a_session(self, client, cashier_headers):
        scope_id = verify_scope_token(cashier_headers[SCOPE_HEADER], R1)["sub"]
        response = client.get(f"/api/restaurants/{R2}/auth/session", headers={SCOPE_HEADER: scope_id})
        assert response.status_code == 401

        response = client.get(f"/api/restaurants/{R1}/auth/session", headers=cashier_headers)
        assert response.status_code == 200

    def test_token_signed_with_another_secret_is_rejected(self, client, cashier_headers):
        claims = verify_scope_token(cashier_headers[SCOPE_HEADER], R1)
        forged = jwt.encode(
            {**claims, "iss": JWT_ISSUER, "aud": JWT_AUDIENCE},
            "not-the-server-secret-not-the-server-secret",
            algorithm="HS256",
        )
        response = client.get(f"{_cash()}/active", headers={SCOPE_HEADER: forged})
        assert response.status_code == 401

    def test_expired_token_is_rejected(self, client, cashier_headers):
        scope_id = verify_scope_token(cashier_headers[SCOPE_HEADER], R1)["sub"]
        expired = sign_scope_token(scope_id, R1, "Caixa", ttl_seconds=-60)
        response = client.get(f"{_cash()}/active", headers={SCOPE_HEADER: expired})
        assert response.status_code == 401

    def test_signed_token_of_unknown_scope_is_rejected(self, client):
        token = sign_scope_token("never-logged-in", R1, "Caixa")
        response = client.get(f"{_cash()}/active", headers={SCOPE_HEADER: token})
        assert response.status_code == 401
        assert response.json()["code"] == "SESSION_REQUIRED"

    def test_missing_header_is_rejected(self, client):
        response = client.get(f"{_cash()}/active")
        assert response.status_code == 401


class TestWorkstationEndpoint:
    def test_kitchen(self, client, login_as):
        headers = login_as(R1, "2222", "1111")
        response = client.get(f"/api/restaurants/{R1}/workstation", headers=headers)
        assert response.status_code == 200
        assert response.json()["path"] == f"/kds/{R1}"
        assert response.json()["topics"] == ["ordersChanged"]

    def test_unmapped_role(self, client, login_as):
        headers = login_as(R1, "5555", "1111")
        response = client.get(f"/api/restaurants/{R1}/workstation", headers=headers)
        assert response.status_code == 422
        assert response.json()["code"] == "UNMAPPED_ROLE"

    def test_plan_gate_redirects_to_admin_dashboard(self, client, login_as):
        headers = login_as(DIGITAL, "8888", "1111")
        response = client.get(f"/api/restaurants/{DIGITAL}/workstation", headers=headers)
        assert response.status_code == 403
        assert response.json()["redirect_to"] == f"/admin/dashboard/{DIGITAL}"

    def test_reception_on_digital_plan(self, client, login_as):
        headers = login_as(DIGITAL, "9999", "1111")
        response = client.get(f"/api/restaurants/{DIGITAL}/workstation", headers=headers)
        assert response.status_code == 200
        assert response.json()["workstation"] == "reception"


class TestCashEndpoints:
    def test_full_shift(self, client, cashier_headers):
        response = client.get(f"{_cash()}/active", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json() is None

        response = client.post(f"{_cash()}/sessions", json={"opening_balance": "50.00"}, headers=cashier_headers)
        assert response.status_code == 201
        session = response.json()
        assert session["opened_by"] == "Ana Souza"
        assert Decimal(session["opening_balance"]) == Decimal("50.00")

        response = client.post(
            f"{_cash()}/sessions/{session['id']}/reinforcements",
            json={"amount": "30.00", "reason": "Troco"},
            headers=cashier_headers,
        )
        assert response.status_code == 201
        reinforcement = response.json()

        response = client.post(
            f"{_cash()}/sales",
            json={"order_id": "o1", "payment_method": "Dinheiro", "amount": "12.00"},
            headers=cashier_headers,
        )
        assert response.json() == {"recorded": True}

        response = client.post(
            f"{_cash()}/payouts",
            json={"amount": "2.00", "recipient": "Entregador", "reason": "Gorjeta"},
            headers=cashier_headers,
        )
        assert response.status_code == 201
        payout = response.json()

        response = client.post(f"{_cash()}/cancellations", json={"quantity": 1}, headers=cashier_headers)
        assert response.json() == {"recorded": True}

        response = client.post(
            f"{_cash()}/sessions/{session['id']}/close",
            json={"closing_balance": "90.00"},
            headers=cashier_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "closed"
        assert response.json()["closed_by"] == "Ana Souza"

        response = client.get(f"{_cash()}/sessions/{session['id']}/report", headers=cashier_headers)
        report = response.json()
        assert Decimal(report["expected_cash"]) == Decimal("90.00")
        assert Decimal(report["difference"]) == Decimal("0")

        response = client.get(f"/api/restaurants/{R1}/receipts/reinforcements/{reinforcement['id']}", headers=cashier_headers)
        assert response.status_code == 200
        assert "R$ 30,00" in response.json()["receipt"]

        response = client.get(f"/api/restaurants/{R1}/receipts/payouts/{payout['id']}", headers=cashier_headers)
        assert "RECIBO DE SANGRIA" in response.json()["receipt"]

        assert client.get(f"{_cash()}/active", headers=cashier_headers).json() is None
        assert len(client.get(f"{_cash()}/sessions", headers=cashier_headers).json()) == 1

    def test_double_open_conflict(self, client, cashier_headers):
        client.post(f"{_cash()}/sessions", json={"opening_balance": "50"}, headers=cashier_headers)
        response = client.post(f"{_cash()}/sessions", json={"opening_balance": "50"}, headers=cashier_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_OPEN"

    def test_reinforce_closed_session(self, client, cashier_headers):
        session = client.post(f"{_cash()}/sessions", json={"opening_balance": "50"}, headers=cashier_headers).json()
        client.post(f"{_cash()}/sessions/{session['id']}/close", json={"closing_balance": "50"}, headers=cashier_headers)

        response = client.post(
            f"{_cash()}/sessions/{session['id']}/reinforcements",
            json={"amount": "10", "reason": "Troco"},
            headers=cashier_headers,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "SESSION_NOT_OPEN"

    def test_invalid_amount(self, client, cashier_headers):
        session = client.post(f"{_cash()}/sessions", json={"opening_balance": "50"}, headers=cashier_headers).json()
        response = client.post(
            f"{_cash()}/sessions/{session['id']}/reinforcements",
            json={"amount": "-10", "reason": "Troco"},
            headers=cashier_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_AMOUNT"

    def test_requires_cashier_role(self, client, login_as):
        headers = login_as(R1, "2222", "1111")
        response = client.get(f"{_cash()}/active", headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "SESSION_SCOPE_MISMATCH"

    def test_requires_session(self, client):
        response = client.get(f"{_cash()}/active", headers={SCOPE_HEADER: "fresh-tab"})
        assert response.status_code == 401
        assert response.json()["redirect_to"] == f"/employee-login/{R1}"

    def test_requires_complete_plan(self, client, login_as):
        headers = login_as(DIGITAL, "8888", "1111")
        response = client.get(f"{_cash(DIGITAL)}/active", headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "PLAN_REQUIRED"

    def test_session_of_other_restaurant_is_not_found(self, client, cashier_headers, login_as):
        other_headers = login_as(R2, "7777", "4321")
        other = client.post(f"{_cash(R2)}/sessions", json={"opening_balance": "10"}, headers=other_headers).json()

        response = client.post(
            f"{_cash()}/sessions/{other['id']}/close",
            json={"closing_balance": "10"},
            headers=cashier_headers,
        )
        assert response.status_code == 404

    def test_unknown_receipt(self, client, cashier_headers):
        response = client.get(f"/api/restaurants/{R1}/receipts/reinforcements/reinforcement-1", headers=cashier_headers)
        assert response.status_code == 404


class TestWaitlistEndpoints:
    def test_waitlist_flow(self, client, reception_headers):
        base = f"/api/restaurants/{R1}/waitlist"
        response = client.post(base, json={"name": "Maria", "phone": "1199", "party_size": 3}, headers=reception_headers)
        assert response.status_code == 201
        item = response.json()
        assert item["status"] == "Aguardando"

        response = client.patch(f"{base}/{item['id']}", json={"status": "Chamado"}, headers=reception_headers)
        assert response.json()["status"] == "Chamado"

        response = client.patch(f"{base}/{item['id']}", json={"status": "Aguardando"}, headers=reception_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TRANSITION"

        assert client.delete(f"{base}/{item['id']}", headers=reception_headers).status_code == 204
        assert client.get(base, headers=reception_headers).json() == []

    def test_party_size_validation(self, client, reception_headers):
        response = client.post(
            f"/api/restaurants/{R1}/waitlist",
            json={"name": "Maria", "phone": "1199", "party_size": 0},
            headers=reception_headers,
        )
        assert response.status_code == 422


class TestChangeFeed:
    def test_feed_forwards_topics(self, client, store, cashier_headers):
        scope = cashier_headers[SCOPE_HEADER]
        with client.websocket_connect(f"/ws/changes/{R1}?scope={scope}") as websocket:
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

            store.write("waitlist-r", [], topic="waitlistChanged")
            assert websocket.receive_json() == {"type": "waitlistChanged"}

    def test_feed_requires_session(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/ws/changes/{R1}?scope=nobody") as websocket:
                websocket.receive_text()
        assert exc_info.value.code == 4401

    def test_feed_validates_the_session_off_the_event_loop(self, client, cashier_headers, monkeypatch):
        validate = EmployeeAuthGuard.validate_session
        calls = []

        def recording_validate(self, *args, **kwargs):
            try:
                asyncio.get_running_loop()
                calls.append("event loop")
            except RuntimeError:
                calls.append("worker thread")
            return validate(self, *args, **kwargs)

        monkeypatch.setattr(EmployeeAuthGuard, "validate_session", recording_validate)
        scope = cashier_headers[SCOPE_HEADER]
        with client.websocket_connect(f"/ws/changes/{R1}?scope={scope}") as websocket:
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

        assert calls == ["worker thread"]

    def test_feed_rejects_bare_scope_id(self, client, cashier_headers):
        scope_id = verify_scope_token(cashier_headers[SCOPE_HEADER], R1)["sub"]
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/ws/changes/{R1}?scope={scope_id}") as websocket:
                websocket.receive_text()
        assert exc_info.value.code == 4401


class TestOrderEndpoints:
    """Waiter writes, kitchen bumps, cashier charges."""

    def _open_order(self, client, waiter_headers) -> dict:
        response = client.put(
            f"/api/restaurants/{R1}/orders",
            json={
                "table_id": "mesa-7",
                "table_number": "7",
                "items": [
                    {"item_id": "pizza", "quantity": 2, "unit_price": "40.00"},
                    {"item_id": "suco", "quantity": 1, "unit_price": "8.00", "department": "Copa"},
                ],
            },
            headers=waiter_headers,
        )
        assert response.status_code == 200
        return response.json()

    def test_full_table_flow(self, client, waiter_headers, kitchen_headers, cashier_headers):
        client.post(f"{_cash()}/sessions", json={"opening_balance": "50"}, headers=cashier_headers)
        order = self._open_order(client, waiter_headers)

        queue = client.get(f"/api/restaurants/{R1}/kitchen/queue", params={"department": "Cozinha"}, headers=kitchen_headers).json()
        assert [t["item"]["item_id"] for t in queue] == ["pizza"]

        pizza = queue[0]["item"]["line_id"]
        response = client.post(
            f"/api/restaurants/{R1}/kitchen/items/status",
            json={"lines": [{"order_id": order["id"], "line_id": pizza}], "status": "Pronto"},
            headers=kitchen_headers,
        )
        assert response.status_code == 200
        assert response.json()[0]["items"][0]["status"] == "Pronto"

        suco = order["items"][1]["line_id"]
        response = client.post(f"/api/restaurants/{R1}/orders/{order['id']}/items/{suco}/cancel", headers=waiter_headers)
        assert response.json()["cancelled"] is True
        assert response.json()["order"]["items"][1]["cancelled_by"] == "Davi Rocha"

        response = client.post(
            f"/api/restaurants/{R1}/orders/{order['id']}/finalize",
            json={"payment_method": "Dinheiro", "include_service_fee": True, "amount_paid": "100.00"},
            headers=cashier_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["sale_recorded"] is True
        assert Decimal(body["order"]["total"]) == Decimal("88.00")

        session = client.get(f"{_cash()}/active", headers=cashier_headers).json()
        report = client.get(f"{_cash()}/sessions/{session['id']}/report", headers=cashier_headers).json()
        assert Decimal(report["cash_sales"]) == Decimal("88.00")
        assert Decimal(report["expected_cash"]) == Decimal("138.00")
        assert report["cancelled_items"] == 1

        assert client.get(f"/api/restaurants/{R1}/orders", headers=waiter_headers).json() == []

    def test_orders_are_readable_from_the_cashier(self, client, waiter_headers, cashier_headers):
        order = self._open_order(client, waiter_headers)
        response = client.get(f"/api/restaurants/{R1}/orders/{order['id']}", headers=cashier_headers)
        assert response.json()["table_number"] == "7"

    def test_kitchen_cannot_write_orders(self, client, kitchen_headers):
        response = client.put(
            f"/api/restaurants/{R1}/orders",
            json={"table_id": "mesa-1", "table_number": "1", "items": []},
            headers=kitchen_headers,
        )
        assert response.status_code == 403
        assert response.json()["code"] == "SESSION_SCOPE_MISMATCH"

    def test_reception_cannot_read_orders(self, client, reception_headers):
        response = client.get(f"/api/restaurants/{R1}/orders", headers=reception_headers)
        assert response.status_code == 403

    def test_waiter_cannot_finalize(self, client, waiter_headers):
        order = self._open_order(client, waiter_headers)
        response = client.post(
            f"/api/restaurants/{R1}/orders/{order['id']}/finalize",
            json={"payment_method": "Pix"},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_finalized_order_conflict(self, client, waiter_headers, cashier_headers):
        order = self._open_order(client, waiter_headers)
        url = f"/api/restaurants/{R1}/orders/{order['id']}/finalize"
        client.post(url, json={"payment_method": "Pix"}, headers=cashier_headers)

        response = client.post(url, json={"payment_method": "Pix"}, headers=cashier_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "ORDER_FINALIZED"

    def test_unknown_order(self, client, waiter_headers):
        response = client.get(f"/api/restaurants/{R1}/orders/order-1", headers=waiter_headers)
        assert response.status_code == 404

    def test_feed_forwards_order_writes(self, client, kitchen_headers, waiter_headers):
        scope = kitchen_headers[SCOPE_HEADER]
        with client.websocket_connect(f"/ws/changes/{R1}?scope={scope}") as websocket:
            self._open_order(client, waiter_headers)
            assert websocket.receive_json() == {"type": "ordersChanged"}
