"""
HTTP API tests.

Verifies:
- Missing tokens return 401, malformed tokens 400, revoked tokens 401
- Employees are denied admin endpoints (403)
- The main flows work end to end: login, sale, report, rollover, raffle
"""

import pytest

from comptoir.extensions import db
from comptoir.models import Product, Transaction
from conftest import PASSWORD, auth_headers, make_user, reload


# =============================================================================
# AUTHENTICATION: 401 / 400
# =============================================================================


class TestAuthentication:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/products"),
            ("POST", "/api/transactions"),
            ("GET", "/api/transactions/me"),
            ("GET", "/api/expenses"),
            ("GET", "/api/expense-notes/me"),
            ("GET", "/api/reports/leaderboard"),
            ("GET", "/api/settings"),
            ("POST", "/api/tombola"),
            ("GET", "/api/market/products"),
            ("POST", "/api/scores"),
            ("GET", "/api/events/stream"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Authentication required"

    def test_malformed_token(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 400

    def test_unknown_token(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("ab" * 32))
        assert resp.status_code == 401

    def test_login_logout(self, client, employee):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["username"] == "alice"
        assert "password_hash" not in body["user"]

        headers = auth_headers(body["token"])
        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_bad_credentials(self, client, employee):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "Wrong123!"})
        assert resp.status_code == 401
        assert client.post("/api/auth/login", json={"username": "alice"}).status_code == 400

    def test_deactivated_user_token_stops_working(self, client, admin_headers, employee, employee_headers):
        resp = client.put(f"/api/users/{employee.id}/status", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["is_active"] is False
        assert client.get("/api/auth/me", headers=employee_headers).status_code == 401

    def test_register_with_invitation(self, client, admin_headers):
        code = client.post("/api/users/generate-code", headers=admin_headers).get_json()["invitation_code"]

        resp = client.post("/api/auth/register", json={
            "username": "recrue",
            "password": PASSWORD,
            "invitation_code": code,
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["grade"] == "Novice"

        again = client.post("/api/auth/register", json={
            "username": "recrue2",
            "password": PASSWORD,
            "invitation_code": code,
        })
        assert again.status_code == 400


# =============================================================================
# EMPLOYEE DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestEmployeeDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users/generate-code"),
            ("POST", "/api/products"),
            ("DELETE", "/api/products/1"),
            ("GET", "/api/transactions"),
            ("DELETE", "/api/transactions/1"),
            ("POST", "/api/expenses"),
            ("GET", "/api/expense-notes"),
            ("PUT", "/api/expense-notes/1/approve"),
            ("GET", "/api/reports/financial-summary"),
            ("GET", "/api/reports/employee-performance"),
            ("GET", "/api/reports/menu-sales"),
            ("PUT", "/api/settings"),
            ("POST", "/api/settings/new-week"),
            ("POST", "/api/settings/account-balance"),
            ("POST", "/api/tombola/draw"),
            ("POST", "/api/tombola/reset-tickets"),
            ("POST", "/api/market/products"),
            ("GET", "/api/market/sales"),
        ],
    )
    def test_admin_only(self, client, employee_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=employee_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_cannot_change_own_role(self, client, admin, admin_headers):
        resp = client.put(f"/api/users/{admin.id}", json={"role": "employe"}, headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# REQUEST BODIES: 400
# =============================================================================


class TestRequestBodies:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/auth/register"),
            ("POST", "/api/auth/login"),
            ("PUT", "/api/users/1"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("PUT", "/api/products/1/restock"),
            ("POST", "/api/transactions"),
            ("POST", "/api/expenses"),
            ("POST", "/api/expense-notes"),
            ("PUT", "/api/expense-notes/1/reject"),
            ("PUT", "/api/settings"),
            ("POST", "/api/settings/delivery-status"),
            ("POST", "/api/settings/account-balance"),
            ("POST", "/api/tombola"),
            ("POST", "/api/market/products"),
            ("PUT", "/api/market/products/1"),
            ("POST", "/api/market/sales"),
            ("POST", "/api/scores"),
        ],
    )
    @pytest.mark.parametrize("body", [[1, 2], ["bonus_percentage"], "cart", 42])
    def test_non_object_body(self, client, admin_headers, method, path, body):
        resp = getattr(client, method.lower())(path, json=body, headers=admin_headers)
        assert resp.status_code == 400, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Request body must be a JSON object"

    def test_rejected_body_changes_nothing(self, client, admin_headers, burger):
        resp = client.post("/api/transactions", json=[{"product_id": burger.id, "quantity": 1}], headers=admin_headers)
        assert resp.status_code == 400
        assert reload(burger).stock == 5
        assert db.session.query(Transaction).count() == 0


# =============================================================================
# SALES
# =============================================================================


class TestTransactionsApi:

    def test_retail_sale(self, client, employee_headers, burger):
        resp = client.post("/api/transactions", json={
            "cart": [{"product_id": burger.id, "quantity": 3, "price": 10, "cost": 4}],
        }, headers=employee_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["message"] == "Transaction de 30.00$ répartie entre 1 employé(s) !"
        assert body["sale_type"] == "particulier"
        assert body["transactions"][0]["total_amount"] == 30
        assert reload(burger).stock == 2

        mine = client.get("/api/transactions/me", headers=employee_headers).get_json()
        assert [t["sale_group"] for t in mine] == [body["sale_group"]]

    def test_corporate_sale(self, client, employee, other_employee, employee_headers, burger):
        resp = client.post("/api/transactions", json={
            "cart": [{"product_id": burger.id, "quantity": 3, "price": 10, "cost": 4}],
            "employee_ids": [employee.id, other_employee.id],
        }, headers=employee_headers)

        assert resp.status_code == 201
        rows = resp.get_json()["transactions"]
        assert [(r["total_amount"], r["total_cost"], r["margin"]) for r in rows] == [(15, 6, 9), (15, 6, 9)]
        assert reload(burger).stock == 5

    def test_insufficient_stock(self, client, employee_headers, burger):
        resp = client.post("/api/transactions", json={
            "cart": [{"product_id": burger.id, "quantity": 6}],
        }, headers=employee_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Stock insuffisant pour : Burger"
        assert db.session.query(Transaction).count() == 0

    def test_unknown_product(self, client, employee_headers):
        resp = client.post("/api/transactions", json={
            "cart": [{"product_id": 77, "quantity": 1}],
        }, headers=employee_headers)
        assert resp.status_code == 404

    def test_admin_lists_and_deletes(self, client, admin_headers, employee_headers, burger):
        client.post("/api/transactions", json={
            "cart": [{"product_id": burger.id, "quantity": 1}],
        }, headers=employee_headers)

        rows = client.get("/api/transactions?week=1", headers=admin_headers).get_json()
        assert len(rows) == 1
        assert client.get("/api/transactions?week=2", headers=admin_headers).get_json() == []

        assert client.delete(f"/api/transactions/{rows[0]['id']}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/transactions/{rows[0]['id']}", headers=admin_headers).status_code == 404
        assert client.get("/api/transactions", headers=admin_headers).get_json() == []


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductsApi:

    def test_crud(self, client, admin_headers, employee_headers):
        resp = client.post("/api/products", json={
            "name": "Limonade", "category": "Boissons", "price": 3, "cost": 1, "stock": 12,
        }, headers=admin_headers)
        assert resp.status_code == 201
        product_id = resp.get_json()["id"]

        listed = client.get("/api/products", headers=employee_headers).get_json()
        assert [p["name"] for p in listed] == ["Limonade"]

        resp = client.put(f"/api/products/{product_id}", json={"price": 3.5}, headers=admin_headers)
        assert resp.get_json()["price"] == 3.5
        listed = client.get("/api/products", headers=employee_headers).get_json()
        assert listed[0]["price"] == 3.5

        assert client.delete(f"/api/products/{product_id}", headers=admin_headers).status_code == 200
        assert db.session.get(Product, product_id) is None

    def test_invalid_category(self, client, admin_headers):
        resp = client.post("/api/products", json={
            "name": "Mystère", "category": "Divers", "price": 3, "cost": 1,
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_restock(self, client, employee_headers, burger):
        resp = client.put(f"/api/products/{burger.id}/restock", json={"stock": 40}, headers=employee_headers)
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 40

        resp = client.put(f"/api/products/{burger.id}/restock", json={"stock": -1}, headers=employee_headers)
        assert resp.status_code == 400


# =============================================================================
# EXPENSES AND NOTES
# =============================================================================


class TestExpensesApi:

    def test_expense_note_flow(self, client, admin_headers, employee_headers):
        resp = client.post("/api/expense-notes", json={
            "first_name": "Alice",
            "last_name": "Martin",
            "date": "2026-10-12",
            "image_url": "https://img.comptoir.test/r.png",
            "amount": 45,
        }, headers=employee_headers)
        assert resp.status_code == 201
        note_id = resp.get_json()["expense_note"]["id"]

        pending = client.get("/api/expense-notes?status=pending", headers=admin_headers).get_json()
        assert [n["id"] for n in pending] == [note_id]

        resp = client.put(f"/api/expense-notes/{note_id}/approve", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["expense"]["category"] == "Frais Véhicule"

        again = client.put(f"/api/expense-notes/{note_id}/approve", headers=admin_headers)
        assert again.status_code == 400

        expenses = client.get("/api/expenses", headers=admin_headers).get_json()
        assert [e["amount"] for e in expenses] == [45]

    def test_bad_status_filter(self, client, admin_headers):
        assert client.get("/api/expense-notes?status=lost", headers=admin_headers).status_code == 400

    def test_create_and_delete_expense(self, client, admin_headers):
        resp = client.post("/api/expenses", json={"amount": 300, "category": "Frais Avocat"}, headers=admin_headers)
        assert resp.status_code == 201
        expense_id = resp.get_json()["id"]
        assert resp.get_json()["week_id"] == 1

        assert client.delete(f"/api/expenses/{expense_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/expenses/{expense_id}", headers=admin_headers).status_code == 404


# =============================================================================
# REPORTS, SETTINGS AND WEEK ROLLOVER
# =============================================================================


class TestReportsAndWeeks:

    def test_financial_summary_reflects_new_sales(self, client, admin_headers, employee_headers, burger):
        first = client.get("/api/reports/financial-summary", headers=admin_headers).get_json()
        assert first["total_revenue"] == 0

        client.post("/api/transactions", json={
            "cart": [{"product_id": burger.id, "quantity": 2}],
        }, headers=employee_headers)

        second = client.get("/api/reports/financial-summary?week=1", headers=admin_headers).get_json()
        assert second["total_revenue"] == 20
        assert second["gross_margin"] == 12

    def test_staff_reports(self, client, admin_headers, employee_headers, menu):
        client.post("/api/transactions", json={
            "cart": [{"product_id": menu.id, "quantity": 1}],
        }, headers=employee_headers)

        assert client.get("/api/reports/leaderboard", headers=employee_headers).get_json()[0]["employee_name"] == "alice"
        assert client.get("/api/reports/daily-sales/me", headers=employee_headers).get_json()[0]["sales"] == 20
        assert client.get("/api/reports/menu-sales", headers=admin_headers).get_json()[0]["menu_name"] == "Menu Classique"
        assert client.get("/api/reports/employee-performance", headers=admin_headers).status_code == 200
        assert client.get("/api/reports/weekly-sales-summary", headers=admin_headers).get_json()["employees"] == ["alice"]

    def test_new_week(self, client, admin_headers, employee_headers):
        assert client.get("/api/settings/current-week", headers=employee_headers).get_json() == {"current_week_id": 1}

        resp = client.post("/api/settings/new-week", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["new_week_id"] == 2
        assert body["salaries_posted"] == 1

        assert client.get("/api/settings/current-week", headers=employee_headers).get_json() == {"current_week_id": 2}
        salaries = client.get("/api/expenses?week=2", headers=admin_headers).get_json()
        assert [e["category"] for e in salaries] == ["Salaires"]

    def test_settings(self, client, admin_headers, employee_headers):
        resp = client.put("/api/settings", json={"bonus_percentage": 0.2}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/settings", headers=employee_headers).get_json()["bonus_percentage"] == 0.2

        assert client.put("/api/settings", json={"current_week_id": 9}, headers=admin_headers).status_code == 400

    def test_account_balance(self, client, admin_headers):
        resp = client.post("/api/settings/account-balance", json={"week": 1, "balance": 5000}, headers=admin_headers)
        assert resp.get_json() == {"message": "Solde du compte mis à jour.", "week": 1, "balance": 5000.0}

        summary = client.get("/api/reports/financial-summary?week=2", headers=admin_headers).get_json()
        assert summary["starting_balance"] == 5000

        missing = client.post("/api/settings/account-balance", json={"balance": 5000}, headers=admin_headers)
        assert missing.status_code == 400

    def test_delivery_status(self, client, admin_headers, employee_headers):
        resp = client.post("/api/settings/delivery-status", json={
            "is_active": True, "company_name": "Burger Shot",
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/settings/delivery-status", headers=employee_headers).get_json() == {
            "is_active": True,
            "company_name": "Burger Shot",
        }


# =============================================================================
# RAFFLE, MARKET AND SCORES
# =============================================================================


class TestRaffleApi:

    def _sell_ticket(self, client, headers, number):
        return client.post("/api/tombola", json={
            "first_name": "Jean", "last_name": "Dupont", "phone": "555-0101",
            "ticket_number": number, "price": 50,
        }, headers=headers)

    def test_draw_flow(self, client, admin_headers):
        for name in ("vendeur1", "vendeur2", "vendeur3"):
            make_user(name)
            headers = auth_headers(_login(client, name))
            assert self._sell_ticket(client, headers, f"{name}-1").status_code == 201

        assert self._sell_ticket(client, admin_headers, "vendeur1-1").status_code == 400

        resp = client.post("/api/tombola/draw", headers=admin_headers)
        assert resp.status_code == 200
        winners = resp.get_json()["winners"]
        assert all(winners[tier] for tier in ("first", "second", "third"))

        # Public board
        assert client.get("/api/tombola/winners").get_json()["winners"] == winners
        assert client.post("/api/tombola/draw", headers=admin_headers).status_code == 400

        reset = client.post("/api/tombola/reset-tickets", headers=admin_headers).get_json()
        assert reset["deleted"] == 3
        assert client.get("/api/tombola", headers=admin_headers).get_json() == {"tickets": []}

    def test_draw_needs_participants(self, client, admin_headers):
        self._sell_ticket(client, admin_headers, "solo-1")
        resp = client.post("/api/tombola/draw", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"participants": 1}


class TestMarketAndScoresApi:

    def test_market_sale(self, client, admin_headers, employee_headers):
        product = client.post("/api/market/products", json={
            "name": "Boule de Noël", "category": "Décoration", "price": 12, "cost": 5, "stock": 2,
        }, headers=admin_headers).get_json()

        resp = client.post("/api/market/sales", json={"items": [{"product_id": product["id"], "quantity": 3}]},
                           headers=employee_headers)
        assert resp.status_code == 400

        resp = client.post("/api/market/sales", json={"items": [{"product_id": product["id"], "quantity": 2}]},
                           headers=employee_headers)
        assert resp.status_code == 201
        assert resp.get_json()["total_amount"] == 24

        stocked = client.get(f"/api/market/products/{product['id']}", headers=employee_headers).get_json()
        assert stocked["stock"] == 0
        assert len(client.get("/api/market/sales", headers=admin_headers).get_json()) == 1

    def test_scores(self, client, employee_headers):
        payload = {"game_type": "tetris", "score": 500, "level": 3, "duration": 120}
        assert client.post("/api/scores", json=payload, headers=employee_headers).status_code == 201

        lower = dict(payload, score=100)
        resp = client.post("/api/scores", json=lower, headers=employee_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_score_rejected"] is True

        board = client.get("/api/scores/leaderboard/tetris?limit=5", headers=employee_headers).get_json()
        assert board["total"] == 1
        assert board["leaderboard"][0]["score"] == 500
        assert client.get("/api/scores/leaderboard/pong", headers=employee_headers).status_code == 400


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert "cache" in body["checks"]

    def test_cors_for_known_origin(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert "x-auth-token" in resp.headers["Access-Control-Allow-Headers"]

        other = client.get("/api/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in other.headers

    def test_event_stream_accepts_query_token(self, client, employee):
        token = _login(client, employee.username)
        assert client.get("/api/events/stream?token=bad").status_code == 400

        resp = client.get(f"/api/events/stream?token={token}")
        try:
            assert resp.status_code == 200
            assert resp.mimetype == "text/event-stream"
            assert next(iter(resp.response)) == b": connected\n\n"
        finally:
            resp.close()


def _login(client, username: str) -> str:
    resp = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
    return resp.get_json()["token"]