"""
End-to-end API flows through the Flask test client.

Verifies:
- Shop places an order; admin moves it through the pipeline
- Deliver + collect in one call
- Every balance view returns the recomputed figure
- Admin shop management and dashboards
"""

import pytest
from sqlalchemy import update

from wholesale.models import Shop
from wholesale.models.shops import SHOP_STATUS_PENDING

from conftest import SHOP_PASSWORD


def _place(client, headers, products, *pairs, **extra):
    body = {"items": [{"product_id": products[k].id, "quantity": q} for k, q in pairs]}
    body.update(extra)
    return client.post("/api/orders/", json=body, headers=headers)


class TestOrderFlow:

    def test_place_and_deliver(self, client, products, shop_headers, admin_headers):
        resp = _place(client, shop_headers, products, ("mixture", 2), ("bhel", 1), notes="Before 10am")
        assert resp.status_code == 201
        order = resp.json
        assert order["order_number"] == "ORD001001"
        assert order["total_amount_paise"] == 25000
        assert order["status"] == "pending"
        assert len(order["items"]) == 2

        for status in ("confirmed", "packed", "out_for_delivery"):
            resp = client.patch(f"/api/orders/{order['id']}", json={"status": status}, headers=admin_headers)
            assert resp.status_code == 200
            assert resp.json["status"] == status

        resp = client.post(
            f"/api/orders/{order['id']}/deliver",
            json={"collect_payment": {"amount_paise": 10000, "mode": "cash"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["order"]["delivered_at"] is not None
        assert resp.json["payment"]["amount_paise"] == 10000

        balance = client.get("/api/shop/balance", headers=shop_headers).json
        assert balance["pending_balance_paise"] == 15000
        assert [e["type"] for e in balance["ledger"]] == ["payment", "order"]

    def test_place_order_errors(self, client, db_session, products, shop_headers):
        assert client.post("/api/orders/", json={"items": []}, headers=shop_headers).status_code == 400

        resp = client.post(
            "/api/orders/",
            json={"items": [{"product_id": 9999, "quantity": 1}]},
            headers=shop_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Product not found: 9999"

    def test_pending_shop_cannot_order(self, client, db_session, shop, products, shop_headers):
        db_session.execute(update(Shop).where(Shop.id == shop.id).values(status=SHOP_STATUS_PENDING))
        db_session.commit()

        resp = _place(client, shop_headers, products, ("mixture", 1))
        assert resp.status_code == 400
        assert resp.json["error"] == "Shop is not approved"

    def test_invalid_status(self, client, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        resp = client.patch(f"/api/orders/{order['id']}", json={"status": "lost"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_order(self, client, admin_headers):
        resp = client.patch("/api/orders/4040", json={"status": "confirmed"}, headers=admin_headers)
        assert resp.status_code == 404

    def test_repeated_delivered_patch_counts_once(self, client, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 5)).json
        for _ in range(2):
            resp = client.patch(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)
            assert resp.status_code == 200

        balance = client.get("/api/shop/balance", headers=shop_headers).json
        assert balance["pending_balance_paise"] == 50000

    def test_shop_sees_only_own_orders(self, client, make_shop, products, shop_headers):
        from wholesale.services import order_service

        other = make_shop(name="Other", email="other@shops.test")
        foreign = order_service.place_order(other.id, [{"product_id": products["bhel"].id, "quantity": 1}])
        mine = _place(client, shop_headers, products, ("mixture", 1)).json

        listed = client.get("/api/orders/", headers=shop_headers).json
        assert [o["id"] for o in listed["items"]] == [mine["id"]]
        assert client.get(f"/api/orders/{foreign.id}", headers=shop_headers).status_code == 404
        assert client.get(f"/api/orders/{mine['id']}", headers=shop_headers).status_code == 200

    def test_multi_shop_account(self, client, make_shop, shop, products, shop_headers):
        branch = make_shop(name="Lakshmi Branch")

        resp = _place(client, shop_headers, products, ("bhel", 2), shop_id=branch.id)
        assert resp.status_code == 201
        assert resp.json["shop_id"] == branch.id

        shops = client.get("/api/shop/shops", headers=shop_headers).json
        assert {s["id"] for s in shops["items"]} == {shop.id, branch.id}

        listed = client.get(f"/api/orders/?shop_id={branch.id}", headers=shop_headers).json
        assert listed["count"] == 1


class TestProducts:

    def test_shop_sees_active_products(self, client, products, shop_headers):
        resp = client.get("/api/products/", headers=shop_headers)
        names = {p["name"] for p in resp.json["items"]}
        assert names == {"Sweet Mixture", "Karam Bhel"}

        resp = client.get("/api/products/?category=bhel", headers=shop_headers)
        assert [p["name"] for p in resp.json["items"]] == ["Karam Bhel"]

        assert client.get(f"/api/products/{products['retired'].id}", headers=shop_headers).status_code == 404

    def test_admin_create_and_update(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/products/",
            json={"name": "Banana Chips", "category": "chips", "rate_paise": 21000, "unit_type": "kg"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        product_id = resp.json["id"]

        resp = client.patch(f"/api/products/{product_id}", json={"rate_paise": 22000}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["rate_paise"] == 22000

    def test_is_active_must_be_boolean(self, client, products, admin_headers):
        product_id = products["mixture"].id
        resp = client.patch(f"/api/products/{product_id}", json={"is_active": "false"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.patch(f"/api/products/{product_id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["is_active"] is False

    @pytest.mark.parametrize("payload", [
        {"name": "X", "category": "cakes", "rate_paise": 100},
        {"name": "X", "category": "chips", "rate_paise": 10.5},
        {"name": "X", "category": "chips"},
        {"name": "X", "category": "chips", "rate_paise": 100, "sku": "nope"},
    ])
    def test_invalid_product(self, client, db_session, admin_headers, payload):
        resp = client.post("/api/products/", json=payload, headers=admin_headers)
        assert resp.status_code == 400


class TestPaymentsApi:

    def test_record_and_list(self, client, shop, admin_headers):
        resp = client.post(
            "/api/payments/",
            json={"shop_id": shop.id, "amount_paise": 5000, "mode": "upi", "reference": "U1"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["recorded_by_name"] == "Owner"

        listed = client.get(f"/api/payments/?shop_id={shop.id}", headers=admin_headers).json
        assert listed["count"] == 1

    def test_missing_fields(self, client, shop, admin_headers):
        resp = client.post("/api/payments/", json={"shop_id": shop.id, "mode": "cash"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_ids_sent_as_strings(self, client, shop, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        resp = client.post(
            "/api/payments/",
            json={"shop_id": str(shop.id), "amount_paise": 10000, "mode": "cash", "order_id": str(order["id"])},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["shop_id"] == shop.id
        assert resp.json["order_id"] == order["id"]

    @pytest.mark.parametrize("shop_id", ["abc", "-1", 1.5, [1]])
    def test_malformed_shop_id(self, client, db_session, admin_headers, shop_id):
        resp = client.post(
            "/api/payments/",
            json={"shop_id": shop_id, "amount_paise": 100, "mode": "cash"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_credit_mode_payment_is_recorded(self, client, shop, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        client.patch(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)

        resp = client.post(
            "/api/payments/",
            json={"shop_id": shop.id, "amount_paise": 4000, "mode": "credit"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert client.get("/api/shop/balance", headers=shop_headers).json["pending_balance_paise"] == 6000


class TestAdminShops:

    def test_approve_pending_shop(self, client, make_shop, admin_headers):
        pending = make_shop(name="New", email="new@shops.test", status=SHOP_STATUS_PENDING)

        listed = client.get("/api/admin/shops/?status=pending", headers=admin_headers).json
        assert [s["id"] for s in listed["items"]] == [pending.id]

        resp = client.patch(f"/api/admin/shops/{pending.id}", json={"status": "approved"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "approved"
        assert resp.json["approved_at"] is not None

    def test_cannot_return_to_pending(self, client, shop, admin_headers):
        resp = client.patch(f"/api/admin/shops/{shop.id}", json={"status": "pending"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_credit_limit_update(self, client, shop, admin_headers):
        resp = client.patch(
            f"/api/admin/shops/{shop.id}", json={"credit_limit_paise": 500000}, headers=admin_headers
        )
        assert resp.json["credit_limit_paise"] == 500000

        resp = client.patch(f"/api/admin/shops/{shop.id}", json={"credit_limit_paise": -1}, headers=admin_headers)
        assert resp.status_code == 400

    def test_list_heals_drift(self, client, db_session, shop, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        client.patch(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)
        db_session.execute(update(Shop).where(Shop.id == shop.id).values(pending_balance_paise=1))
        db_session.commit()

        listed = client.get("/api/admin/shops/", headers=admin_headers).json
        assert listed["items"][0]["pending_balance_paise"] == 10000
        assert listed["items"][0]["order_count"] == 1
        assert db_session.get(Shop, shop.id).pending_balance_paise == 10000

    def test_shop_detail_and_ledger(self, client, shop, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 3)).json
        client.post(
            f"/api/orders/{order['id']}/deliver",
            json={"collect_payment": {"amount_paise": 30000, "mode": "bank_transfer"}},
            headers=admin_headers,
        )

        detail = client.get(f"/api/admin/shops/{shop.id}", headers=admin_headers).json
        assert detail["stats"] == {
            "order_count": 1,
            "total_order_value_paise": 30000,
            "total_payments_paise": 30000,
            "pending_balance_paise": 0,
        }
        assert len(detail["recent_orders"]) == 1
        assert len(detail["recent_payments"]) == 1

        ledger = client.get(f"/api/admin/shops/{shop.id}/ledger", headers=admin_headers).json
        assert len(ledger["ledger"]) == 2

        assert client.get("/api/admin/shops/999", headers=admin_headers).status_code == 404


class TestShopViews:

    def _overpay(self, client, shop, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        client.patch(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)
        client.post(
            "/api/payments/",
            json={"shop_id": shop.id, "amount_paise": 30000, "mode": "cash"},
            headers=admin_headers,
        )

    def test_profile_after_overpayment(self, client, db_session, shop, products, shop_headers, admin_headers):
        self._overpay(client, shop, products, shop_headers, admin_headers)
        assert db_session.get(Shop, shop.id).pending_balance_paise == -20000

        resp = client.get("/api/shop/profile", headers=shop_headers)
        assert resp.status_code == 200
        assert resp.json["pending_balance_paise"] == 0
        assert db_session.get(Shop, shop.id).pending_balance_paise == 0

    def test_shop_lists_after_overpayment(self, client, shop, products, shop_headers, admin_headers):
        self._overpay(client, shop, products, shop_headers, admin_headers)

        shops = client.get("/api/shop/shops", headers=shop_headers).json["items"]
        assert [s["pending_balance_paise"] for s in shops] == [0]

        me = client.get("/api/auth/me", headers=shop_headers).json
        assert [s["pending_balance_paise"] for s in me["shops"]] == [0]

    def test_login_after_overpayment(self, client, shop, products, shop_headers, admin_headers):
        self._overpay(client, shop, products, shop_headers, admin_headers)

        login = client.post("/api/auth/login", json={"email": "lakshmi@shops.test", "password": SHOP_PASSWORD}).json
        assert login["shop"]["pending_balance_paise"] == 0
        assert [s["pending_balance_paise"] for s in login["shops"]] == [0]

    def test_admin_update_after_overpayment(self, client, shop, products, shop_headers, admin_headers):
        self._overpay(client, shop, products, shop_headers, admin_headers)

        resp = client.patch(f"/api/admin/shops/{shop.id}", json={"mobile": "9000000099"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pending_balance_paise"] == 0


class TestDashboards:

    def test_admin_dashboard(self, client, make_shop, products, shop_headers, admin_headers):
        make_shop(name="Waiting", email="wait@shops.test", status=SHOP_STATUS_PENDING)
        first = _place(client, shop_headers, products, ("mixture", 2)).json
        _place(client, shop_headers, products, ("bhel", 1))
        client.post(
            f"/api/orders/{first['id']}/deliver",
            json={"collect_payment": {"amount_paise": 5000, "mode": "cash"}},
            headers=admin_headers,
        )

        data = client.get("/api/admin/dashboard", headers=admin_headers).json
        assert data["total_sales_this_month_paise"] == 20000
        assert data["total_orders_this_month"] == 2
        assert data["today_orders"] == 2
        assert data["total_payments_this_month_paise"] == 5000
        assert data["pending_balance_paise"] == 15000
        assert data["pending_orders"] == 1
        assert data["active_shops"] == 1
        assert data["pending_shops"] == 1
        assert len(data["recent_orders"]) == 2

    def test_shop_dashboard(self, client, products, shop_headers, admin_headers):
        order = _place(client, shop_headers, products, ("mixture", 1)).json
        client.patch(f"/api/orders/{order['id']}", json={"status": "delivered"}, headers=admin_headers)

        data = client.get("/api/shop/dashboard", headers=shop_headers).json
        assert data["pending_balance_paise"] == 10000
        assert data["total_orders"] == 1
        assert data["last_order"]["status"] == "delivered"

    def test_health(self, client, db_session, shop, products, shop_headers):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["ok"] is True
        ordering = resp.json["checks"]["ordering"]
        assert ordering["next_order_number"] == "ORD001001"
        assert ordering["approved_shops"] == 1
        assert ordering["active_products"] == 2

        _place(client, shop_headers, products, ("bhel", 1))
        resp = client.get("/api/health")
        assert resp.json["checks"]["ordering"]["next_order_number"] == "ORD001002"
