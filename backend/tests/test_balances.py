"""
Balance reconciliation and payments.

Verifies:
- pending = max(0, delivered totals - payments)
- Incremental and recompute paths agree after every committed mutation
- Drift in the cached field is healed on read
- Deliver + collect payment is one transaction
"""

import pytest
from sqlalchemy import update

from wholesale.models import Order, Payment, Shop
from wholesale.services import ledger_service, order_service, payment_service
from wholesale.services.balance_service import (
    BalanceError,
    compute_balance,
    find_drift,
    reconcile_all_balances,
    reconcile_balance,
)
from wholesale.services.order_service import OrderError
from wholesale.services.lifecycle_service import LifecycleError
from wholesale.services.payment_service import PaymentError
from wholesale.validation import ValidationError


def _delivered_order(shop, products, admin_user, qty=5):
    order = order_service.place_order(
        shop.id, [{"product_id": products["mixture"].id, "quantity": qty}]
    )
    return order_service.advance_status(order.id, "delivered", admin_user.id)


def _cached(db_session, shop_id):
    return db_session.get(Shop, shop_id).pending_balance_paise


class TestReconciliation:

    def test_new_shop_has_zero_balance(self, db_session, shop):
        summary = compute_balance(shop.id)
        assert summary.pending_balance_paise == 0
        assert summary.total_orders_value_paise == 0
        assert summary.total_payments_paise == 0

    def test_only_delivered_orders_count(self, db_session, shop, products, admin_user):
        _delivered_order(shop, products, admin_user, qty=5)
        open_order = order_service.place_order(
            shop.id, [{"product_id": products["bhel"].id, "quantity": 2}]
        )
        order_service.advance_status(open_order.id, "packed", admin_user.id)

        assert compute_balance(shop.id).pending_balance_paise == 50000

    def test_payment_then_overpayment_clamps(self, db_session, shop, products, admin_user):
        _delivered_order(shop, products, admin_user, qty=5)
        assert compute_balance(shop.id).pending_balance_paise == 50000

        payment_service.record_payment(shop.id, 50000, "cash", admin_user.id)
        assert compute_balance(shop.id).pending_balance_paise == 0

        payment_service.record_payment(shop.id, 20000, "upi", admin_user.id)
        summary = compute_balance(shop.id)
        assert summary.pending_balance_paise == 0
        assert summary.raw_balance_paise == -20000

    def test_paths_agree_after_each_mutation(self, db_session, shop, products, admin_user):
        _delivered_order(shop, products, admin_user, qty=3)
        assert _cached(db_session, shop.id) == compute_balance(shop.id).pending_balance_paise == 30000

        payment_service.record_payment(shop.id, 12000, "bank", admin_user.id)
        assert _cached(db_session, shop.id) == compute_balance(shop.id).pending_balance_paise == 18000

        _delivered_order(shop, products, admin_user, qty=1)
        assert _cached(db_session, shop.id) == compute_balance(shop.id).pending_balance_paise == 28000

    def test_drift_is_healed_on_read(self, db_session, shop, products, admin_user):
        _delivered_order(shop, products, admin_user, qty=2)
        db_session.execute(update(Shop).where(Shop.id == shop.id).values(pending_balance_paise=123))
        db_session.commit()

        assert find_drift(shop.id)[0]["cached_paise"] == 123

        summary = reconcile_balance(shop.id)
        assert summary.pending_balance_paise == 20000
        assert _cached(db_session, shop.id) == 20000
        assert find_drift() == []

    def test_overpayment_cache_goes_negative_until_reconciled(self, db_session, shop, products, admin_user):
        _delivered_order(shop, products, admin_user, qty=1)
        payment_service.record_payment(shop.id, 15000, "cash", admin_user.id)
        assert _cached(db_session, shop.id) == -5000

        reconcile_balance(shop.id)
        assert _cached(db_session, shop.id) == 0

    def test_reconcile_all(self, db_session, make_shop, products, admin_user):
        a = make_shop(name="A", email="a@shops.test")
        b = make_shop(name="B", email="b@shops.test")
        _delivered_order(a, products, admin_user, qty=1)
        db_session.execute(update(Shop).values(pending_balance_paise=999))
        db_session.commit()

        assert reconcile_all_balances() == 2
        assert _cached(db_session, a.id) == 10000
        assert _cached(db_session, b.id) == 0

    def test_reconcile_unknown_shop(self, db_session):
        with pytest.raises(BalanceError):
            reconcile_balance(404)


class TestPayments:

    def test_record_payment(self, db_session, shop, admin_user):
        payment = payment_service.record_payment(
            shop.id, 25000, "UPI", admin_user.id, reference="TXN-1", notes="part"
        )
        assert payment.mode == "upi"
        assert payment.reference == "TXN-1"
        assert payment.recorded_by_user_id == admin_user.id
        assert db_session.query(Payment).count() == 1

    @pytest.mark.parametrize("amount", [0, -100, 10.5, "12.5", True, None])
    def test_invalid_amount_rejected(self, db_session, shop, admin_user, amount):
        with pytest.raises(ValidationError):
            payment_service.record_payment(shop.id, amount, "cash", admin_user.id)
        assert db_session.query(Payment).count() == 0

    def test_invalid_mode_rejected(self, db_session, shop, admin_user):
        with pytest.raises(ValidationError):
            payment_service.record_payment(shop.id, 100, "cheque", admin_user.id)

    def test_unknown_shop_rejected(self, db_session, admin_user):
        with pytest.raises(PaymentError):
            payment_service.record_payment(999, 100, "cash", admin_user.id)
        assert db_session.query(Payment).count() == 0

    def test_order_must_belong_to_shop(self, db_session, make_shop, products, admin_user):
        a = make_shop(name="A", email="a@shops.test")
        b = make_shop(name="B", email="b@shops.test")
        order = _delivered_order(a, products, admin_user, qty=1)
        with pytest.raises(PaymentError, match="does not belong"):
            payment_service.record_payment(b.id, 100, "cash", admin_user.id, order_id=order.id)

    def test_string_ids_are_coerced(self, db_session, shop, products, admin_user):
        order = _delivered_order(shop, products, admin_user, qty=1)
        payment = payment_service.record_payment(
            str(shop.id), 10000, "cash", admin_user.id, order_id=str(order.id)
        )
        assert payment.shop_id == shop.id
        assert payment.order_id == order.id
        assert _cached(db_session, shop.id) == 0

    @pytest.mark.parametrize("shop_id", ["abc", "", 0, 2.0, True])
    def test_malformed_shop_id_rejected(self, db_session, admin_user, shop_id):
        with pytest.raises(ValidationError):
            payment_service.record_payment(shop_id, 100, "cash", admin_user.id)

    def test_list_payments_newest_first(self, db_session, shop, admin_user):
        first = payment_service.record_payment(shop.id, 100, "cash", admin_user.id)
        second = payment_service.record_payment(shop.id, 200, "cash", admin_user.id)
        assert [p.id for p in payment_service.list_payments([shop.id])] == [second.id, first.id]


class TestDeliverAndCollect:

    def _order(self, shop, products, qty=5):
        return order_service.place_order(
            shop.id, [{"product_id": products["mixture"].id, "quantity": qty}]
        )

    def test_deliver_with_full_payment(self, db_session, shop, products, admin_user):
        order = self._order(shop, products)
        order, payment = order_service.deliver_order(
            order.id, admin_user.id,
            collect_payment={"amount_paise": 50000, "mode": "cash"},
        )

        assert order.status == "delivered"
        assert payment.order_id == order.id
        assert payment.amount_paise == 50000
        assert compute_balance(shop.id).pending_balance_paise == 0
        assert _cached(db_session, shop.id) == 0

    def test_deliver_with_partial_payment(self, db_session, shop, products, admin_user):
        order = self._order(shop, products)
        order_service.deliver_order(
            order.id, admin_user.id,
            collect_payment={"amount_paise": 20000, "mode": "upi", "reference": "UPI-9"},
        )
        assert compute_balance(shop.id).pending_balance_paise == 30000

    @pytest.mark.parametrize("collect", [
        None,
        {"amount_paise": 50000, "mode": "credit"},
        {"amount_paise": 0, "mode": "cash"},
    ])
    def test_deferred_payment(self, db_session, shop, products, admin_user, collect):
        order = self._order(shop, products)
        order, payment = order_service.deliver_order(order.id, admin_user.id, collect_payment=collect)

        assert payment is None
        assert order.status == "delivered"
        assert compute_balance(shop.id).pending_balance_paise == 50000
        assert db_session.query(Payment).count() == 0

    def test_invalid_payment_leaves_order_undelivered(self, db_session, shop, products, admin_user):
        order = self._order(shop, products)
        with pytest.raises(ValidationError):
            order_service.deliver_order(
                order.id, admin_user.id,
                collect_payment={"amount_paise": -5, "mode": "cash"},
            )
        assert db_session.get(Order, order.id).status == "pending"
        assert _cached(db_session, shop.id) == 0

    def test_cancelled_order_cannot_be_delivered(self, db_session, shop, products, admin_user):
        order = self._order(shop, products)
        order_service.advance_status(order.id, "cancelled", admin_user.id)
        with pytest.raises(LifecycleError):
            order_service.deliver_order(
                order.id, admin_user.id,
                collect_payment={"amount_paise": 50000, "mode": "cash"},
            )
        assert db_session.query(Payment).count() == 0
        assert _cached(db_session, shop.id) == 0

    def test_already_delivered_is_rejected(self, db_session, shop, products, admin_user):
        order = self._order(shop, products)
        order_service.deliver_order(order.id, admin_user.id)
        with pytest.raises(OrderError, match="already delivered"):
            order_service.deliver_order(
                order.id, admin_user.id,
                collect_payment={"amount_paise": 50000, "mode": "cash"},
            )
        assert db_session.query(Payment).count() == 0
        assert compute_balance(shop.id).pending_balance_paise == 50000


class TestLedger:

    def test_ledger_entries_and_statement(self, db_session, shop, products, admin_user):
        order = _delivered_order(shop, products, admin_user, qty=5)
        payment_service.record_payment(shop.id, 20000, "cash", admin_user.id, reference="R1")
        order_service.place_order(shop.id, [{"product_id": products["bhel"].id, "quantity": 1}])

        statement = ledger_service.get_balance_statement(shop.id)

        assert statement["pending_balance_paise"] == 30000
        assert statement["total_orders_value_paise"] == 50000
        assert statement["total_payments_paise"] == 20000
        assert statement["last_payment"]["amount_paise"] == 20000

        ledger = statement["ledger"]
        assert [e["type"] for e in ledger] == ["payment", "order"]
        assert ledger[0]["amount_paise"] == -20000
        assert ledger[0]["description"] == "Payment (CASH)"
        assert ledger[1]["amount_paise"] == 50000
        assert ledger[1]["description"] == f"Order #{order.order_number}"
        assert ledger[1]["date"].endswith("Z")

    def test_empty_ledger(self, db_session, shop):
        statement = ledger_service.get_balance_statement(shop.id)
        assert statement["ledger"] == []
        assert statement["last_payment"] is None
