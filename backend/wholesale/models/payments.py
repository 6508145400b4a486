from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z


class Payment(db.Model):
    """
    Money received from a shop.

    IMMUTABLE: Payments are never updated or deleted. Together with
    delivered orders they are the source of truth for a shop's balance.

    MODES: cash, upi, bank, bank_transfer, credit (informational; every
    recorded payment reduces the balance by its amount).
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    amount_paise = db.Column(db.Integer, nullable=False)
    mode = db.Column(db.String(16), nullable=False, index=True)

    # UPI txn id, cheque number, bank reference, ...
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Set when the payment was collected while delivering an order
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    shop = db.relationship("Shop", backref=db.backref("payments", lazy=True))
    order = db.relationship("Order", backref=db.backref("payments", lazy=True))
    recorded_by = db.relationship("User", backref=db.backref("payments_recorded", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "shop_name": self.shop.shop_name if self.shop else None,
            "amount_paise": self.amount_paise,
            "mode": self.mode,
            "reference": self.reference,
            "notes": self.notes,
            "order_id": self.order_id,
            "recorded_by_user_id": self.recorded_by_user_id,
            "recorded_by_name": self.recorded_by.name if self.recorded_by else None,
            "created_at": to_utc_z(self.created_at),
        }
