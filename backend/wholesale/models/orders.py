from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z


class Order(db.Model):
    """
    Order document placed by a shop.

    WHY: Items and prices are snapshotted at placement; admin only moves
    the status forward afterwards. Orders are never deleted.

    STATUS TIMESTAMPS: one nullable column per forward status, each written
    the first time that status is reached and never cleared.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_shop_created", "shop_id", "created_at"),
        db.Index("ix_orders_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable order number (e.g., "ORD001234")
    order_number = db.Column(db.String(32), nullable=False, index=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    # Sum of item line totals (paise)
    total_amount_paise = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(24), nullable=False, default="pending", index=True)

    notes = db.Column(db.Text, nullable=True)
    preferred_delivery_date = db.Column(db.Date, nullable=True)

    # Delivery address (defaults to the shop's address at placement)
    delivery_street = db.Column(db.String(255), nullable=False)
    delivery_area = db.Column(db.String(128), nullable=False)
    delivery_city = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    packed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    out_for_delivery_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Attribution for the latest status change
    last_status_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("orders", lazy=True))
    items = db.relationship("OrderItem", back_populates="order", lazy=True, order_by="OrderItem.id")
    __mapper_args__ = {"version_id_col": version_id}

    def delivery_address(self) -> dict:
        return {
            "street": self.delivery_street,
            "area": self.delivery_area,
            "city": self.delivery_city,
        }

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "shop_id": self.shop_id,
            "shop_name": self.shop.shop_name if self.shop else None,
            "total_amount_paise": self.total_amount_paise,
            "status": self.status,
            "notes": self.notes,
            "preferred_delivery_date": (
                self.preferred_delivery_date.isoformat() if self.preferred_delivery_date else None
            ),
            "delivery_address": self.delivery_address(),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "packed_at": to_utc_z(self.packed_at),
            "out_for_delivery_at": to_utc_z(self.out_for_delivery_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Snapshot of one cart line at placement. Immutable."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    product_name = db.Column(db.String(128), nullable=False)
    # Loose goods are sold by weight, so quantity is fractional (3 dp)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    rate_paise = db.Column(db.Integer, nullable=False)
    unit_type = db.Column(db.String(16), nullable=False)
    line_total_paise = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": float(self.quantity),
            "rate_paise": self.rate_paise,
            "unit_type": self.unit_type,
            "line_total_paise": self.line_total_paise,
        }


class OrderSequence(db.Model):
    """
    Atomic order-number counter.

    WHY: Counting existing orders to derive the next number races under
    concurrent placement. A single row incremented with UPDATE ... SET
    next_number = next_number + 1 cannot hand out the same number twice.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_order_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
