from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z


SHOP_STATUS_PENDING = "pending"
SHOP_STATUS_APPROVED = "approved"
SHOP_STATUS_BLOCKED = "blocked"

SHOP_STATUSES = (SHOP_STATUS_PENDING, SHOP_STATUS_APPROVED, SHOP_STATUS_BLOCKED)


class Shop(db.Model):
    """
    Retail shop that orders from the wholesaler and carries a running due.

    pending_balance_paise is a CACHE of balance_service.compute_balance().
    It is nudged incrementally on delivery/payment and overwritten whenever
    a balance view is read. Never display it as the authoritative figure.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_account_id", "account_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False)

    shop_name = db.Column(db.String(128), nullable=False)
    owner_name = db.Column(db.String(128), nullable=False)
    mobile = db.Column(db.String(32), nullable=False)
    gst_number = db.Column(db.String(32), nullable=True)

    street = db.Column(db.String(255), nullable=False)
    area = db.Column(db.String(128), nullable=False)
    city = db.Column(db.String(128), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SHOP_STATUS_PENDING, index=True)

    # 0 means "no limit"; only enforced when Config.ENFORCE_CREDIT_LIMIT is on
    credit_limit_paise = db.Column(db.Integer, nullable=False, default=0)
    pending_balance_paise = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    account = db.relationship("Account", backref=db.backref("shops", lazy=True))

    def address_dict(self) -> dict:
        return {"street": self.street, "area": self.area, "city": self.city}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "email": self.account.email if self.account else None,
            "shop_name": self.shop_name,
            "owner_name": self.owner_name,
            "mobile": self.mobile,
            "gst_number": self.gst_number,
            "address": self.address_dict(),
            "status": self.status,
            "credit_limit_paise": self.credit_limit_paise,
            "pending_balance_paise": self.pending_balance_paise,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
        }
