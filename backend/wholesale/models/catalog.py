from __future__ import annotations

from ..extensions import db
from wholesale.time_utils import to_utc_z


PRODUCT_CATEGORIES = (
    "mixture",
    "bhel",
    "chevda",
    "dhal",
    "chips",
    "murukku",
    "boondi",
    "papdi",
    "sabudana",
    "sweets",
    "biscuits",
    "others",
)

UNIT_TYPES = ("kg", "packet", "box")


class Product(db.Model):
    """
    Orderable catalog item.

    rate_paise may change at any time; orders snapshot it at placement so
    edits never reach back into existing orders. Category and unit are
    display tags only.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    name_tamil = db.Column(db.String(128), nullable=True)
    category = db.Column(db.String(32), nullable=False, index=True)

    rate_paise = db.Column(db.Integer, nullable=False)
    unit_type = db.Column(db.String(16), nullable=False, default="kg")
    default_quantity = db.Column(db.Integer, nullable=False, default=1)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_tamil": self.name_tamil,
            "category": self.category,
            "rate_paise": self.rate_paise,
            "unit_type": self.unit_type,
            "default_quantity": self.default_quantity,
            "is_active": self.is_active,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
