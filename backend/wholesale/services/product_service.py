# Overview: Service-layer operations for the product catalog.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_CATEGORIES
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_product,
)


class ProductError(Exception):
    """Raised for product operation errors."""
    pass


class ProductNotFoundError(ProductError):
    pass


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "name_tamil", "category", "rate_paise", "unit_type",
        "default_quantity", "is_active", "image_url",
    },
    required_on_create={"name", "category", "rate_paise"},
)

# Default catalog: (name, category, rate in rupees per kg)
SEED_PRODUCTS = [
    ("Sweet Mixture", "mixture", 145),
    ("Kara Mixture", "mixture", 150),
    ("Madras Mixture", "mixture", 150),
    ("Karam Bhel", "bhel", 145),
    ("Sweet Bhel", "bhel", 145),
    ("Corn Flakes Chevda", "chevda", 180),
    ("Poha Chevda", "chevda", 160),
    ("Masala Kallai", "dhal", 170),
    ("Moong Dhal", "dhal", 200),
    ("Potato Chips", "chips", 210),
    ("Banana Chips", "chips", 210),
    ("Ring Murukku", "murukku", 180),
    ("Kara Boondi", "boondi", 150),
    ("Masala Papdi", "papdi", 160),
    ("Sabudana Sweet", "sabudana", 140),
]


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(f"Product not found: {product_id}")
    return product


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    """Catalog listing, ordered by category then name."""
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        if category not in PRODUCT_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(func.coalesce(Product.name_tamil, "")).like(pattern),
        ))
    return query.order_by(Product.category.asc(), Product.name.asc(), Product.id.asc()).all()


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(**patch)
    db.session.add(product)
    db.session.commit()

    current_app.logger.info("Product created: id=%s name=%s", product.id, product.name)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    """
    Partial update. Rate changes apply to future orders only; placed orders
    keep the rate they snapshotted.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    product = get_product(product_id)
    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def seed_products() -> int:
    """Insert the default catalog. Existing names are skipped. Returns rows added."""
    existing = {name for (name,) in db.session.query(Product.name).all()}
    added = 0
    for name, category, rupees in SEED_PRODUCTS:
        if name in existing:
            continue
        db.session.add(Product(
            name=name,
            category=category,
            rate_paise=rupees * 100,
            unit_type="kg",
            default_quantity=1,
            is_active=True,
        ))
        added += 1
    db.session.commit()
    return added
