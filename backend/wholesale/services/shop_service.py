# Overview: Service-layer operations for shops; registration, approval and admin views.

"""
Shop Management Service

ACCOUNTS AND SHOPS:
- One Account (email + password) owns one or more Shops.
- Registering again with a known email adds a shop to that account, but only
  when the password matches the account's.
- New shops start pending; only approved shops may place orders.

STATUS MOVES (admin only):
    pending  -> approved | blocked
    approved -> blocked
    blocked  -> approved
A shop never goes back to pending.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Account, Order, Payment, Shop
from ..models.shops import (
    SHOP_STATUSES,
    SHOP_STATUS_PENDING,
    SHOP_STATUS_APPROVED,
    SHOP_STATUS_BLOCKED,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    validate_payload,
    enforce_rules_shop,
    parse_address,
)
from wholesale.time_utils import utcnow
from .auth_service import hash_password, verify_password, normalize_email
from .balance_service import reconcile_balance


class ShopError(Exception):
    """Raised for shop operation errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ShopNotFoundError(ShopError):
    pass


SHOP_ADMIN_POLICY = ModelValidationPolicy(
    writable_fields={
        "shop_name", "owner_name", "mobile", "gst_number",
        "street", "area", "city", "credit_limit_paise",
    },
)

ALLOWED_STATUS_MOVES = {
    SHOP_STATUS_PENDING: {SHOP_STATUS_APPROVED, SHOP_STATUS_BLOCKED},
    SHOP_STATUS_APPROVED: {SHOP_STATUS_BLOCKED},
    SHOP_STATUS_BLOCKED: {SHOP_STATUS_APPROVED},
}


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise ShopNotFoundError(f"Shop {shop_id} not found")
    return shop


def shops_for_account(account_id: int) -> list[Shop]:
    return (
        db.session.query(Shop)
        .filter(Shop.account_id == account_id)
        .order_by(Shop.id.asc())
        .all()
    )


def _reconciled_dict(shop: Shop) -> dict:
    summary = reconcile_balance(shop.id, commit=False)
    data = shop.to_dict()
    data["pending_balance_paise"] = summary.pending_balance_paise
    return data


def shop_profile(shop_id: int) -> dict:
    """Shop as stored, with the balance recomputed and written back."""
    data = _reconciled_dict(get_shop(shop_id))
    db.session.commit()
    return data


def account_shop_profiles(account_id: int) -> list[dict]:
    """Every shop under the account, balances recomputed and written back."""
    items = [_reconciled_dict(shop) for shop in shops_for_account(account_id)]
    db.session.commit()
    return items


def account_owns_shop(account_id: int, shop_id: int) -> bool:
    return db.session.query(Shop.id).filter(
        Shop.id == shop_id,
        Shop.account_id == account_id,
    ).first() is not None


def _require_text(payload: dict, field: str, label: str) -> str:
    value = payload.get(field)
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def register_shop(payload: dict) -> Shop:
    """
    Self-registration of a shop, creating the owning account if needed.

    Payload: email, password, shop_name, owner_name, mobile,
    address {street, area, city}, gst_number (optional).

    Raises:
        ValidationError: Missing or malformed fields
        ShopError: Known email with the wrong password
        ConflictError: The account already has a shop with this name
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    email = normalize_email(_require_text(payload, "email", "Email"))
    password = payload.get("password") or ""
    shop_name = _require_text(payload, "shop_name", "Shop name")
    owner_name = _require_text(payload, "owner_name", "Owner name")
    mobile = _require_text(payload, "mobile", "Mobile")
    address = parse_address(payload.get("address"))
    gst_number = (payload.get("gst_number") or "").strip() or None

    account = db.session.query(Account).filter_by(email=email).first()
    if account:
        if not verify_password(password, account.password_hash):
            raise ShopError("Email already registered. Use correct password to add another shop.")
        duplicate = db.session.query(Shop.id).filter(
            Shop.account_id == account.id,
            func.lower(Shop.shop_name) == shop_name.lower(),
        ).first()
        if duplicate:
            raise ConflictError("You already have a shop with this name")
    else:
        account = Account(email=email, password_hash=hash_password(password))
        db.session.add(account)
        db.session.flush()

    shop = Shop(
        account_id=account.id,
        shop_name=shop_name,
        owner_name=owner_name,
        mobile=mobile,
        gst_number=gst_number,
        street=address["street"],
        area=address["area"],
        city=address["city"],
        status=SHOP_STATUS_PENDING,
        credit_limit_paise=0,
        pending_balance_paise=0,
    )
    db.session.add(shop)
    db.session.commit()

    current_app.logger.info("Shop registered: id=%s name=%s account=%s", shop.id, shop.shop_name, account.id)
    return shop


def set_shop_status(shop_id: int, status: str) -> Shop:
    if status not in SHOP_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SHOP_STATUSES)}")

    shop = get_shop(shop_id)
    if shop.status == status:
        return shop
    if status not in ALLOWED_STATUS_MOVES.get(shop.status, set()):
        raise ShopError(
            f"Cannot change shop status from {shop.status} to {status}",
            details={"current_status": shop.status},
        )

    shop.status = status
    if status == SHOP_STATUS_APPROVED and shop.approved_at is None:
        shop.approved_at = utcnow()
    db.session.commit()

    current_app.logger.info("Shop %s status set to %s", shop.id, status)
    return shop


def update_shop(shop_id: int, payload: dict) -> Shop:
    """
    Admin edit. Accepts profile fields, credit_limit_paise and status.

    A nested address object is flattened onto street/area/city.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)

    status = payload.pop("status", None)
    if "address" in payload:
        payload.update(parse_address(payload.pop("address")))

    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_ADMIN_POLICY, partial=True)
    enforce_rules_shop(patch)

    shop = get_shop(shop_id)
    for key, value in patch.items():
        setattr(shop, key, value)
    db.session.commit()

    if status is not None:
        shop = set_shop_status(shop_id, status)
    return shop


def list_shops(status: str | None = None) -> list[dict]:
    """Admin list: every shop with its reconciled balance and order count."""
    query = db.session.query(Shop)
    if status:
        if status not in SHOP_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SHOP_STATUSES)}")
        query = query.filter(Shop.status == status)
    shops = query.order_by(Shop.created_at.desc(), Shop.id.desc()).all()

    counts = dict(
        db.session.query(Order.shop_id, func.count(Order.id))
        .group_by(Order.shop_id)
        .all()
    )

    items = []
    for shop in shops:
        data = _reconciled_dict(shop)
        data["order_count"] = counts.get(shop.id, 0)
        items.append(data)
    db.session.commit()
    return items


def get_shop_detail(shop_id: int) -> dict:
    """Shop plus stats, five most recent orders and five most recent payments."""
    shop = get_shop(shop_id)
    summary = reconcile_balance(shop.id)

    order_count = db.session.query(func.count(Order.id)).filter(Order.shop_id == shop.id).scalar() or 0
    recent_orders = (
        db.session.query(Order)
        .filter(Order.shop_id == shop.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(5)
        .all()
    )
    recent_payments = (
        db.session.query(Payment)
        .filter(Payment.shop_id == shop.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(5)
        .all()
    )

    data = shop.to_dict()
    data["pending_balance_paise"] = summary.pending_balance_paise
    data["stats"] = {
        "order_count": int(order_count),
        "total_order_value_paise": summary.total_orders_value_paise,
        "total_payments_paise": summary.total_payments_paise,
        "pending_balance_paise": summary.pending_balance_paise,
    }
    data["recent_orders"] = [o.to_dict(include_items=False) for o in recent_orders]
    data["recent_payments"] = [p.to_dict() for p in recent_payments]
    return data
