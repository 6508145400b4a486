from __future__ import annotations
from datetime import datetime
from wholesale.time_utils import parse_iso_datetime

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum rate or payment: Rs 99,99,999.99 (999,999,999 paise)
# Keeps amounts inside a 32-bit integer column and rejects typos
MAX_AMOUNT_PAISE = 999_999_999

# Quantities are stored with 3 decimal places (grams for loose goods)
QUANTITY_PLACES = Decimal("0.001")
MAX_QUANTITY = Decimal("100000")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - allow_null_fields: extra allowlist for setting null even if you want to special-case later
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    # Optional: keep for future; currently we just honor SQLAlchemy column.nullable
    allow_null_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")


    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = [f for f in required if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch




def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    from .models.catalog import PRODUCT_CATEGORIES, UNIT_TYPES

    if "rate_paise" in patch and patch["rate_paise"] is not None:
        rate = patch["rate_paise"]
        if rate < 0:
            raise ValidationError("rate_paise must be >= 0")
        if rate > MAX_AMOUNT_PAISE:
            raise ValidationError(f"rate_paise cannot exceed {MAX_AMOUNT_PAISE}")

    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    if "unit_type" in patch and patch["unit_type"] not in UNIT_TYPES:
        raise ValidationError(f"unit_type must be one of: {', '.join(UNIT_TYPES)}")

    if "default_quantity" in patch and patch["default_quantity"] is not None:
        if patch["default_quantity"] <= 0:
            raise ValidationError("default_quantity must be > 0")


def enforce_rules_shop(patch: dict) -> None:
    if "credit_limit_paise" in patch:
        limit = patch["credit_limit_paise"]
        if limit is None or limit < 0:
            raise ValidationError("credit_limit_paise must be >= 0")
        if limit > MAX_AMOUNT_PAISE:
            raise ValidationError(f"credit_limit_paise cannot exceed {MAX_AMOUNT_PAISE}")


def parse_amount_paise(value: Any, field: str = "amount_paise") -> int:
    """Strict positive integer amount in paise (rejects floats, bools, '1e3')."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer number of paise, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be a positive integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a positive integer")
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    if value > MAX_AMOUNT_PAISE:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_PAISE}")
    return value


def parse_id(value: Any, field: str) -> int:
    """Row id from a JSON body: a positive int, or a string of digits."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be a positive integer")
        value = int(stripped)
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def parse_quantity(value: Any) -> Decimal:
    """
    Cart quantity: positive decimal with at most 3 places.

    Floats are converted through str() so 0.1 stays 0.1.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError("quantity must be a positive number")
    try:
        qty = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("quantity must be a positive number")
    if not qty.is_finite() or qty <= 0:
        raise ValidationError("quantity must be a positive number")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    if qty != qty.quantize(QUANTITY_PLACES):
        raise ValidationError("quantity supports at most 3 decimal places")
    return qty.quantize(QUANTITY_PLACES)


def parse_address(value: Any, *, required: bool = True) -> dict | None:
    """{street, area, city} with every part non-blank."""
    if value is None and not required:
        return None
    if not isinstance(value, dict):
        raise ValidationError("address must be an object with street, area and city")
    cleaned = {}
    for part in ("street", "area", "city"):
        raw = value.get(part)
        text = str(raw).strip() if raw is not None else ""
        if not text:
            raise ValidationError("Complete address is required (street, area, city)")
        cleaned[part] = text
    return cleaned
