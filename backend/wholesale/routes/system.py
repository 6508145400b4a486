# Overview: Health endpoint: database reachability and order-taking readiness.

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Shop
from ..models.shops import SHOP_STATUS_APPROVED
from ..services.sequence_service import peek_next_order_number
from wholesale.time_utils import utcnow, to_utc_z


system_bp = Blueprint("system", __name__, url_prefix="/api")


def _database_check() -> dict:
    db.session.execute(text("SELECT 1"))
    return {}


def _ordering_check() -> dict:
    """Numbering works and there is someone to order and something to sell."""
    return {
        "next_order_number": peek_next_order_number(),
        "approved_shops": db.session.query(Shop).filter_by(status=SHOP_STATUS_APPROVED).count(),
        "active_products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
    }


HEALTH_CHECKS = (
    ("database", _database_check),
    ("ordering", _ordering_check),
)


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: every check passed
    - 503: at least one check hit a database error
    """
    checks = {}
    for name, check in HEALTH_CHECKS:
        try:
            checks[name] = {"ok": True, **check()}
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Health check %s failed", name)
            checks[name] = {"ok": False, "error": "Database error"}

    healthy = all(result["ok"] for result in checks.values())
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "checked_at": to_utc_z(utcnow()),
        "checks": checks,
    }), 200 if healthy else 503
