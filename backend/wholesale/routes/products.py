# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Any principal can browse active products
- Only admins create/update products or see inactive ones
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import product_service
from ..services.product_service import ProductNotFoundError
from ..validation import ValidationError
from ..decorators import require_auth, require_admin

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/")
@require_auth
def list_products():
    """
    Query params:
    - category: one of the product categories (optional)
    - search: substring of the English or Tamil name (optional)
    - include_inactive: "true" to include hidden products (admin only)
    """
    include_inactive = (
        g.session_context.is_admin
        and request.args.get("include_inactive", "").lower() == "true"
    )
    try:
        products = product_service.list_products(
            category=request.args.get("category"),
            search=request.args.get("search"),
            include_inactive=include_inactive,
        )
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = product_service.get_product(product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    if not product.is_active and not g.session_context.is_admin:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("/")
@require_auth
@require_admin
def create_product():
    try:
        product = product_service.create_product(request.get_json(silent=True))
        return jsonify(product.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_admin
def update_product(product_id: int):
    """Rate changes apply to orders placed afterwards only."""
    try:
        product = product_service.update_product(product_id, request.get_json(silent=True))
        return jsonify(product.to_dict())
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500
