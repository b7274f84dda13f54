# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/tillpoint/routes/products.py
"""
Product catalogue routes.

All routes require authentication; writes require the ADMIN role.
"""
from flask import Blueprint, request, jsonify

from ..errors import TransactionError
from ..models import Product, ROLE_ADMIN
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_role
from .errors import error_response

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"barcode", "name", "description", "price_cents", "stock", "category", "is_active"},
    required_on_create={"barcode", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - q: str (optional) - matches barcode, name or category
    - include_inactive: 1 to include deactivated products
    """
    search = request.args.get("q")
    include_inactive = request.args.get("include_inactive") in ("1", "true")
    products = products_service.list_products(search=search, include_inactive=include_inactive)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/scan")
@require_auth
def scan_product():
    """Resolve terminal input ("barcode", "name", "query*qty") to a product."""
    try:
        scan = products_service.parse_scan_input(request.args.get("q"))
    except TransactionError as e:
        return error_response(e)

    product = products_service.find_by_scan(scan.query)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict(), "quantity": scan.quantity}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch)
    except TransactionError as e:
        return error_response(e)

    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id, patch)
    except TransactionError as e:
        return error_response(e)

    if not updated:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(updated.to_dict()), 200


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_role(ROLE_ADMIN)
def restock_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.restock_product(product_id, payload.get("quantity"))
    except TransactionError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    outcome = products_service.delete_product(product_id)
    if not outcome:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"ok": True, "outcome": outcome}), 200
