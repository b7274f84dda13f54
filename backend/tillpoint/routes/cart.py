# Overview: Flask API routes for the caller's cart and checkout; parses input and returns JSON responses.

# backend/tillpoint/routes/cart.py
"""
Cart routes.

Each session owns exactly one cart, held in the process-local CartRegistry
and keyed by session id. Checkout runs on the transaction worker.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TransactionError, ValidationError
from ..services import products_service, sales_service, stock_service
from ..validation import parse_delta, parse_money, parse_quantity
from ..decorators import require_auth
from .errors import error_response


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _session_cart():
    return current_app.extensions["tillpoint.carts"].get(g.session_context.session_id)


def _checkout_job(cart, cash_cents, context):
    sale = sales_service.checkout(cart, cash_cents, context)
    return sale.to_dict(include_items=True)


@cart_bp.get("")
@require_auth
def get_cart_route():
    return jsonify({"cart": _session_cart().to_dict()}), 200


@cart_bp.post("/items")
@require_auth
def add_item_route():
    """
    Add to cart.

    Body: {"product_id": 1, "quantity": 2} or {"query": "coffee*3"}
    """
    data = request.get_json(silent=True) or {}
    cart = _session_cart()

    try:
        if data.get("query") is not None:
            scan = products_service.parse_scan_input(data.get("query"))
            product = products_service.find_by_scan(scan.query)
            if not product:
                return jsonify({"error": "Product not found"}), 404
            quantity = scan.quantity
        else:
            product_id = data.get("product_id")
            if isinstance(product_id, bool) or not isinstance(product_id, int):
                raise ValidationError("product_id or query required")
            product = stock_service.require_product(product_id)
            quantity = parse_quantity(data.get("quantity", 1))

        line = cart.add_item(product, quantity)
    except TransactionError as e:
        return error_response(e)

    return jsonify({"line": line.to_dict(), "cart": cart.to_dict()}), 201


@cart_bp.patch("/lines/<int:line_index>")
@require_auth
def adjust_line_route(line_index: int):
    """Body: {"delta": -1}. A line that drops to zero is removed."""
    data = request.get_json(silent=True) or {}
    cart = _session_cart()

    try:
        line = cart.adjust_quantity(line_index, parse_delta(data.get("delta")))
    except TransactionError as e:
        return error_response(e)

    return jsonify({
        "line": line.to_dict() if line else None,
        "cart": cart.to_dict(),
    }), 200


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    cart = _session_cart()
    try:
        cart.clear()
    except TransactionError as e:
        return error_response(e)
    return jsonify({"cart": cart.to_dict()}), 200


@cart_bp.post("/change")
@require_auth
def change_preview_route():
    """Body: {"cash_tendered": "30.00"}. Does not modify the cart."""
    data = request.get_json(silent=True) or {}
    cart = _session_cart()

    try:
        cash_cents = parse_money(data.get("cash_tendered"), field="cash_tendered")
        change_cents = cart.cash_change(cash_cents)
    except TransactionError as e:
        return error_response(e)

    return jsonify({
        "total_cents": cart.total(),
        "cash_cents": cash_cents,
        "change_cents": change_cents,
    }), 200


@cart_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Body: {"cash_tendered": "30.00"}

    201 with the new sale; on failure the cart is left as it was and the
    error kind tells the caller whether to retry or fix the input. A second
    submit while the first is still running answers 409 cart_busy.
    """
    data = request.get_json(silent=True) or {}
    cart = _session_cart()
    worker = current_app.extensions["tillpoint.worker"]

    try:
        cash_cents = parse_money(data.get("cash_tendered"), field="cash_tendered")
        sale = worker.run(_checkout_job, cart, cash_cents, g.session_context)
    except TransactionError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to checkout cart")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale, "cart": cart.to_dict()}), 201
