# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/tillpoint/routes/sales.py
"""Sales history, void and edit-reload routes."""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import TransactionError
from ..models import ROLE_ADMIN
from ..services import reporting_service, sales_service
from ..decorators import require_auth, require_role
from .errors import error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _void_job(sale_id, context):
    return sales_service.void_sale(sale_id, context).to_dict(include_items=True)


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query params:
    - status: COMPLETED or VOID (optional)
    - limit: int (default 100)
    """
    try:
        sales = reporting_service.list_sales(
            status=request.args.get("status"),
            limit=request.args.get("limit", default=100, type=int),
        )
    except TransactionError as e:
        return error_response(e)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": reporting_service.get_sale_detail(sale_id)}), 200
    except TransactionError as e:
        return error_response(e)


@sales_bp.post("/<int:sale_id>/void")
@require_auth
@require_role(ROLE_ADMIN)
def void_sale_route(sale_id: int):
    """Void a COMPLETED sale and restore its stock."""
    worker = current_app.extensions["tillpoint.worker"]
    try:
        sale = worker.run(_void_job, sale_id, g.session_context)
    except TransactionError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale}), 200


@sales_bp.post("/<int:sale_id>/edit")
@require_auth
@require_role(ROLE_ADMIN)
def edit_sale_route(sale_id: int):
    """
    Void the sale and load its items into the caller's cart for correction.

    Whatever was in the caller's cart is replaced.
    """
    worker = current_app.extensions["tillpoint.worker"]
    try:
        cart = worker.run(sales_service.edit_reload, sale_id, g.session_context)
    except TransactionError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reload sale for edit")
        return jsonify({"error": "Internal server error"}), 500

    current_app.extensions["tillpoint.carts"].replace(g.session_context.session_id, cart)
    return jsonify({"cart": cart.to_dict()}), 200
