# Overview: Flask API routes for reporting; revenue summaries and best sellers.

from flask import Blueprint, request, jsonify

from ..errors import TransactionError
from ..services import reporting_service
from ..decorators import require_auth
from .errors import error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
def summary_route():
    return jsonify(reporting_service.today_summary()), 200


@reports_bp.get("/top-products")
@require_auth
def top_products_route():
    limit = request.args.get("limit", default=5, type=int)
    return jsonify({"items": reporting_service.top_products(limit=max(1, min(limit, 50)))}), 200


@reports_bp.get("/daily")
@require_auth
def daily_route():
    try:
        days = request.args.get("days", default=7, type=int)
        return jsonify({"items": reporting_service.daily_sales(days=days)}), 200
    except TransactionError as e:
        return error_response(e)
