# Overview: Flask API routes for user management; ADMIN only.

# backend/tillpoint/routes/users.py
"""
User management routes: list, create, update, deactivate, reactivate.

Users are never deleted; deactivation revokes their sessions and keeps
sale attribution intact.
"""

from flask import Blueprint, request, jsonify, g

from ..errors import TransactionError
from ..models import ROLE_ADMIN
from ..services import auth_service
from ..decorators import require_auth, require_role
from .errors import error_response


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    """
    Query params:
    - include_inactive: 1 to include deactivated users
    """
    include_inactive = request.args.get("include_inactive") in ("1", "true")
    users = auth_service.list_users(include_inactive=include_inactive)
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    """Body: {"username", "password", "role", "full_name"?}"""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("username"),
            data.get("password") or "",
            role=data.get("role") or "CASHIER",
            full_name=data.get("full_name"),
        )
    except TransactionError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()}), 201


@users_bp.patch("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user_route(user_id: int):
    """Body (all optional): username, full_name, role, password."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user(
            user_id,
            username=data.get("username"),
            full_name=data.get("full_name"),
            role=data.get("role"),
            password=data.get("password"),
        )
    except TransactionError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()}), 200


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_role(ROLE_ADMIN)
def deactivate_user_route(user_id: int):
    try:
        revoked = auth_service.deactivate_user(user_id, acting_user_id=g.session_context.user_id)
    except TransactionError as e:
        return error_response(e)
    return jsonify({"ok": True, "sessions_revoked": revoked}), 200


@users_bp.post("/<int:user_id>/reactivate")
@require_auth
@require_role(ROLE_ADMIN)
def reactivate_user_route(user_id: int):
    try:
        user = auth_service.reactivate_user(user_id)
    except TransactionError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()}), 200
