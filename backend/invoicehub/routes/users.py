# Overview: Flask API routes for users; parses input and returns JSON responses.

# backend/invoicehub/routes/users.py
"""User administration (platform accounts only)."""

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..services import auth_service
from ._params import json_body, page_args

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users_route():
    first, offset = page_args()
    return auth_service.list_users(g.actor, first, offset), 200


@users_bp.patch("/<int:user_id>")
@require_auth
def update_user_route(user_id: int):
    user = auth_service.update_user(g.actor, user_id, json_body())
    current_app.logger.info("User updated: user_id=%s by=%s", user_id, g.actor.user_id)
    return user.to_dict(), 200


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user_route(user_id: int):
    deleted = auth_service.delete_user(g.actor, user_id)
    current_app.logger.info("User deleted: user_id=%s by=%s", user_id, g.actor.user_id)
    return deleted, 200
