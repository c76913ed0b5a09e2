# Overview: Flask API routes for authentication; parses input and returns JSON responses.

# backend/invoicehub/routes/auth.py
"""
Authentication API routes.

- POST /register: open to anonymous callers for business-less accounts
  (platform role only while no user exists); authenticated callers must be
  platform
- POST /login: username + password -> session token
- POST /logout: revoke the presented token
- GET  /me: the authenticated user
"""

from flask import Blueprint, current_app, g, request

from ..decorators import optional_auth, require_auth
from ..services import auth_service, session_service
from ._params import json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
@optional_auth
def register_route():
    data = json_body()
    user, token = auth_service.register(
        username=data.get("username"),
        password=data.get("password"),
        role=data.get("role"),
        business_id=data.get("business_id"),
        actor=g.actor,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {"token": token, "user": user.to_dict()}, 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    data = json_body()
    user, token = auth_service.login(
        data.get("username"),
        data.get("password"),
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    current_app.logger.info("User logged in: user_id=%s", user.id)
    return {"token": token, "user": user.to_dict()}, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return {"ok": True}, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return auth_service.me(g.actor).to_dict(), 200
