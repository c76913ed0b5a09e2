# Overview: Service-layer operations for authentication and users; encapsulates business logic and database work.

"""
Authentication and user management.

Every action must be attributable: users register or are created with a
bcrypt password hash, log in for an opaque session token, and carry a role:
- platform: cross-tenant administrator (never attached to a business)
- admin / user: scoped to one business

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS)
- Minimum 8 characters with uppercase, lowercase, digit and special char
- Session tokens managed separately (see session_service.py)
- User changes revoke the user's sessions so the new role/business applies
  from the next login
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import (
    DuplicateKey,
    InvalidCredentials,
    InvalidReference,
    NotFound,
    PasswordValidationError,
    Unauthorized,
    ValidationError,
)
from ..models import ActivityLog, Business, User
from ..models.auth import ROLES
from ..time_utils import utcnow
from ..validation import coerce_int
from .activity_service import describe_changes, log_activity
from .authorization import Actor, require_authenticated, require_platform
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate
from .session_service import create_session, delete_user_sessions, revoke_all_user_sessions

logger = logging.getLogger(__name__)

USER_MUTABLE_FIELDS = ("username", "role", "business_id", "is_active")


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt at the configured cost."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_username(username) -> str:
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is required")
    username = username.strip()
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    return username


def _normalize_role(role) -> str:
    if role is None:
        return "user"
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def _resolve_business_id(business_id) -> int | None:
    if business_id is None:
        return None
    business_id = coerce_int(business_id, "business_id")
    if not db.session.get(Business, business_id):
        raise InvalidReference(f"Business {business_id} not found", details={"business_id": business_id})
    return business_id


def _ensure_username_available(username: str, exclude_id: int | None = None) -> None:
    query = db.session.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise DuplicateKey(f"Username {username} already exists", details={"username": username})


def create_user(username: str, password: str, role: str | None = None, business_id: int | None = None) -> User:
    """Create a user inside the caller's transaction. Platform users never carry a business."""
    username = _normalize_username(username)
    role = _normalize_role(role)
    business_id = None if role == "platform" else _resolve_business_id(business_id)
    _ensure_username_available(username)

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        business_id=business_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def _actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, username=user.username, role=user.role, business_id=user.business_id)


def register(
    username: str,
    password: str,
    role: str | None = None,
    business_id: int | None = None,
    actor: Actor | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """
    Register a user and open a session for them.

    Anonymous callers get business-less accounts only: joining a business
    takes a platform caller. They may request platform only while no user
    exists yet (bootstrap). Authenticated callers must be platform.

    Returns (user, plaintext_token).
    """
    if actor is not None and not actor.is_platform:
        raise Unauthorized("Unauthorized")
    if actor is None and business_id is not None:
        raise Unauthorized("Only platform accounts can attach users to a business")

    def _op():
        requested_role = _normalize_role(role)
        if requested_role == "platform" and actor is None:
            if db.session.query(User.id).first() is not None:
                raise Unauthorized("Only platform accounts can create platform accounts")

        user = create_user(username, password, requested_role, business_id)
        log_activity(
            actor or _actor_for(user), "User", "create",
            f'User "{user.username}" created',
            entity_id=user.id, business_id=user.business_id,
        )
        _, token = create_session(user, user_agent=user_agent, ip_address=ip_address)
        return user, token

    user, token = run_in_transaction(_op)
    logger.info("User registered: id=%s role=%s business_id=%s", user.id, user.role, user.business_id)
    return user, token


def login(
    username: str,
    password: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Returns (user, plaintext_token); InvalidCredentials on any mismatch."""
    if not isinstance(username, str) or not username.strip() or not isinstance(password, str):
        raise InvalidCredentials("Invalid credentials")

    def _op():
        user = db.session.query(User).filter(
            User.username == username.strip(),
            User.is_active.is_(True),
        ).first()
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentials("Invalid credentials")

        user.last_login_at = utcnow()
        log_activity(_actor_for(user), "User", "login", f'User "{user.username}" logged in', entity_id=user.id)
        _, token = create_session(user, user_agent=user_agent, ip_address=ip_address)
        return user, token

    try:
        return run_in_transaction(_op)
    except InvalidCredentials:
        logger.warning("Failed login attempt for username=%r", username)
        raise


def me(actor: Actor) -> User:
    require_authenticated(actor)
    user = db.session.get(User, actor.user_id)
    if not user:
        raise NotFound("User not found")
    return user


def update_user(actor: Actor, user_id: int, payload: dict) -> User:
    """
    Platform-only partial update of username, password, role, business_id
    and is_active. Revokes the user's sessions.
    """
    require_platform(actor)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(payload) - set(USER_MUTABLE_FIELDS) - {"password"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op() -> User:
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFound(f"User {user_id} not found")

        old = {k: getattr(user, k) for k in USER_MUTABLE_FIELDS}
        label = f'User "{user.username}"'
        changes: dict = {}

        if "username" in payload:
            username = _normalize_username(payload["username"])
            if username != user.username:
                _ensure_username_available(username, exclude_id=user.id)
            changes["username"] = username

        if "role" in payload:
            changes["role"] = _normalize_role(payload["role"])

        if "business_id" in payload:
            changes["business_id"] = _resolve_business_id(payload["business_id"])

        if "is_active" in payload:
            if not isinstance(payload["is_active"], bool):
                raise ValidationError("is_active must be a boolean")
            changes["is_active"] = payload["is_active"]

        if changes.get("role", user.role) == "platform":
            changes["business_id"] = None

        for key, value in changes.items():
            setattr(user, key, value)

        if "password" in payload:
            user.password_hash = hash_password(payload["password"])

        revoke_all_user_sessions(user.id, reason="User updated")
        db.session.flush()

        description = describe_changes(old, changes, USER_MUTABLE_FIELDS)
        if "password" in payload:
            description += " (password changed)"
        log_activity(actor, "User", "update", f"{label} updated. {description}", entity_id=user.id)
        return user

    return run_in_transaction(_op)


def delete_user(actor: Actor, user_id: int) -> dict:
    """Platform-only. Detaches the user's activity entries and removes their sessions."""
    require_platform(actor)
    if user_id == actor.user_id:
        raise ValidationError("Cannot delete your own account")

    def _op() -> dict:
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFound(f"User {user_id} not found")

        snapshot = user.to_dict()
        db.session.query(ActivityLog).filter(ActivityLog.user_id == user.id).update(
            {ActivityLog.user_id: None}, synchronize_session=False
        )
        delete_user_sessions(user.id)
        db.session.delete(user)
        db.session.flush()

        log_activity(actor, "User", "delete", f'User "{snapshot["username"]}" deleted', entity_id=snapshot["id"])
        return snapshot

    return run_in_transaction(_op)


def list_users(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    require_platform(actor)
    query = db.session.query(User).order_by(User.id.asc())
    return paginate(query, first, offset)
