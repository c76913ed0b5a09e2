# Overview: Service-layer operations for authorization; encapsulates business logic and database work.

"""
Authorization gate: tenant scoping for every entity-scoped operation.

SECURITY INVARIANTS:
1. platform actors may act on any business
2. admin/user actors may only touch rows whose business_id equals theirs
3. a non-platform actor without a business can access nothing
4. denials are logged at WARNING and surface as Unauthorized

Services receive the Actor explicitly; nothing here reads request globals.

USAGE:
    from invoicehub.services.authorization import require_access, scope_query

    require_access(actor, product.business_id)
    query = scope_query(db.session.query(Product), Product, actor)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import false

from ..errors import BusinessRequired, NotAuthenticated, Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, taken from the session record."""
    user_id: int
    username: str
    role: str
    business_id: int | None

    @property
    def is_platform(self) -> bool:
        return self.role == "platform"


def can_access(actor: Actor, target_business_id: int | None) -> bool:
    if actor.is_platform:
        return True
    if actor.business_id is None:
        return False
    return actor.business_id == target_business_id


def require_authenticated(actor: Actor | None) -> Actor:
    if actor is None:
        raise NotAuthenticated("Not authenticated")
    return actor


def require_access(actor: Actor | None, target_business_id: int | None) -> None:
    """Raise Unauthorized unless actor may act on target_business_id."""
    require_authenticated(actor)
    if not can_access(actor, target_business_id):
        logger.warning(
            "Access denied: user_id=%s role=%s business_id=%s target_business_id=%s",
            actor.user_id, actor.role, actor.business_id, target_business_id,
        )
        raise Unauthorized("Unauthorized")


def require_business_actor(actor: Actor | None) -> int:
    """
    Business-scoped entities are created in the actor's own business.

    Platform accounts have none (BusinessRequired); non-platform accounts
    without a business are simply unauthorized.
    """
    require_authenticated(actor)
    if actor.is_platform:
        raise BusinessRequired("Platform accounts must act within a business to create this entity")
    if actor.business_id is None:
        logger.warning("Access denied: user_id=%s has no business", actor.user_id)
        raise Unauthorized("Unauthorized")
    return actor.business_id


def require_platform(actor: Actor | None) -> None:
    require_authenticated(actor)
    if not actor.is_platform:
        logger.warning("Platform access denied: user_id=%s role=%s", actor.user_id, actor.role)
        raise Unauthorized("Unauthorized")


def scope_query(query, model, actor: Actor):
    """Filter a business-scoped query to what actor may see."""
    require_authenticated(actor)
    if actor.is_platform:
        return query
    if actor.business_id is None:
        return query.filter(false())
    return query.filter(model.business_id == actor.business_id)
