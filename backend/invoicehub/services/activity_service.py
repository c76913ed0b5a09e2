# Overview: Service-layer operations for activity logging; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLog
from .authorization import Actor, require_authenticated
from .pagination import paginate

"""
Activity log invariants (authoritative)

- Append-only audit trail of business mutations.
- Entries are written inside the same DB transaction as the change they record;
  a rolled back workflow leaves no entries behind.
- No domain logic here.
"""


def log_activity(
    actor: Actor | None,
    entity_name: str,
    action: str,
    description: str,
    *,
    entity_id: int | None = None,
    business_id: int | None = None,
) -> ActivityLog:
    """Append one activity entry to the current transaction (no commit)."""
    if business_id is None and actor is not None:
        business_id = actor.business_id

    entry = ActivityLog(
        user_id=actor.user_id if actor else None,
        business_id=business_id,
        entity_name=entity_name,
        entity_id=entity_id,
        action=action,
        description=description,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_activity_logs(actor: Actor, first: int | None = None, offset: int | None = None) -> dict:
    """Platform sees every entry; everyone else sees only their own. Newest first."""
    require_authenticated(actor)
    query = db.session.query(ActivityLog)
    if not actor.is_platform:
        query = query.filter(ActivityLog.user_id == actor.user_id)
    query = query.order_by(ActivityLog.occurred_at.desc(), ActivityLog.id.desc())
    return paginate(query, first, offset)


def describe_changes(old: dict, new: dict, fields) -> str:
    """Field-level change summary: 'Changes: name from "a" to "b", ...'."""
    changes = []
    for field in fields:
        if field in new and old.get(field) != new[field]:
            changes.append(f'{field} from "{old.get(field)}" to "{new[field]}"')
    return f"Changes: {', '.join(changes)}" if changes else "No changes"
