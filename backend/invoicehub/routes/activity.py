# Overview: Flask API routes for activity logs; parses input and returns JSON responses.

# backend/invoicehub/routes/activity.py
from flask import Blueprint, g

from ..decorators import require_auth
from ..services import activity_service
from ._params import page_args

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity-logs")


@activity_bp.get("")
@require_auth
def list_activity_logs_route():
    """Platform accounts see every entry; everyone else sees their own."""
    first, offset = page_args()
    return activity_service.list_activity_logs(g.actor, first, offset), 200
