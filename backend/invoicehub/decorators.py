# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, request

from .errors import NotAuthenticated
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _establish_context(token: str) -> bool:
    context = session_service.validate_session(token)
    if not context:
        return False
    g.current_user = context.user
    g.actor = context.actor
    g.session_context = context
    g.token = token
    return True


def require_auth(f):
    """
    Require a valid bearer token and establish the caller's context.

    Sets on flask.g:
    - g.actor: the Actor (user_id, username, role, business_id) taken from
      the session record; routes pass it to services explicitly
    - g.current_user: the authenticated User
    - g.session_context / g.token

    Raises NotAuthenticated (401) on a missing, invalid, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise NotAuthenticated("Authentication required")
        if not _establish_context(token):
            raise NotAuthenticated("Invalid or expired token")
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Establish the caller's context when a valid token is sent; otherwise
    g.actor is None. A token that is present but invalid is still rejected.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.actor = None
        token = _bearer_token()
        if token and not _establish_context(token):
            raise NotAuthenticated("Invalid or expired token")
        return f(*args, **kwargs)

    return decorated_function
