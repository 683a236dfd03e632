"""
Role Authentication Middleware.

Admin endpoints sit behind the company's gateway, which authenticates the
caller and forwards their role in the X-Role header (and their id in
X-User-Id). This module only checks that the forwarded role is allowed.
"""
import logging
from functools import wraps
from flask import request, g

from ..utils.errors import forbidden

logger = logging.getLogger(__name__)

ADMIN = 'ADMIN'
MANAGER = 'MANAGER'
STAFF = 'STAFF'


def get_role_from_request() -> str | None:
    """Upper-cased X-Role header, or None when absent."""
    role = request.headers.get('X-Role', '').strip().upper()
    return role or None


def require_role(*roles):
    """
    Decorator to restrict an endpoint to the given roles.

    Sets g.role and g.user_id when the caller is allowed.

    Usage:
        @require_role(ADMIN, MANAGER)
        def my_endpoint():
            role = g.role
            ...
    """
    allowed = {role.upper() for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            role = get_role_from_request()
            if role not in allowed:
                logger.warning(f'Rejected {request.method} {request.path} for role {role}')
                return forbidden()

            g.role = role
            g.user_id = request.headers.get('X-User-Id') or role.lower()
            return f(*args, **kwargs)
        return decorated_function
    return decorator
