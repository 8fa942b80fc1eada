"""
Caller identity — read from the signed Flask session.

Login and token issuance live in the account service; it writes user_id and
role (marketplace account type) into the shared session cookie. This module
only reads them.
"""
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import session, g

from leadmatch.config import ROLE_ALIASES
from leadmatch.errors import NotAuthenticated, NotAuthorized

logger = logging.getLogger('leadmatch.auth')


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: str


def current_caller() -> Optional[Caller]:
    """Return the authenticated caller, or None when the session carries no identity."""
    user_id = session.get('user_id')
    role = ROLE_ALIASES.get(str(session.get('role', '')).lower())
    if user_id is None or role is None:
        return None
    try:
        return Caller(user_id=int(user_id), role=role)
    except (TypeError, ValueError):
        return None


def require_role(role):
    """Route decorator: reject unauthenticated callers and callers of another role.

    The resolved Caller is stored on flask.g.caller for the view.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            caller = current_caller()
            if caller is None:
                raise NotAuthenticated()
            if caller.role != role:
                logger.warning("User %s (role=%s) denied %s-only endpoint %s",
                               caller.user_id, caller.role, role, view.__name__)
                raise NotAuthorized(f'Only {role} accounts can perform this action')
            g.caller = caller
            return view(*args, **kwargs)
        return wrapper
    return decorator


def require_login(view):
    """Route decorator: any authenticated caller, whatever their role."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        caller = current_caller()
        if caller is None:
            raise NotAuthenticated()
        g.caller = caller
        return view(*args, **kwargs)
    return wrapper
