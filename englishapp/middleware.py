"""
Authentication decorators for API endpoints
"""
import logging
from functools import wraps

from flask import request, g

from .errors import AuthError, ForbiddenError
from .services.auth import get_current_user

logger = logging.getLogger(__name__)


def get_session_token():
    """Session token from ``x-auth-token`` or ``Authorization: Bearer``"""
    token = request.headers.get('x-auth-token')
    if not token:
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            token = auth_header[len('Bearer '):]
    return token or None


def load_user_context():
    """Resolve the session token once per request and store the user in ``g``"""
    if 'current_user' in g:
        return g.current_user
    session_token = get_session_token()
    g.session_token = session_token
    g.current_user = get_current_user(session_token) if session_token else None
    g.user_id = g.current_user['id'] if g.current_user else None
    return g.current_user


def require_auth(optional=False):
    """
    Decorator for API endpoints that need user authentication.

    Args:
        optional (bool): If True, anonymous requests pass through with
                         ``g.current_user`` set to None.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = load_user_context()
            if user is None and not optional:
                if g.session_token:
                    raise AuthError('Invalid token')
                raise AuthError('No token, authorization denied')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_admin(f):
    """Decorator for endpoints restricted to administrator accounts"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = load_user_context()
        if user is None:
            if g.session_token:
                raise AuthError('Invalid token')
            raise AuthError('No token, authorization denied')
        if not user['is_admin']:
            logger.warning("User %s denied access to %s", user['id'], request.path)
            raise ForbiddenError('Access denied')
        return f(*args, **kwargs)
    return decorated_function


def get_user_context():
    """
    Current user context from Flask's g object.

    Returns:
        dict: user_id, user, session_token and is_authenticated
    """
    return {
        'user_id': getattr(g, 'user_id', None),
        'user': getattr(g, 'current_user', None),
        'session_token': getattr(g, 'session_token', None),
        'is_authenticated': getattr(g, 'user_id', None) is not None,
    }
