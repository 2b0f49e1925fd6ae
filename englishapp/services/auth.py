import logging
import os
import secrets
import string
from datetime import timedelta
from typing import Optional, Dict, Any

from werkzeug.security import generate_password_hash, check_password_hash

from ..db import (
    create_user, get_user_by_email, update_user_last_login, create_user_session,
    get_user_by_session, delete_user_session, cleanup_expired_sessions,
    set_reset_token, reset_password_with_token, utc_timestamp,
)
from ..errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

# Session configuration
SESSION_DURATION_HOURS = int(os.environ.get('SESSION_DURATION_HOURS', 24 * 7))
ADMIN_SESSION_DURATION_HOURS = int(os.environ.get('ADMIN_SESSION_DURATION_HOURS', 8))
RESET_TOKEN_TTL_MINUTES = int(os.environ.get('RESET_TOKEN_TTL_MINUTES', 60))
SESSION_TOKEN_LENGTH = 32


def _filled(*values) -> bool:
    """True when every value is a non-empty string"""
    return all(isinstance(v, str) and v for v in values)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_session_token() -> str:
    """Generate a secure session token"""
    return ''.join(secrets.choice(string.ascii_letters + string.digits) for _ in range(SESSION_TOKEN_LENGTH))


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User fields safe to return to clients"""
    return {
        'id': user['id'],
        'username': user['username'],
        'email': user['email'],
        'is_admin': bool(user.get('is_admin')),
        'created_at': user.get('created_at'),
        'last_login': user.get('last_login'),
    }


def create_session(user_id: int, hours: int = SESSION_DURATION_HOURS) -> str:
    """Create a new session for a user and return its token"""
    cleanup_expired_sessions()
    session_token = generate_session_token()
    create_user_session(user_id, session_token, utc_timestamp(timedelta(hours=hours)))
    return session_token


def validate_session(session_token: str) -> Optional[Dict[str, Any]]:
    """Return the user owning a live session, or None"""
    if not session_token:
        return None
    user = get_user_by_session(session_token)
    return public_user(user) if user else None


def logout_user(session_token: str) -> bool:
    if not session_token:
        return False
    return delete_user_session(session_token)


def register_user(username: str, email: str, password: str, is_admin: bool = False) -> Dict[str, Any]:
    """Create an account; raises ValidationError for missing fields or a taken email"""
    if not _filled(username, email, password):
        raise ValidationError('Please provide username, email and password')

    email = email.strip()
    if get_user_by_email(email):
        raise ValidationError('Email already exists')

    user = create_user(username.strip(), email, hash_password(password), is_admin=is_admin)
    logger.info("Registered %s %s", 'admin' if is_admin else 'user', email)
    return public_user(user)


def login_user(email: str, password: str, admin: bool = False) -> Dict[str, Any]:
    """Check credentials and open a session.

    Regular logins answer 400 for unknown email or wrong password; admin
    logins answer 401, and only accounts flagged ``is_admin`` qualify.
    """
    error_cls = AuthError if admin else ValidationError
    if not _filled(email, password):
        raise ValidationError('Email and password are required')

    user = get_user_by_email(email.strip(), admin_only=admin)
    if not user:
        if admin:
            raise error_cls('Email does not exist or is not an administrator account')
        raise error_cls('Email does not exist')

    if not verify_password(password, user['password_hash']):
        raise error_cls('Incorrect password')

    hours = ADMIN_SESSION_DURATION_HOURS if admin else SESSION_DURATION_HOURS
    session_token = create_session(user['id'], hours=hours)
    update_user_last_login(user['id'])
    return {'token': session_token, 'user': public_user(user)}


def request_password_reset(email: str) -> str:
    """Store a fresh reset token for ``email`` and return it"""
    if not _filled(email):
        raise ValidationError('Email is required')
    user = get_user_by_email(email.strip())
    if not user:
        raise ValidationError('Email does not exist')

    reset_token = secrets.token_hex(20)
    set_reset_token(user['id'], reset_token, utc_timestamp(timedelta(minutes=RESET_TOKEN_TTL_MINUTES)))
    logger.info("Password reset requested for user %s", user['id'])
    return reset_token


def reset_password(token: str, new_password: str) -> None:
    if not _filled(token, new_password):
        raise ValidationError('Token and new password are required')
    if not reset_password_with_token(token, hash_password(new_password)):
        raise ValidationError('Token is invalid or has expired')


def get_current_user(session_token: str) -> Optional[Dict[str, Any]]:
    """Get current user from session token"""
    return validate_session(session_token)
