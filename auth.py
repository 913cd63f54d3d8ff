"""
Authentication module for Turf Fertility Manager.
Handles user registration, approval, login, session management, and route
protection. Each user is one tenant; the username keys its dataset.
"""

import logging
from functools import wraps
from werkzeug.security import generate_password_hash, check_password_hash
from flask import session, request, jsonify

from config import Config
from db import get_db, get_integrity_error
from tenant_store import create_dataset, delete_dataset

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


class PendingApprovalError(Exception):
    """Raised when an unapproved account tries to log in."""


def _row_to_user(row):
    return {
        'username': row['username'],
        'golf_course': row['golf_course'],
        'is_approved': bool(row['is_approved']),
        'is_admin': bool(row['is_admin']),
        'created_at': str(row['created_at']) if row['created_at'] else None,
        'last_login': str(row['last_login']) if row['last_login'] else None,
    }


_USER_COLUMNS = 'username, golf_course, is_approved, is_admin, created_at, last_login'


# ---------------------------------------------------------------------------
# User CRUD
# ---------------------------------------------------------------------------

def create_user(username, password, golf_course):
    """Register a new tenant. New accounts wait for admin approval.

    Returns:
        The user dict

    Raises:
        ValueError('invalid'): missing username/course or short password
        ValueError('exists'): username already taken
    """
    username = (username or '').strip()
    golf_course = (golf_course or '').strip()
    if not username or not golf_course or len(password or '') < MIN_PASSWORD_LENGTH:
        raise ValueError('invalid')

    IntegrityError = get_integrity_error()
    try:
        with get_db() as conn:
            conn.execute(
                'INSERT INTO users (username, password_hash, golf_course, is_approved, is_admin) '
                'VALUES (?, ?, ?, 0, 0)',
                (username, generate_password_hash(password), golf_course)
            )
    except IntegrityError:
        raise ValueError('exists')

    create_dataset(username)
    user = get_user(username)
    logger.info(f"New user registered: {username} ({golf_course})")

    from notifications import send_signup_notification
    send_signup_notification(user)
    return user


def authenticate_user(username, password):
    """Verify credentials. Returns user dict or None.

    Raises:
        PendingApprovalError: correct credentials but the account is not
            approved yet (administrators are never held back)
    """
    with get_db() as conn:
        row = conn.execute(
            f'SELECT {_USER_COLUMNS}, password_hash FROM users WHERE username = ?',
            ((username or '').strip(),)
        ).fetchone()

        if not row or not check_password_hash(row['password_hash'], password or ''):
            return None
        if not row['is_approved'] and not row['is_admin']:
            raise PendingApprovalError(f"Account {row['username']} is awaiting approval")

        try:
            conn.execute('UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE username = ?',
                         (row['username'],))
        except Exception as e:
            logger.warning(f"Failed to update last_login: {e}")
        return _row_to_user(row)


def get_user(username):
    """Get user by username. Returns user dict or None."""
    with get_db() as conn:
        row = conn.execute(
            f'SELECT {_USER_COLUMNS} FROM users WHERE username = ?', (username,)
        ).fetchone()
    return _row_to_user(row) if row else None


def list_users(include_admin=False):
    with get_db() as conn:
        rows = conn.execute(
            f'SELECT {_USER_COLUMNS} FROM users ORDER BY created_at, username'
        ).fetchall()
    users = [_row_to_user(row) for row in rows]
    if not include_admin:
        users = [u for u in users if not u['is_admin']]
    return users


def approve_user(username):
    """Approve a pending account. Returns False when the user doesn't exist."""
    with get_db() as conn:
        cursor = conn.execute('UPDATE users SET is_approved = 1 WHERE username = ?', (username,))
        updated = cursor.rowcount > 0
    if updated:
        logger.info(f"Approved user {username}")
    return updated


def delete_user(username):
    """Delete an account and its dataset. Administrators can't be deleted."""
    user = get_user(username)
    if not user:
        return False
    if user['is_admin']:
        raise ValueError("Administrator accounts cannot be deleted")
    with get_db() as conn:
        conn.execute('DELETE FROM users WHERE username = ?', (username,))
    delete_dataset(username)
    logger.info(f"Deleted user {username}")
    return True


def ensure_admin_user():
    """Create the configured administrator account on first start."""
    if get_user(Config.ADMIN_USERNAME):
        return
    if not Config.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set; administrator account not created")
        return
    with get_db() as conn:
        conn.execute(
            'INSERT INTO users (username, password_hash, golf_course, is_approved, is_admin) '
            'VALUES (?, ?, ?, 1, 1)',
            (Config.ADMIN_USERNAME, generate_password_hash(Config.ADMIN_PASSWORD), 'admin')
        )
    create_dataset(Config.ADMIN_USERNAME)
    logger.info(f"Created administrator account {Config.ADMIN_USERNAME}")


# ---------------------------------------------------------------------------
# Session management
# ---------------------------------------------------------------------------

def login_user_session(user):
    """Set session after successful auth."""
    session.permanent = True
    session['username'] = user['username']
    session['golf_course'] = user['golf_course']
    session['is_admin'] = user['is_admin']


def logout_user_session():
    """Clear all session data."""
    session.pop('username', None)
    session.pop('golf_course', None)
    session.pop('is_admin', None)


def get_current_user():
    """Get current logged-in user from session. Returns dict or None."""
    username = session.get('username')
    if username:
        return {
            'username': username,
            'golf_course': session.get('golf_course'),
            'is_admin': bool(session.get('is_admin')),
        }
    return None


def current_username():
    return session.get('username')


# ---------------------------------------------------------------------------
# Route protection
# ---------------------------------------------------------------------------

def login_required(f):
    """Decorator for API routes that require authentication (JSON 401)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('username'):
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator for admin-only routes. Checks is_admin on the users table."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        username = session.get('username')
        if not username:
            return jsonify({'error': 'Authentication required'}), 401
        with get_db() as conn:
            row = conn.execute('SELECT is_admin FROM users WHERE username = ?', (username,)).fetchone()
        if not row or not row['is_admin']:
            logger.warning(f"Non-admin {username} denied admin access to {request.path}")
            return jsonify({'error': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function
