"""Middleware for request user context."""
from functools import wraps
from flask import session, g, jsonify


def load_user():
    """
    Load the acting user id into g (Flask's per-request global).

    The login flow lives in the external auth service, which stores
    ``user_id`` in the signed session cookie. Sets g.user_id or None.
    """
    g.user_id = None

    user_id = session.get('user_id')
    if user_id is None:
        return
    try:
        g.user_id = int(user_id)
    except (TypeError, ValueError):
        # Tampered or stale cookie: treat as anonymous
        session.pop('user_id', None)


def require_login(f):
    """
    Decorator: Require an authenticated user.

    Returns a 401 JSON error instead of redirecting, since every caller is an API client.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user_id') is None:
            return jsonify({
                'status': 'error',
                'kind': 'unauthorized',
                'message': 'Authentication required'
            }), 401
        return f(*args, **kwargs)
    return decorated_function
