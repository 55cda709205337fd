"""Authentication utilities for ChoreQuest.

Authentication itself happens outside this service. Requests reach us with
either the administrator API token or the ID of the signed-in child:

- ``Authorization: Bearer <ADMIN_API_TOKEN>`` marks an administrator request
- ``X-Child-Id: <id>`` names the child making the request
"""

import logging
import secrets
from functools import wraps
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)


def verify_admin_token(token: str) -> bool:
    """
    Verify if the provided token is the administrator API token.

    Args:
        token: The token to verify

    Returns:
        bool: True if token is valid
    """
    stored_token = current_app.config.get('ADMIN_API_TOKEN')
    if not stored_token:
        logger.debug("ADMIN_API_TOKEN is not configured, refusing administrator request")
        return False

    # Use constant-time comparison to prevent timing attacks
    return secrets.compare_digest(token, stored_token)


def load_request_identity():
    """Populate g.is_admin and g.child_id from the request headers."""
    g.is_admin = False
    g.child_id = None

    auth_header = request.headers.get('Authorization')
    if auth_header and auth_header.startswith('Bearer '):
        token = auth_header[7:]  # Remove 'Bearer ' prefix
        g.is_admin = verify_admin_token(token)

    child_header = request.headers.get('X-Child-Id')
    if child_header:
        try:
            g.child_id = int(child_header)
        except ValueError:
            logger.debug(f"Ignoring malformed X-Child-Id header: {child_header!r}")


def admin_required(f):
    """Decorator to ensure the request carries the administrator token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not getattr(g, 'is_admin', False):
            return jsonify({
                'error': 'Unauthorized',
                'message': 'Administrator token required'
            }), 401
        return f(*args, **kwargs)
    return decorated_function


def child_required(f):
    """Decorator to ensure the request identifies a child.

    The child ID is passed to the view as ``child_id``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        child_id = getattr(g, 'child_id', None)
        if child_id is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'X-Child-Id header required'
            }), 401
        return f(*args, child_id=child_id, **kwargs)
    return decorated_function


def child_or_admin_required(f):
    """Decorator for views a child may see about themselves and an administrator about anyone.

    The view receives the requested ``child_id`` from the URL.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, 'is_admin', False):
            return f(*args, **kwargs)

        own_id = getattr(g, 'child_id', None)
        if own_id is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'Authentication required'
            }), 401

        if kwargs.get('child_id') != own_id:
            return jsonify({
                'error': 'Forbidden',
                'message': 'You can only view your own data'
            }), 403

        return f(*args, **kwargs)
    return decorated_function
