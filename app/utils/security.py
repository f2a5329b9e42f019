"""
Shared-secret authentication for administrative and scheduled callers
"""

import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request

logger = logging.getLogger(__name__)


def get_bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def token_required(config_key):
    """
    Require `Authorization: Bearer <token>` matching app.config[config_key].

    When the token is not configured every request is rejected.
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            expected = current_app.config.get(config_key)
            supplied = get_bearer_token()

            if not expected or not supplied or not hmac.compare_digest(supplied, expected):
                logger.warning(
                    f"Rejected {request.method} {request.path} from {request.remote_addr}: "
                    f"{'missing' if not supplied else 'invalid'} token"
                )
                return jsonify({"success": False, "error": "Unauthorized"}), 401

            return f(*args, **kwargs)

        return decorated_function

    return decorator
