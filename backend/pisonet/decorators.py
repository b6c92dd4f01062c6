# Overview: Request decorators for machine-to-machine API routes.

from functools import wraps
from flask import request, jsonify, current_app

from .services.auth_service import verify_shared_secret


def require_harvest_key(f):
    """
    Require the unit harvest key in the JSON body ({"key": ...}).

    SECURITY: Runs before the route touches any data. Returns 401 if the key
    is missing, wrong, or HARVEST_API_KEY is not configured.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request.get_json(silent=True) or {}
        key = data.get("key") if isinstance(data, dict) else None

        if not verify_shared_secret(key, current_app.config.get("HARVEST_API_KEY")):
            current_app.logger.warning(
                "Rejected harvest request from %s: invalid API key", request.remote_addr
            )
            return jsonify({"error": "Unauthorized: Invalid API key"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_cron_secret(f):
    """
    Require "Authorization: Bearer <CRON_SECRET>" from the external scheduler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        if not verify_shared_secret(token, current_app.config.get("CRON_SECRET")):
            current_app.logger.warning(
                "Rejected aggregation trigger from %s: invalid token", request.remote_addr
            )
            return jsonify({"error": "Invalid or expired token"}), 401

        return f(*args, **kwargs)

    return decorated_function
