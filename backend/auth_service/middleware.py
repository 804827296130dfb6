"""
Route decorators for authentication and role checks.

Usage:
    @users_bp.route("/", methods=["GET"])
    @protect
    @authorize(ROLE_ADMIN)
    def get_all_users(): ...

`protect` must be applied before (above) `authorize`, since the role check
reads the user that `protect` attaches to `flask.g.user`.
"""

import logging
from functools import wraps
from typing import Callable

import jwt
from flask import g, jsonify, request

from backend.auth_service.utils import bearer_token, decode_token
from backend.config.constants import HTTP_STATUS
from backend.database.db_connection import get_db
from backend.models import user_model


def protect(view: Callable) -> Callable:
    """
    Require a valid bearer token and load the matching user.

    Responds 401 when the token is missing, invalid, expired, or belongs
    to a user that no longer exists.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = bearer_token(request.headers.get("Authorization"))
        if not token:
            return jsonify({"error": "Not authorized, no token provided"}), HTTP_STATUS["UNAUTHORIZED"]

        try:
            user_id = decode_token(token)
        except jwt.ExpiredSignatureError:
            return jsonify({"error": "Not authorized, token expired"}), HTTP_STATUS["UNAUTHORIZED"]
        except jwt.InvalidTokenError:
            return jsonify({"error": "Not authorized, token failed"}), HTTP_STATUS["UNAUTHORIZED"]

        try:
            with get_db() as conn:
                with conn.cursor() as cur:
                    user = user_model.find_user_by_id(cur, user_id)
        except Exception as e:
            logging.error(f"[Auth] Could not load user {user_id}: {e}")
            return jsonify({"error": "Not authorized, token failed"}), HTTP_STATUS["UNAUTHORIZED"]

        if not user:
            return jsonify({"error": "User not found"}), HTTP_STATUS["UNAUTHORIZED"]

        g.user = user
        return view(*args, **kwargs)

    return wrapper


def authorize(*roles: str) -> Callable:
    """
    Only let users whose role is in `roles` through; others get 403.
    """

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            role = g.user["role"]
            if role not in roles:
                return jsonify({
                    "error": f"User role '{role}' is not authorized to access this route"
                }), HTTP_STATUS["FORBIDDEN"]
            return view(*args, **kwargs)

        return wrapper

    return decorator
