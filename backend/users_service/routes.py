"""
User service route handlers.

Provides routes for:
- User registration
- User login
- Profile retrieval (/profile GET)
- Profile update (/profile PUT)
- Admin user listing

Token handling lives in `auth_service.utils`, the auth decorators in
`auth_service.middleware`.
"""

import logging
from typing import Tuple

import psycopg2.errors
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Blueprint, Response, g, jsonify, request

from backend.auth_service.middleware import authorize, protect
from backend.auth_service.utils import create_token, ph
from backend.config.constants import HTTP_STATUS, ROLE_ADMIN
from backend.database.db_connection import get_db
from backend.gateway.request_utils import json_body
from backend.models import user_model
from backend.models.errors import ValidationError

users_bp = Blueprint("users", __name__)


# --- REQUEST LOGGING ---
@users_bp.before_request
def before_request() -> None:
    logging.info(f"[Users] Incoming {request.method} {request.path}")


@users_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Users] Response {response.status}")
    return response


def _duplicate_email() -> Tuple[Response, int]:
    return jsonify({"error": "User already exists with this email"}), HTTP_STATUS["CONFLICT"]


def _invalid_credentials() -> Tuple[Response, int]:
    return jsonify({"error": "Invalid email or password"}), HTTP_STATUS["UNAUTHORIZED"]


# --- REGISTER ---
@users_bp.route("/register", methods=["POST"])
def register_user() -> Tuple[Response, int]:
    """
    Register a new user.

    Expects a JSON body with:
    - name (str): 2-50 characters.
    - email (str): Unique email address.
    - password (str): Minimum 6 characters.

    Returns:
        201: JSON with the new user and a token.
        400: Invalid input.
        409: Email already registered.
    """
    try:
        data = json_body()
        fields = user_model.validate_registration(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                if user_model.find_user_by_email(cur, fields["email"]):
                    return _duplicate_email()

                user = user_model.create_user(
                    cur,
                    fields["name"],
                    fields["email"],
                    ph.hash(fields["password"]),
                )
    except psycopg2.errors.UniqueViolation:
        return _duplicate_email()
    except Exception as e:
        logging.error(f"[Users] Registration failed: {e}")
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    logging.info(f"[Users] Registered user {user['user_id']}")

    return jsonify({
        "message": "User registered successfully",
        "user": user_model.serialize_user(user),
        "token": create_token(user["user_id"]),
    }), HTTP_STATUS["CREATED"]


# --- LOGIN ---
@users_bp.route("/login", methods=["POST"])
def login_user() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with the user and a token.
        400: Missing credentials.
        401: Unknown email or wrong password.
    """
    try:
        data = json_body()
    except ValidationError as e:
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        return jsonify({"error": "Email and password are required"}), HTTP_STATUS["BAD_REQUEST"]

    email = email.strip().lower()

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                user = user_model.find_user_for_login(cur, email)
                if not user:
                    return _invalid_credentials()

                try:
                    ph.verify(user["password_hash"], password)
                except (VerificationError, InvalidHashError):
                    return _invalid_credentials()

                # Keep hashes current when the argon2 parameters change
                if ph.check_needs_rehash(user["password_hash"]):
                    user_model.update_password_hash(cur, user["user_id"], ph.hash(password))
    except Exception as e:
        logging.error(f"[Users] Login failed: {e}")
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    return jsonify({
        "message": "Login successful",
        "user": user_model.serialize_user(user),
        "token": create_token(user["user_id"]),
    }), HTTP_STATUS["OK"]


# --- GET PROFILE ---
@users_bp.route("/profile", methods=["GET"])
@protect
def get_user_profile() -> Tuple[Response, int]:
    """
    The authenticated user's profile with created and registered events.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                profile = user_model.load_profile(cur, g.user)
    except Exception as e:
        logging.error(f"[Users] Could not load profile {g.user['user_id']}: {e}")
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    return jsonify({"user": profile}), HTTP_STATUS["OK"]


# --- UPDATE PROFILE ---
@users_bp.route("/profile", methods=["PUT"])
@protect
def update_user_profile() -> Tuple[Response, int]:
    """
    Update the authenticated user's name and/or email.
    Missing or empty values keep the current value.

    Returns:
        200: Updated user.
        400: Invalid name or email.
        404: User disappeared between authentication and update.
        409: Email belongs to another user.
    """
    current = g.user

    try:
        data = json_body()
        name = user_model.clean_name(data.get("name") or current["name"])
        email = user_model.clean_email(data.get("email") or current["email"])
    except ValidationError as e:
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                if email != current["email"]:
                    owner = user_model.find_user_by_email(cur, email)
                    if owner and owner["user_id"] != current["user_id"]:
                        return _duplicate_email()

                updated = user_model.update_user(cur, current["user_id"], name, email)
    except psycopg2.errors.UniqueViolation:
        return _duplicate_email()
    except Exception as e:
        logging.error(f"[Users] Profile update failed for {current['user_id']}: {e}")
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    if not updated:
        return jsonify({"error": "User not found"}), HTTP_STATUS["NOT_FOUND"]

    return jsonify({
        "message": "Profile updated successfully",
        "user": user_model.serialize_user(updated),
    }), HTTP_STATUS["OK"]


# --- LIST USERS (ADMIN ONLY) ---
@users_bp.route("/", methods=["GET"], strict_slashes=False)
@protect
@authorize(ROLE_ADMIN)
def get_all_users() -> Tuple[Response, int]:
    """
    Admin-only endpoint to list all users in the system.
    Password hashes are never included.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                users = user_model.list_users(cur)
    except Exception as e:
        logging.error(f"[Users] Error listing users: {e}")
        return jsonify({"error": str(e)}), HTTP_STATUS["BAD_REQUEST"]

    return jsonify({"count": len(users), "users": users}), HTTP_STATUS["OK"]
