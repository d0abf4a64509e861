"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login

All JWT logic is delegated to `auth_service.utils`.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from flask import Blueprint, request, jsonify, Response

from ashilac.database.db_connection import get_db
from ashilac.auth_service.utils import create_token
from ashilac.errors import AuthError, ValidationError, register_error_handlers

auth_bp = Blueprint("auth", __name__)
register_error_handlers(auth_bp)
ph = PasswordHasher()

# Stand-in hash checked when the email is unknown
_DUMMY_HASH = ph.hash("ashilac-unknown-user")


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path to the authentication service.
    Headers are left out since they carry credentials.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Auth] Response {response.status}")
    return response


def _auth_response(user: Dict[str, Any]) -> Response:
    token = create_token(user["user_id"], user["role"])
    return jsonify({
        "token": token,
        "user": {"id": user["user_id"], "name": user["name"], "email": user["email"]},
    })


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new member.

    Expects a JSON body with:
    - name (str)
    - email (str): Unique email address.
    - password (str)

    Returns:
        200: JSON with a new JWT token and the public user.
        400: Missing fields or email already exists.
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    name: str = str(data.get("name") or "").strip()
    email: str = str(data.get("email") or "").strip().lower()
    password: str = str(data.get("password") or "")

    # Validate input
    if not name:
        raise ValidationError("Name is required")
    if not email or not password:
        raise ValidationError("Email and password required")

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM users WHERE email = %s;", (email,))
            if cur.fetchone():
                raise ValidationError("Email already exists")

            pw_hash = ph.hash(password)

            try:
                cur.execute(
                    """
                    INSERT INTO users (name, email, password_hash)
                    VALUES (%s, %s, %s)
                    RETURNING user_id, name, email, role;
                    """,
                    (name, email, pw_hash),
                )
            except psycopg2.errors.UniqueViolation:
                # Another request registered the same email in between
                raise ValidationError("Email already exists")
            user = cur.fetchone()

    logging.info(f"[Auth] Registered user {user['user_id']}")
    return _auth_response(user), 200


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a member and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with JWT token and the public user.
        400: Missing credentials.
        401: Invalid credentials (wrong password or unknown email).
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    email: str = str(data.get("email") or "").strip().lower()
    password: str = str(data.get("password") or "")

    if not email or not password:
        raise ValidationError("Email and password required")

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT user_id, name, email, role, password_hash FROM users WHERE email = %s;",
                (email,),
            )
            user = cur.fetchone()

    # Verify password against hash
    try:
        ph.verify(user["password_hash"] if user else _DUMMY_HASH, password)
    except (VerificationError, InvalidHashError):
        raise AuthError("Invalid credentials")

    if not user:
        raise AuthError("Invalid credentials")

    return _auth_response(user), 200
