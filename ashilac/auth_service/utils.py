"""
Shared authentication helpers.
Provides token creation, verification, and the optional acting-user check
applied to mutation endpoints.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Tuple, Optional
from flask import jsonify, request, Response
from dotenv import load_dotenv

# Load .env only once here
load_dotenv()

# Load secrets & configs
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

# 0 disables the exp claim
TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 0))

REQUIRE_AUTH = os.getenv("REQUIRE_AUTH", "false").strip().lower() in ("1", "true", "yes", "on")


# --- JWT CREATION ---
def create_token(user_id: int, role: str = "member") -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.
        role (str): The role of the user (member by default).

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "userId": user_id,
        "role": role,
        "iat": now,
    }
    if TOKEN_EXPIRATION_MINUTES > 0:
        payload["exp"] = now + timedelta(minutes=TOKEN_EXPIRATION_MINUTES)

    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


# --- JWT VALIDATION ---
def verify_token_from_request() -> Tuple[Optional[int], Optional[Response], Optional[int]]:
    """
    Verify the JWT in the Authorization header.

    Returns:
        tuple: (user_id, error_response, status_code)
               If successful, error_response and status_code are None.
               If failed, user_id is None.
    """

    auth = request.headers.get("Authorization", "")

    if not auth.startswith("Bearer "):
        return None, jsonify({"error": "missing token"}), 401

    token = auth.split(" ", 1)[1]

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None, jsonify({"error": "token expired"}), 401
    except jwt.InvalidTokenError:
        return None, jsonify({"error": "invalid token"}), 401

    return payload.get("userId"), None, None


def check_acting_user(user_id: int) -> Tuple[Optional[Response], Optional[int]]:
    """
    Enforce that the caller acts on their own behalf when REQUIRE_AUTH is on.

    The bearer token must be valid and belong to user_id. With REQUIRE_AUTH
    off the check always passes.

    Returns:
        tuple: (error_response, status_code), both None when allowed.
    """
    if not REQUIRE_AUTH:
        return None, None

    auth_user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    if auth_user_id != user_id:
        return jsonify({"error": "permission denied"}), 403

    return None, None
