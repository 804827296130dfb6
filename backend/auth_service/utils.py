"""
Shared authentication helpers.
Provides the password hasher and token creation/verification.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from dotenv import load_dotenv

from backend.config.constants import TOKEN_EXPIRATION_DAYS_DEFAULT

# Load .env only once here
load_dotenv()

# Load secrets & configs
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

JWT_ALGORITHM = "HS256"
TOKEN_EXPIRATION_DAYS = int(os.getenv("TOKEN_EXPIRATION_DAYS", TOKEN_EXPIRATION_DAYS_DEFAULT))

ph = PasswordHasher()


# --- JWT CREATION ---
def create_token(user_id: int) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "exp": now + timedelta(days=TOKEN_EXPIRATION_DAYS),
        "iat": now,
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# --- JWT VALIDATION ---
def decode_token(token: str) -> int:
    """
    Verify a JWT and return the user id it was issued for.

    Raises:
        jwt.ExpiredSignatureError: The token is past its expiry.
        jwt.InvalidTokenError: Bad signature, malformed token or subject.
    """
    payload = jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise jwt.InvalidTokenError("token subject is not a user id")


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not header or not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    return token or None
