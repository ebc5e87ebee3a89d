"""
Password hashing and session token helpers
"""

import jwt
from datetime import datetime, timedelta
from typing import Optional
from passlib.context import CryptContext
from config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ALGORITHM = "HS256"
# Matches the auth cookie max-age
TOKEN_LIFETIME = timedelta(days=7)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _signing_key() -> str:
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot sign or verify tokens.")
    return settings.jwt_secret_key


def create_jwt(user_id: str) -> str:
    """Session token for a user id, valid for TOKEN_LIFETIME."""
    claims = {"sub": user_id, "exp": datetime.utcnow() + TOKEN_LIFETIME}
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_jwt(token: str) -> Optional[dict]:
    """
    Claims of a valid token.

    Expired, tampered or malformed tokens all give None; the caller answers
    401 without distinguishing them.
    """
    key = _signing_key()
    try:
        return jwt.decode(token, key, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
