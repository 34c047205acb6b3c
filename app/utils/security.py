"""
Password hashing and JWT helpers
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from app.config import settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

# New credentials are hashed with Argon2; bcrypt hashes from the legacy
# password column still verify and are flagged for rehash.
pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    deprecated="auto",
)

# Legacy column holds bcrypt hashes at 12 rounds
legacy_context = CryptContext(schemes=["bcrypt"], bcrypt__rounds=12)

ACCESS_TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "password_reset"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against an argon2 or bcrypt hash; malformed hashes never match"""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password hash could not be verified: {str(e)}")
        return False


def hash_legacy_password(password: str) -> str:
    return legacy_context.hash(password)


def create_token(subject: str, token_type: str, expires_minutes: int, **claims: Any) -> str:
    now = utcnow()
    payload = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, role: str) -> str:
    return create_token(
        user_id,
        ACCESS_TOKEN_TYPE,
        settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        role=role,
    )


def create_password_reset_token(user_id: str) -> str:
    return create_token(user_id, RESET_TOKEN_TYPE, settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)


def decode_token(token: str, expected_type: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a token

    Returns:
        The payload, or None when the token is invalid, expired or of another type
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid token: {str(e)}")
        return None

    if payload.get("type") != expected_type or not payload.get("sub"):
        return None
    return payload
