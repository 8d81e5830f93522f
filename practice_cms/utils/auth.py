"""
Password utilities and the CMS access dependency.
Uses bcrypt for password hashing.
"""
from typing import Optional
import logging

import bcrypt
from fastapi import Header, HTTPException, status

from practice_cms.config import settings

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with a fresh bcrypt salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Check a plain password against a bcrypt hash.
    A malformed hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def verify_admin_password(password: str) -> bool:
    """
    Verify admin password against ADMIN_PASSWORD_HASH.

    Raises:
        ValueError: If ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_PASSWORD_HASH not configured")

    return verify_password(password, settings.ADMIN_PASSWORD_HASH)


def verify_cms_password(
    x_cms_password: Optional[str] = Header(None, alias="X-CMS-Password", description="CMS admin password")
) -> bool:
    """
    FastAPI dependency guarding every admin route.

    Raises:
        HTTPException: 401 if the password is missing or wrong,
            500 if no admin password hash is configured
    """
    if not x_cms_password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing password", "detail": "CMS access requires password authentication"}
        )

    try:
        authenticated = verify_admin_password(x_cms_password)
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not configured; rejecting CMS request")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Server configuration error", "detail": "CMS authentication is not configured"}
        )

    if not authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid password", "detail": "CMS access denied"}
        )
    return True
