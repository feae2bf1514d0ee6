# invenflow/core/security.py
#
# Access tokens for the sender surface. Issuing them belongs to the identity
# service; this module signs (for tooling and tests) and verifies.

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError

from invenflow.core.config import (
    JWT_ACCESS_SECRET_KEY,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from invenflow.core.exceptions import AppException
from invenflow.constants.error_codes import ErrorCode

ACCESS_TOKEN_TYPE = "access"


def _unauthorized(message: str) -> AppException:
    return AppException(401, message, ErrorCode.UNAUTHORIZED)


def create_access_token(
    subject: str,
    token_version: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": subject,
        "token_version": token_version,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, JWT_ACCESS_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry and token type. Raises 401 on any failure."""
    try:
        claims = jwt.decode(token, JWT_ACCESS_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Access token has expired")
    except JWTError:
        raise _unauthorized("Invalid access token")

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")
    if not claims.get("sub"):
        raise _unauthorized("Access token has no subject")

    return claims
