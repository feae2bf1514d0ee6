from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from invenflow.core.db import get_db
from invenflow.core.exceptions import AppException
from invenflow.core.security import decode_access_token
from invenflow.constants.error_codes import ErrorCode
from invenflow.models.users.user_models import User
from invenflow.utils.logger import get_logger

logger = get_logger("auth.guard")

BEARER_PREFIX = "Bearer "


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the sender from a bearer access token."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.warning("Missing bearer token on %s", request.url.path)
        raise AppException(401, "Invalid authorization header", ErrorCode.UNAUTHORIZED)

    claims = decode_access_token(authorization[len(BEARER_PREFIX):].strip())

    user = await db.scalar(select(User).where(User.username == claims["sub"]))

    if not user:
        logger.warning("Token user not found", extra={"username": claims["sub"]})
        raise AppException(401, "User not found", ErrorCode.UNAUTHORIZED)

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise AppException(403, "User account is inactive", ErrorCode.PERMISSION_DENIED)

    # bumped on logout / role change elsewhere
    if user.token_version != claims.get("token_version"):
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise AppException(401, "Session expired", ErrorCode.UNAUTHORIZED)

    request.state.user = user
    return user
