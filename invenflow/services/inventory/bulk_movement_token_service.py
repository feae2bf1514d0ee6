"""Public confirmation tokens for bulk movements.

A token is a bearer capability: whoever holds it may confirm the movement.
Tokens are minted once at creation, never regenerated or extended, and are
only ever logged through :func:`mask_token`.
"""

import secrets
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.core.config import (
    BULK_MOVEMENT_TOKEN_BYTES,
    BULK_MOVEMENT_TOKEN_TTL_HOURS,
    PUBLIC_APP_URL,
)
from invenflow.core.exceptions import AppException
from invenflow.constants.error_codes import ErrorCode
from invenflow.models.inventory.bulk_movement_models import BulkMovement
from invenflow.utils import time_utils

MAX_TOKEN_ATTEMPTS = 5


def generate_public_token() -> str:
    return secrets.token_urlsafe(BULK_MOVEMENT_TOKEN_BYTES)


def compute_token_expiry(created_at: datetime) -> datetime:
    return created_at + timedelta(hours=BULK_MOVEMENT_TOKEN_TTL_HOURS)


def is_token_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    now = now or time_utils.utc_now()
    return now > time_utils.as_utc(expires_at)


def mask_token(token: str | None) -> str:
    if not token:
        return "<none>"
    return f"{token[:6]}..."


def build_public_url(token: str) -> str:
    return f"{PUBLIC_APP_URL}/bulk-movement/confirm/{token}"


async def mint_unique_token(db: AsyncSession) -> str:
    # the unique constraint on public_token is the final guard
    for _ in range(MAX_TOKEN_ATTEMPTS):
        token = generate_public_token()
        taken = await db.scalar(
            select(BulkMovement.id).where(BulkMovement.public_token == token)
        )
        if not taken:
            return token

    raise AppException(
        503,
        "Could not allocate a confirmation link, please retry",
        ErrorCode.BULK_MOVEMENT_TOKEN_COLLISION,
    )


PUBLIC_PATH_PREFIX = "/public/bulk-movements/"


def mask_public_path(path: str) -> str:
    """Public paths carry the confirmation token; only its masked prefix is logged."""
    if not path.startswith(PUBLIC_PATH_PREFIX):
        return path

    token, _, rest = path[len(PUBLIC_PATH_PREFIX):].partition("/")
    masked = PUBLIC_PATH_PREFIX + mask_token(token)
    return f"{masked}/{rest}" if rest else masked
