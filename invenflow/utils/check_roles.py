from fastapi import Depends

from invenflow.core.exceptions import AppException
from invenflow.constants.error_codes import ErrorCode
from invenflow.models.users.user_models import User
from invenflow.utils.get_user import get_current_user
from invenflow.utils.logger import get_logger

logger = get_logger("auth.roles")


def require_role(roles: list[str]):
    allowed = {r.lower() for r in roles}

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role.lower() not in allowed:
            logger.warning(
                "Role %s denied; requires one of %s", user.role, sorted(allowed),
                extra={"user_id": user.id},
            )
            raise AppException(403, "Permission denied", ErrorCode.PERMISSION_DENIED)
        return user

    return role_checker
