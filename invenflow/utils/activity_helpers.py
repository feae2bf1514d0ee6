from sqlalchemy.ext.asyncio import AsyncSession

from invenflow.models.support.activity_models import UserActivity
from invenflow.constants.activity_templates import ACTIVITY_TEMPLATES
from invenflow.constants.activity_codes import ActivityCode
from invenflow.utils import time_utils


def render_activity(code: ActivityCode, **context) -> str:
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        return template.format(**context)
    except KeyError as e:
        raise ValueError(f"Missing activity context key: {e.args[0]} for {code}")


async def emit_activity(
    db: AsyncSession,
    *,
    user_id: int | None,
    username: str,
    code: ActivityCode,
    **context,
):
    """Stage an activity row in the caller's transaction. Never commits."""
    db.add(
        UserActivity(
            user_id=user_id,
            username_snapshot=username,
            message=render_activity(code, **context),
            created_at=time_utils.utc_now(),
        )
    )
