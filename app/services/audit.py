from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.models.user_log import UserLog

logger = logging.getLogger(__name__)

CUSTOMER_UPDATE_ACTION = "customer_update"


def log_user_action(
    db: Session,
    *,
    user_id: int,
    action_type: str,
    target_id: int | None,
    details: str = "",
) -> bool:
    """Append one audit entry; failures are logged and reported as ``False``.

    The row is written inside a savepoint so a failed insert leaves the
    caller's outer transaction usable.
    """
    try:
        with db.begin_nested():
            db.add(
                UserLog(
                    user_id=user_id,
                    action_type=action_type,
                    target_id=target_id,
                    details=details,
                )
            )
    except Exception:
        logger.exception(
            "Failed to log user action action_type=%s target_id=%s",
            action_type,
            target_id,
        )
        return False
    return True
