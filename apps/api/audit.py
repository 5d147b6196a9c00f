"""
Best-effort activity audit trail.

log_activity never fails the calling request: store errors are logged at
WARNING and the session is rolled back.
"""

import logging

from fastapi import Request
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from apps.api.auth.models import ActivityLog, User
from apps.api.config import get_settings
from apps.api.dependencies import get_client_info

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    user: User,
    action: str,
    request: Request | None = None,
) -> None:
    """Record an action for user and prune entries beyond the retention limit."""
    user_agent, ip_address = get_client_info(request) if request else (None, None)
    try:
        db.add(
            ActivityLog(
                user_id=user.id,
                action=action[:500],
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
            )
        )
        db.flush()

        keep = (
            select(ActivityLog.id)
            .where(ActivityLog.user_id == user.id)
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(get_settings().audit_log_limit)
        )
        keep_ids = list(db.execute(keep).scalars())
        db.execute(
            delete(ActivityLog)
            .where(ActivityLog.user_id == user.id)
            .where(ActivityLog.id.notin_(keep_ids))
        )
        db.commit()
    except SQLAlchemyError:
        logger.warning("Failed to record activity %r for user %s", action, user.id, exc_info=True)
        db.rollback()


def recent_activity(db: Session, user: User) -> list[ActivityLog]:
    """Newest-first activity entries for user."""
    stmt = (
        select(ActivityLog)
        .where(ActivityLog.user_id == user.id)
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    )
    return list(db.execute(stmt).scalars())
