"""SQLAlchemy models for authentication and the activity audit trail."""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from db.base import Base
from db.models.base_model import generate_object_id, utcnow

# =============================================================================
# Enums
# =============================================================================


class UserRole(str, enum.Enum):
    """User roles for route authorization."""

    USER = "user"
    ADMIN = "admin"


# =============================================================================
# User Model
# =============================================================================


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False,
    )
    has_access = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    login_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    activity = relationship(
        "ActivityLog",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="ActivityLog.timestamp.desc()",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# =============================================================================
# Activity Log
# =============================================================================


class ActivityLog(Base):
    """
    Audit trail entry for a user action.

    Actions are colon-separated strings such as
    "created_study_design:Parallel" or "added_study_to_design:Parallel:ABC-001".
    Only the newest entries per user are retained (see apps.api.audit).
    """

    __tablename__ = "activity_logs"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    user_id = Column(
        String(24),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action = Column(String(500), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="activity")
