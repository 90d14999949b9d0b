"""
Job Permissions Module

Explicit per-job grants. One row per (job, user); re-granting overwrites the
level in place.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    func,
    Enum as SQLEnum,
    UniqueConstraint,
)
from database.engine import Base
from core.access.levels import JobPermissionLevel
from datetime import datetime
import uuid


class JobPermission(Base):
    """Level granted to a user on a job."""

    __tablename__: str = "job_permissions"
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permission_level: Mapped[JobPermissionLevel] = mapped_column(
        SQLEnum(JobPermissionLevel, native_enum=False, length=20),
        nullable=False,
    )
    granted_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=True
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_permissions_job_user"),
    )
