"""
Companies Module

Tenants of the platform. Every profile belongs to exactly one company and a
job belongs to the company of the profile that created it.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, func
from database.engine import Base
from datetime import datetime
from typing import TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from database.models.users import Profile


class Company(Base):
    """Company (tenant) owning profiles and, through them, jobs."""

    __tablename__: str = "companies"
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    profiles: Mapped[list["Profile"]] = relationship(back_populates="company")
