"""SQLAlchemy-backed implementations of the access control stores."""

from typing import Optional, Sequence
import logging
import uuid

from sqlalchemy import select, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.access import (
    BackingStoreError,
    JobOwnership,
    JobPermissionLevel,
    PermissionGrant,
    UserProfile,
)
from database.engine import AsyncSessionLocal
from database.models import Job, JobPermission, Profile

logger = logging.getLogger(__name__)


def _to_profile(row: Profile) -> UserProfile:
    return UserProfile(
        id=row.id,
        company_id=row.company_id,
        role=row.role,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
    )


def _to_grant(row: JobPermission) -> PermissionGrant:
    return PermissionGrant(
        id=row.id,
        job_id=row.job_id,
        user_id=row.user_id,
        level=row.permission_level,
        granted_by=row.granted_by,
        granted_at=row.granted_at,
    )


_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_insert(session: AsyncSession):
    """INSERT construct supporting ON CONFLICT for the session's database."""
    dialect = session.bind.dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise SQLAlchemyError(f"Grant upsert is not supported on {dialect}") from None


class _SessionStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory


class SQLUserStore(_SessionStore):
    """Reads user profiles from the ``profiles`` table."""

    async def get_user(self, user_id: str) -> Optional[UserProfile]:
        try:
            async with self.session_factory() as session:
                row = await session.get(Profile, user_id)
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to load user {user_id}") from e
        return _to_profile(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserProfile]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Profile).where(func.lower(Profile.email) == email.strip().lower())
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise BackingStoreError("Failed to look up user by email") from e
        return _to_profile(row) if row else None


class SQLJobStore(_SessionStore):
    """Reads job ownership, resolving the company through the owning profile."""

    async def get_job(self, job_id: str) -> Optional[JobOwnership]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Job.id, Job.profile_id, Job.title, Profile.company_id)
                    .join(Profile, Job.profile_id == Profile.id)
                    .where(Job.id == job_id)
                )
                row = result.one_or_none()
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to load job {job_id}") from e

        if row is None:
            return None
        return JobOwnership(
            id=row.id,
            owner_user_id=row.profile_id,
            owner_company_id=row.company_id,
            title=row.title,
        )


class SQLGrantStore(_SessionStore):
    """Reads and writes rows of ``job_permissions``."""

    async def get_grant(self, job_id: str, user_id: str) -> Optional[PermissionGrant]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(JobPermission).where(
                        JobPermission.job_id == job_id,
                        JobPermission.user_id == user_id,
                    )
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise BackingStoreError(
                f"Failed to load grant for job {job_id} and user {user_id}"
            ) from e
        return _to_grant(row) if row else None

    async def get_grant_by_id(self, grant_id: str) -> Optional[PermissionGrant]:
        try:
            async with self.session_factory() as session:
                row = await session.get(JobPermission, grant_id)
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to load grant {grant_id}") from e
        return _to_grant(row) if row else None

    async def list_grants(self, job_id: str) -> Sequence[PermissionGrant]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(JobPermission)
                    .where(JobPermission.job_id == job_id)
                    .order_by(JobPermission.granted_at.desc(), JobPermission.id)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to list grants for job {job_id}") from e
        return [_to_grant(row) for row in rows]

    async def upsert_grant(
        self,
        job_id: str,
        user_id: str,
        level: JobPermissionLevel,
        granted_by: str,
    ) -> PermissionGrant:
        """
        Insert or overwrite the grant for (job, user) in one statement.

        Concurrent first-time grants for the same pair resolve to a single
        row holding the last level written.
        """
        try:
            async with self.session_factory() as session:
                insert = _dialect_insert(session)
                stmt = insert(JobPermission).values(
                    id=str(uuid.uuid4()),
                    job_id=job_id,
                    user_id=user_id,
                    permission_level=level,
                    granted_by=granted_by,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["job_id", "user_id"],
                    set_={
                        "permission_level": stmt.excluded.permission_level,
                        "granted_by": stmt.excluded.granted_by,
                        "updated_at": func.now(),
                    },
                )
                await session.execute(stmt)
                result = await session.execute(
                    select(JobPermission).where(
                        JobPermission.job_id == job_id,
                        JobPermission.user_id == user_id,
                    )
                )
                grant = _to_grant(result.scalar_one())
                await session.commit()
        except SQLAlchemyError as e:
            raise BackingStoreError(
                f"Failed to save grant for job {job_id} and user {user_id}"
            ) from e

        logger.debug(f"Saved {level.value} grant {grant.id} on job {job_id}")
        return grant

    async def update_grant_level(
        self, grant_id: str, level: JobPermissionLevel
    ) -> Optional[PermissionGrant]:
        try:
            async with self.session_factory() as session:
                row = await session.get(JobPermission, grant_id)
                if row is None:
                    return None
                row.permission_level = level
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to update grant {grant_id}") from e
        return _to_grant(row)

    async def delete_grant(self, grant_id: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(JobPermission).where(JobPermission.id == grant_id)
                )
                deleted = result.rowcount > 0
                await session.commit()
        except SQLAlchemyError as e:
            raise BackingStoreError(f"Failed to delete grant {grant_id}") from e
        return deleted
