"""
Typed records and the store interfaces the access resolver depends on.

Stores return ``None`` for missing records and raise ``BackingStoreError``
when the storage call itself fails.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Sequence

from core.access.levels import JobPermissionLevel


class UserRole(str, Enum):
    """Company-level role of a user."""

    ADMIN = "admin"
    MEMBER = "member"


@dataclass(frozen=True)
class UserProfile:
    id: str
    company_id: str
    role: UserRole
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email or self.id


@dataclass(frozen=True)
class JobOwnership:
    id: str
    owner_user_id: str
    owner_company_id: str
    title: Optional[str] = None


@dataclass(frozen=True)
class PermissionGrant:
    id: str
    job_id: str
    user_id: str
    level: JobPermissionLevel
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None


class UserStore(Protocol):
    async def get_user(self, user_id: str) -> Optional[UserProfile]: ...

    async def get_user_by_email(self, email: str) -> Optional[UserProfile]: ...


class JobStore(Protocol):
    async def get_job(self, job_id: str) -> Optional[JobOwnership]: ...


class GrantStore(Protocol):
    async def get_grant(self, job_id: str, user_id: str) -> Optional[PermissionGrant]: ...

    async def get_grant_by_id(self, grant_id: str) -> Optional[PermissionGrant]: ...

    async def list_grants(self, job_id: str) -> Sequence[PermissionGrant]: ...

    async def upsert_grant(
        self,
        job_id: str,
        user_id: str,
        level: JobPermissionLevel,
        granted_by: str,
    ) -> PermissionGrant: ...

    async def update_grant_level(
        self, grant_id: str, level: JobPermissionLevel
    ) -> Optional[PermissionGrant]: ...

    async def delete_grant(self, grant_id: str) -> bool: ...
