"""Shared fixtures and in-memory stores for tests."""

import os

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Optional

import pytest

from core.access import (
    AccessResolver,
    JobOwnership,
    JobPermissionLevel,
    PermissionGrant,
    UserProfile,
    UserRole,
)


class InMemoryUserStore:
    """User store over a dict."""

    def __init__(self):
        self.users: dict[str, UserProfile] = {}
        self.calls: list[str] = []

    def add(
        self,
        user_id: str,
        company_id: str,
        role: UserRole = UserRole.MEMBER,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserProfile:
        user = UserProfile(
            id=user_id,
            company_id=company_id,
            role=role,
            email=email or f"{user_id.lower()}@example.com",
            first_name=first_name,
            last_name=last_name,
        )
        self.users[user_id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[UserProfile]:
        self.calls.append(user_id)
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserProfile]:
        email = email.strip().lower()
        return next((u for u in self.users.values() if u.email == email), None)


class InMemoryJobStore:
    """Job store over a dict; the owning company follows the owner."""

    def __init__(self):
        self.jobs: dict[str, JobOwnership] = {}
        self.calls: list[str] = []

    def add(self, job_id: str, owner: UserProfile, title: str = "Backend Engineer") -> JobOwnership:
        job = JobOwnership(
            id=job_id,
            owner_user_id=owner.id,
            owner_company_id=owner.company_id,
            title=title,
        )
        self.jobs[job_id] = job
        return job

    async def get_job(self, job_id: str) -> Optional[JobOwnership]:
        self.calls.append(job_id)
        return self.jobs.get(job_id)


class InMemoryGrantStore:
    """Grant store keyed by id with a unique (job, user) index."""

    def __init__(self):
        self.grants: dict[str, PermissionGrant] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _find(self, job_id: str, user_id: str) -> Optional[PermissionGrant]:
        return next(
            (g for g in self.grants.values() if g.job_id == job_id and g.user_id == user_id),
            None,
        )

    async def get_grant(self, job_id: str, user_id: str) -> Optional[PermissionGrant]:
        self.calls.append((job_id, user_id))
        return self._find(job_id, user_id)

    async def get_grant_by_id(self, grant_id: str) -> Optional[PermissionGrant]:
        return self.grants.get(grant_id)

    async def list_grants(self, job_id: str) -> list[PermissionGrant]:
        grants = [g for g in self.grants.values() if g.job_id == job_id]
        return sorted(grants, key=lambda g: g.granted_at, reverse=True)

    async def upsert_grant(
        self,
        job_id: str,
        user_id: str,
        level: JobPermissionLevel,
        granted_by: str,
    ) -> PermissionGrant:
        return self.add(job_id, user_id, level, granted_by)

    def add(
        self,
        job_id: str,
        user_id: str,
        level: JobPermissionLevel,
        granted_by: str = "A1",
    ) -> PermissionGrant:
        existing = self._find(job_id, user_id)
        if existing:
            grant = replace(existing, level=level, granted_by=granted_by)
        else:
            grant = PermissionGrant(
                id=f"grant-{next(self._ids)}",
                job_id=job_id,
                user_id=user_id,
                level=level,
                granted_by=granted_by,
                granted_at=self._tick(),
            )
        self.grants[grant.id] = grant
        return grant

    async def update_grant_level(
        self, grant_id: str, level: JobPermissionLevel
    ) -> Optional[PermissionGrant]:
        grant = self.grants.get(grant_id)
        if grant is None:
            return None
        grant = replace(grant, level=level)
        self.grants[grant_id] = grant
        return grant

    async def delete_grant(self, grant_id: str) -> bool:
        return self.grants.pop(grant_id, None) is not None


class FakeEmailService:
    """Records notifications instead of sending them."""

    def __init__(self, succeed: bool = True):
        self.sent: list[dict] = []
        self.succeed = succeed

    def send_job_permission_granted(self, **kwargs) -> bool:
        self.sent.append(kwargs)
        return self.succeed


@pytest.fixture
def users():
    """User store seeded with two companies.

    C1: admin A1, job owner O1, members U1 and U3.
    C2: admin A2, member U2.
    """
    store = InMemoryUserStore()
    store.add("A1", "C1", UserRole.ADMIN, first_name="Ada", last_name="Admin")
    store.add("O1", "C1", first_name="Olive", last_name="Owner")
    store.add("U1", "C1", first_name="Uma", last_name="Member")
    store.add("U3", "C1")
    store.add("A2", "C2", UserRole.ADMIN)
    store.add("U2", "C2")
    return store


@pytest.fixture
def jobs(users):
    """Job store with J1 owned by O1 (company C1) and J2 owned by A2 (company C2)."""
    store = InMemoryJobStore()
    store.add("J1", users.users["O1"], title="Backend Engineer")
    store.add("J2", users.users["A2"], title="Designer")
    return store


@pytest.fixture
def grants():
    return InMemoryGrantStore()


@pytest.fixture
def resolver(users, jobs, grants):
    return AccessResolver(users=users, jobs=jobs, grants=grants)


@pytest.fixture
def email_service():
    return FakeEmailService()
