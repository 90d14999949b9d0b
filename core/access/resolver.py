"""
Job access resolution.

Decides whether a user may view or act on a job's candidates, and at what
level. The decision is read-only and fail-closed: a missing record, a store
error or a timed-out lookup always resolves to denial. The same-company check
runs before the company-admin and job-owner short-circuits so that an admin
is never granted access to another company's job.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, NamedTuple, Optional, TypeVar

from core.access.exceptions import BackingStoreError, InvalidArgument
from core.access.levels import JobPermissionLevel, has_required_level, parse_level
from core.access.stores import GrantStore, JobStore, UserStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DecisionReason(str, Enum):
    """Why an access decision came out the way it did."""

    COMPANY_ADMIN = "company_admin"
    JOB_OWNER = "job_owner"
    GRANT = "grant"
    USER_NOT_FOUND = "user_not_found"
    JOB_NOT_FOUND = "job_not_found"
    GRANT_NOT_FOUND = "grant_not_found"
    LOOKUP_FAILED = "lookup_failed"
    DIFFERENT_COMPANY = "different_company"
    INSUFFICIENT_LEVEL = "insufficient_level"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a single resolution."""

    allowed: bool
    reason: DecisionReason
    level: Optional[JobPermissionLevel] = None

    @classmethod
    def deny(
        cls,
        reason: DecisionReason,
        level: Optional[JobPermissionLevel] = None,
    ) -> "AccessDecision":
        return cls(allowed=False, reason=reason, level=level)


class AccessCheck(NamedTuple):
    """Access flag plus the message a caller should show on denial."""

    has_access: bool
    error: Optional[str] = None


class _LookupFailed(Exception):
    pass


def _require_id(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{name} must be a non-empty string")
    return value


def _coerce_level(value) -> Optional[JobPermissionLevel]:
    try:
        return parse_level(value)
    except ValueError as e:
        raise InvalidArgument(str(e)) from None


def denial_message(required_level: Optional[JobPermissionLevel | str] = None) -> str:
    """Message shown to a user who was denied access to a job."""
    level = _coerce_level(required_level)
    if level is not None:
        return f"You need {level.value} level access or higher to perform this action"
    return "You do not have permission to access this job"


class AccessResolver:
    """
    Resolves per-job access from user, job and grant lookups.

    Args:
        users: Store returning user profiles
        jobs: Store returning job ownership records
        grants: Store returning explicit permission grants
        lookup_timeout: Seconds allowed for each store call, or None for no limit
    """

    def __init__(
        self,
        users: UserStore,
        jobs: JobStore,
        grants: GrantStore,
        lookup_timeout: Optional[float] = None,
    ):
        self.users = users
        self.jobs = jobs
        self.grants = grants
        self.lookup_timeout = lookup_timeout

    async def check_access(
        self,
        user_id: str,
        job_id: str,
        required_level: Optional[JobPermissionLevel | str] = None,
    ) -> bool:
        """
        Check if a user may access a job, optionally at a minimum level.

        Raises:
            InvalidArgument: If an identifier is blank or the level is unknown
        """
        decision = await self.explain(user_id, job_id, required_level)
        return decision.allowed

    async def resolve_tier(self, user_id: str, job_id: str) -> Optional[JobPermissionLevel]:
        """
        Get the level a user holds on a job.

        Returns:
            The granted level, ``JobPermissionLevel.OWNER`` for company admins
            and job owners, or None when the user has no access
        """
        decision = await self.explain(user_id, job_id)
        return decision.level if decision.allowed else None

    async def validate_job_access(
        self,
        user_id: str,
        job_id: str,
        required_level: Optional[JobPermissionLevel | str] = None,
    ) -> AccessCheck:
        """Check access and build the denial message shown to the user."""
        level = _coerce_level(required_level)
        if await self.check_access(user_id, job_id, level):
            return AccessCheck(True)
        return AccessCheck(False, denial_message(level))

    async def can_manage_permissions(self, user_id: str, job_id: str) -> bool:
        """
        Check if a user may grant, change or revoke permissions on a job.

        Only company admins and the job's owner in the job's company qualify;
        an explicit grant, even at admin level, is not enough.
        """
        decision = await self._resolve(
            _require_id(user_id, "user_id"),
            _require_id(job_id, "job_id"),
            required_level=None,
            consult_grants=False,
        )
        return decision.allowed

    async def explain(
        self,
        user_id: str,
        job_id: str,
        required_level: Optional[JobPermissionLevel | str] = None,
    ) -> AccessDecision:
        """Resolve access and return the full decision."""
        user_id = _require_id(user_id, "user_id")
        job_id = _require_id(job_id, "job_id")
        level = _coerce_level(required_level)
        return await self._resolve(user_id, job_id, level, consult_grants=True)

    async def _resolve(
        self,
        user_id: str,
        job_id: str,
        required_level: Optional[JobPermissionLevel],
        consult_grants: bool,
    ) -> AccessDecision:
        logger.debug(f"Resolving access for user {user_id} on job {job_id}")

        results = await asyncio.gather(
            self._fetch("user", self.users.get_user(user_id)),
            self._fetch("job", self.jobs.get_job(job_id)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, _LookupFailed):
                return AccessDecision.deny(DecisionReason.LOOKUP_FAILED)
            if isinstance(result, BaseException):
                raise result
        user, job = results

        if user is None:
            logger.debug(f"User {user_id} not found")
            return AccessDecision.deny(DecisionReason.USER_NOT_FOUND)
        if job is None:
            logger.debug(f"Job {job_id} not found")
            return AccessDecision.deny(DecisionReason.JOB_NOT_FOUND)

        if user.company_id != job.owner_company_id:
            logger.warning(
                f"User {user_id} from company {user.company_id} denied access to "
                f"job {job_id} owned by company {job.owner_company_id}"
            )
            return AccessDecision.deny(DecisionReason.DIFFERENT_COMPANY)

        if user.is_admin:
            logger.debug(f"User {user_id} is a company admin")
            return AccessDecision(True, DecisionReason.COMPANY_ADMIN, JobPermissionLevel.OWNER)

        if job.owner_user_id == user.id:
            logger.debug(f"User {user_id} owns job {job_id}")
            return AccessDecision(True, DecisionReason.JOB_OWNER, JobPermissionLevel.OWNER)

        if not consult_grants:
            return AccessDecision.deny(DecisionReason.INSUFFICIENT_LEVEL)

        try:
            grant = await self._fetch("grant", self.grants.get_grant(job_id, user_id))
        except _LookupFailed:
            return AccessDecision.deny(DecisionReason.LOOKUP_FAILED)

        if grant is None:
            logger.debug(f"User {user_id} has no grant on job {job_id}")
            return AccessDecision.deny(DecisionReason.GRANT_NOT_FOUND)

        if not has_required_level(grant.level, required_level):
            logger.debug(
                f"User {user_id} holds {grant.level.value} on job {job_id}, "
                f"{required_level.value} required"
            )
            return AccessDecision.deny(DecisionReason.INSUFFICIENT_LEVEL, grant.level)

        return AccessDecision(True, DecisionReason.GRANT, grant.level)

    async def _fetch(self, label: str, lookup: Awaitable[T]) -> T:
        try:
            if self.lookup_timeout is None:
                return await lookup
            return await asyncio.wait_for(lookup, timeout=self.lookup_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out looking up {label}; denying access")
            raise _LookupFailed(label) from None
        except BackingStoreError as e:
            logger.error(f"Store error looking up {label}; denying access: {e}")
            raise _LookupFailed(label) from e
        except Exception:
            logger.exception(f"Unexpected error looking up {label}; denying access")
            raise _LookupFailed(label) from None
