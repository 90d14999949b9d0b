"""
Job permission management.

Lists, grants, changes and revokes per-job permissions. Every operation is
authorised with the same rules as access resolution: the actor must be in
the job's company and be either a company admin or the job's owner.
Existence of the job, the actor and the grant is checked separately so
callers can tell 404 from 403.
"""

from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

from starlette.concurrency import run_in_threadpool

from core.access import (
    AccessResolver,
    CrossCompanyGrant,
    GrantNotFound,
    GrantStore,
    InsufficientPermissions,
    InvalidArgument,
    JobNotFound,
    JobOwnership,
    JobPermissionLevel,
    JobStore,
    PermissionGrant,
    SelfRevocationError,
    UserNotFound,
    UserProfile,
    UserStore,
    parse_level,
)
from core.integrations.email import EmailService, job_url
from core.security import AuditAction, ResourceType, log_audit_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrantDetails:
    """A grant together with the profile of the user holding it."""

    grant: PermissionGrant
    user: Optional[UserProfile]


def _require_id(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{name} is required")
    return value


def _grantable_level(value) -> JobPermissionLevel:
    try:
        level = parse_level(value)
    except ValueError as e:
        raise InvalidArgument(str(e)) from None
    if level is None or not level.is_grantable:
        raise InvalidArgument("Invalid permission level")
    return level


class JobPermissionService:
    """
    Grant management over the access control stores.

    Args:
        resolver: Access resolver used for the management check
        users: User profile store
        jobs: Job ownership store
        grants: Grant store
        email_service: Sender for grant notifications, or None to disable them
    """

    def __init__(
        self,
        resolver: AccessResolver,
        users: UserStore,
        jobs: JobStore,
        grants: GrantStore,
        email_service: Optional[EmailService] = None,
    ):
        self.resolver = resolver
        self.users = users
        self.jobs = jobs
        self.grants = grants
        self.email_service = email_service

    async def list_permissions(self, actor_id: str, job_id: str) -> list[GrantDetails]:
        """List a job's grants, newest first."""
        actor, _job = await self._authorize(actor_id, job_id)

        grants = await self.grants.list_grants(job_id)
        users = await asyncio.gather(*(self.users.get_user(g.user_id) for g in grants))

        log_audit_event(
            AuditAction.VIEW,
            ResourceType.JOB,
            resource_id=job_id,
            user_id=actor.id,
            company_id=actor.company_id,
            details={"permissions": len(grants)},
        )
        return [GrantDetails(grant=g, user=u) for g, u in zip(grants, users)]

    async def list_team(self, job_id: str) -> list[GrantDetails]:
        """
        List the users holding grants on a job.

        Callers must have checked the viewer's access to the job first.
        """
        grants = await self.grants.list_grants(_require_id(job_id, "job_id"))
        users = await asyncio.gather(*(self.users.get_user(g.user_id) for g in grants))
        return [GrantDetails(grant=g, user=u) for g, u in zip(grants, users)]

    async def grant_permission(
        self,
        actor_id: str,
        job_id: str,
        level: JobPermissionLevel | str,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        notify: bool = True,
    ) -> GrantDetails:
        """
        Grant a level on a job, replacing any existing grant for the user.

        The target is identified by ``user_id`` or, when that is absent, by
        ``user_email``.

        Raises:
            InvalidArgument: Missing target or ungrantable level
            JobNotFound, UserNotFound: Job, actor or target does not exist
            InsufficientPermissions: Actor may not manage the job's permissions
            CrossCompanyGrant: Target belongs to another company
        """
        level = _grantable_level(level)
        if not user_id and not (user_email and user_email.strip()):
            raise InvalidArgument("user_id or user_email is required")

        actor, job = await self._authorize(actor_id, job_id)

        if user_id:
            target = await self.users.get_user(user_id)
            if target is None:
                raise UserNotFound("Target user not found")
        else:
            target = await self.users.get_user_by_email(user_email.strip())
            if target is None:
                raise UserNotFound("User not found with the provided email")

        if target.company_id != actor.company_id:
            logger.warning(
                f"User {actor.id} tried to grant access on job {job_id} "
                f"to user {target.id} from another company"
            )
            raise CrossCompanyGrant("Can only grant permissions to users in the same company")

        grant = await self.grants.upsert_grant(job_id, target.id, level, actor.id)

        log_audit_event(
            AuditAction.GRANT,
            ResourceType.JOB_PERMISSION,
            resource_id=grant.id,
            user_id=actor.id,
            company_id=actor.company_id,
            details={"job_id": job_id, "target_user_id": target.id, "level": level.value},
        )

        if notify:
            await self._notify_granted(actor, target, job, level)

        return GrantDetails(grant=grant, user=target)

    async def update_permission(
        self,
        actor_id: str,
        grant_id: str,
        level: JobPermissionLevel | str,
    ) -> GrantDetails:
        """Change the level of an existing grant."""
        level = _grantable_level(level)
        grant = await self._get_grant(grant_id)
        actor, _job = await self._authorize(actor_id, grant.job_id)

        updated = await self.grants.update_grant_level(grant.id, level)
        if updated is None:
            raise GrantNotFound("Permission not found")

        log_audit_event(
            AuditAction.UPDATE,
            ResourceType.JOB_PERMISSION,
            resource_id=grant.id,
            user_id=actor.id,
            company_id=actor.company_id,
            details={"job_id": grant.job_id, "from": grant.level.value, "to": level.value},
        )
        user = await self.users.get_user(updated.user_id)
        return GrantDetails(grant=updated, user=user)

    async def revoke_permission(self, actor_id: str, grant_id: str) -> None:
        """
        Delete a grant.

        Raises:
            SelfRevocationError: If the actor would revoke their own admin grant
        """
        grant = await self._get_grant(grant_id)
        actor, _job = await self._authorize(actor_id, grant.job_id)

        if grant.user_id == actor.id and grant.level == JobPermissionLevel.ADMIN:
            raise SelfRevocationError("Cannot revoke your own admin permission")

        if not await self.grants.delete_grant(grant.id):
            raise GrantNotFound("Permission not found")

        log_audit_event(
            AuditAction.REVOKE,
            ResourceType.JOB_PERMISSION,
            resource_id=grant.id,
            user_id=actor.id,
            company_id=actor.company_id,
            details={"job_id": grant.job_id, "target_user_id": grant.user_id},
        )

    async def _get_grant(self, grant_id: str) -> PermissionGrant:
        grant = await self.grants.get_grant_by_id(_require_id(grant_id, "permission_id"))
        if grant is None:
            raise GrantNotFound("Permission not found")
        return grant

    async def _authorize(self, actor_id: str, job_id: str) -> tuple[UserProfile, JobOwnership]:
        actor_id = _require_id(actor_id, "actor_id")
        job_id = _require_id(job_id, "job_id")

        job = await self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFound("Job not found")
        actor = await self.users.get_user(actor_id)
        if actor is None:
            raise UserNotFound("Profile not found")

        if not await self.resolver.can_manage_permissions(actor_id, job_id):
            raise InsufficientPermissions("Insufficient permissions")
        return actor, job

    async def _notify_granted(
        self,
        actor: UserProfile,
        target: UserProfile,
        job: JobOwnership,
        level: JobPermissionLevel,
    ) -> None:
        if self.email_service is None or not target.email:
            return

        sent = await run_in_threadpool(
            self.email_service.send_job_permission_granted,
            to_email=target.email,
            recipient_name=target.display_name,
            granter_name=actor.display_name,
            job_title=job.title or "Untitled job",
            level=level,
            job_url=job_url(job.id),
        )
        if not sent:
            logger.warning(f"Grant notification to user {target.id} for job {job.id} was not sent")
