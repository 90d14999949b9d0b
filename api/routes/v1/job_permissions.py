"""
Job permission endpoints.

Lets job owners and company admins see, grant, change and revoke per-job
access, and lets any user ask what access they hold on a job.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_job_permission_service, require_authenticated_user
from api.schemas.common import ErrorResponse
from api.schemas.job_permissions import (
    GrantPermissionRequest,
    GrantableLevel,
    JobAccessResponse,
    PermissionEnvelope,
    PermissionListResponse,
    PermissionResponse,
    RevokeResponse,
    UpdatePermissionRequest,
)
from api.services.job_permissions import JobPermissionService
from core.access import AccessResolver, JobPermissionLevel, denial_message
from core.middleware.authorization import get_access_resolver, require_job_access

router = APIRouter(tags=["job-permissions"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "/{job_id}/access",
    response_model=JobAccessResponse,
    summary="Get My Job Access",
    description="Report whether the current user can access the job and at what level.",
)
async def get_job_access(
    job_id: str = Path(..., description="Job ID"),
    required_level: Optional[GrantableLevel] = Query(
        None, description="Minimum level to check for"
    ),
    current_user_id: str = Depends(require_authenticated_user),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> JobAccessResponse:
    decision = await resolver.explain(current_user_id, job_id, required_level)
    if not decision.allowed:
        return JobAccessResponse(
            job_id=job_id,
            has_access=False,
            error=denial_message(required_level),
        )
    return JobAccessResponse(
        job_id=job_id,
        has_access=True,
        permission_level=decision.level.value,
    )


@router.get(
    "/{job_id}/permissions",
    response_model=PermissionListResponse,
    responses=ERROR_RESPONSES,
    summary="List Job Permissions",
    description="List the permissions granted on a job. Requires job ownership or company admin.",
)
async def list_job_permissions(
    job_id: str = Path(..., description="Job ID"),
    current_user_id: str = Depends(require_authenticated_user),
    service: JobPermissionService = Depends(get_job_permission_service),
) -> PermissionListResponse:
    details = await service.list_permissions(current_user_id, job_id)
    return PermissionListResponse(
        permissions=[PermissionResponse.from_details(d) for d in details]
    )


@router.post(
    "/{job_id}/permissions",
    response_model=PermissionEnvelope,
    responses=ERROR_RESPONSES,
    summary="Grant Job Permission",
    description="Grant a permission level on a job to a user of the same company.",
)
async def grant_job_permission(
    request: GrantPermissionRequest,
    job_id: str = Path(..., description="Job ID"),
    current_user_id: str = Depends(require_authenticated_user),
    service: JobPermissionService = Depends(get_job_permission_service),
) -> PermissionEnvelope:
    details = await service.grant_permission(
        actor_id=current_user_id,
        job_id=job_id,
        level=request.permission_level,
        user_id=request.user_id,
        user_email=request.user_email,
        notify=request.notify,
    )
    return PermissionEnvelope(permission=PermissionResponse.from_details(details))


@router.patch(
    "/permissions/{permission_id}",
    response_model=PermissionEnvelope,
    responses=ERROR_RESPONSES,
    summary="Update Job Permission",
    description="Change the level of an existing job permission.",
)
async def update_job_permission(
    request: UpdatePermissionRequest,
    permission_id: str = Path(..., description="Permission ID"),
    current_user_id: str = Depends(require_authenticated_user),
    service: JobPermissionService = Depends(get_job_permission_service),
) -> PermissionEnvelope:
    details = await service.update_permission(
        current_user_id, permission_id, request.permission_level
    )
    return PermissionEnvelope(permission=PermissionResponse.from_details(details))


@router.delete(
    "/permissions/{permission_id}",
    response_model=RevokeResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_200_OK,
    summary="Revoke Job Permission",
    description="Revoke a job permission. Owners cannot revoke their own admin permission.",
)
async def revoke_job_permission(
    permission_id: str = Path(..., description="Permission ID"),
    current_user_id: str = Depends(require_authenticated_user),
    service: JobPermissionService = Depends(get_job_permission_service),
) -> RevokeResponse:
    await service.revoke_permission(current_user_id, permission_id)
    return RevokeResponse()


@router.get(
    "/{job_id}/team",
    response_model=PermissionListResponse,
    responses=ERROR_RESPONSES,
    summary="List Job Team",
    description="List the team members with access to a job. Requires viewer access.",
)
async def list_job_team(
    job_id: str = Path(..., description="Job ID"),
    current_user_id: str = Depends(require_job_access(JobPermissionLevel.VIEWER)),
    service: JobPermissionService = Depends(get_job_permission_service),
) -> PermissionListResponse:
    details = await service.list_team(job_id)
    return PermissionListResponse(
        permissions=[PermissionResponse.from_details(d) for d in details]
    )
