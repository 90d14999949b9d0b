"""
Authorization dependencies for job-scoped routes.

Implements:
1. Construction of the access resolver over the database stores
2. A route dependency requiring a minimum job permission level
3. Multi-tenant isolation (enforced by the resolver)
"""

import logging
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from core.access import AccessResolver, JobPermissionLevel, InvalidArgument
from core.config import settings
from core.middleware.authentication import AuthenticationError, get_current_user_id
from database.stores import SQLGrantStore, SQLJobStore, SQLUserStore

logger = logging.getLogger(__name__)


@lru_cache
def get_access_resolver() -> AccessResolver:
    """Get the process-wide access resolver backed by the database."""
    return AccessResolver(
        users=SQLUserStore(),
        jobs=SQLJobStore(),
        grants=SQLGrantStore(),
        lookup_timeout=settings.access_lookup_timeout_seconds,
    )


def require_current_user_id(request: Request) -> str:
    """Dependency returning the authenticated user's id."""
    try:
        return get_current_user_id(request)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_job_access(
    required_level: Optional[JobPermissionLevel] = None,
    job_id_param: str = "job_id",
) -> Callable:
    """
    Dependency to require access to the job named in the path or query.

    Args:
        required_level: Minimum level, or None for any access
        job_id_param: Parameter name for job ID

    Returns:
        FastAPI dependency resolving to the current user id
    """
    async def dependency(
        request: Request,
        user_id: str = Depends(require_current_user_id),
        resolver: AccessResolver = Depends(get_access_resolver),
    ) -> str:
        job_id = request.path_params.get(job_id_param) or request.query_params.get(job_id_param)
        if not job_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Missing parameter: {job_id_param}",
            )

        try:
            check = await resolver.validate_job_access(user_id, job_id, required_level)
        except InvalidArgument as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        if not check.has_access:
            logger.warning(f"User {user_id} denied access to job {job_id}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=check.error)

        return user_id

    return dependency
