"""FastAPI dependencies for dependency injection."""

from functools import lru_cache

from fastapi import Depends

from api.services.job_permissions import JobPermissionService
from core.access import AccessResolver
from core.config import settings
from core.integrations.email import get_email_service
from core.middleware.authorization import get_access_resolver, require_current_user_id
from database.stores import SQLGrantStore, SQLJobStore, SQLUserStore


@lru_cache
def _email_service():
    return get_email_service() if settings.notifications_enabled else None


def get_job_permission_service(
    resolver: AccessResolver = Depends(get_access_resolver),
) -> JobPermissionService:
    """Build the permission service around the shared resolver."""
    return JobPermissionService(
        resolver=resolver,
        users=SQLUserStore(),
        jobs=SQLJobStore(),
        grants=SQLGrantStore(),
        email_service=_email_service(),
    )


# Re-exported for route modules
require_authenticated_user = require_current_user_id
