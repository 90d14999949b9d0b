"""
API Services Layer.

Operations behind the API endpoints, kept separate from the HTTP layer.
"""

from api.services.job_permissions import (
    GrantDetails,
    JobPermissionService,
)

__all__ = [
    # Job permissions
    "GrantDetails",
    "JobPermissionService",
]
