"""Job permission API schemas."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from api.services.job_permissions import GrantDetails

# Levels that can be granted through the API
GrantableLevel = Literal["viewer", "interviewer", "manager", "admin"]

# Levels reported for the current user; "owner" marks company admins and job owners
ResolvedLevel = Literal["viewer", "interviewer", "manager", "admin", "owner"]


class GrantPermissionRequest(BaseModel):
    """Schema for granting a permission on a job."""

    user_id: Optional[str] = Field(None, min_length=1, description="Id of the user to grant")
    user_email: Optional[EmailStr] = Field(None, description="Email of the user to grant")
    permission_level: GrantableLevel
    notify: bool = Field(default=True, description="Send a notification email to the user")

    @field_validator("user_email", mode="before")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Lowercase and strip the email."""
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @model_validator(mode="after")
    def require_target(self) -> "GrantPermissionRequest":
        """Require user_id or user_email."""
        if not self.user_id and not self.user_email:
            raise ValueError("user_id or user_email is required")
        return self


class UpdatePermissionRequest(BaseModel):
    """Schema for changing the level of a grant."""

    permission_level: GrantableLevel


class PermissionResponse(BaseModel):
    """A job permission with the holder's profile."""

    id: str
    job_id: str
    user_id: str
    permission_level: GrantableLevel
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    user_role: Optional[str] = None

    @classmethod
    def from_details(cls, details: GrantDetails) -> "PermissionResponse":
        grant, user = details.grant, details.user
        return cls(
            id=grant.id,
            job_id=grant.job_id,
            user_id=grant.user_id,
            permission_level=grant.level.value,
            granted_by=grant.granted_by,
            granted_at=grant.granted_at,
            user_email=user.email if user else None,
            user_first_name=user.first_name if user else None,
            user_last_name=user.last_name if user else None,
            user_role=user.role.value if user else None,
        )


class PermissionListResponse(BaseModel):
    permissions: list[PermissionResponse]


class PermissionEnvelope(BaseModel):
    permission: PermissionResponse


class RevokeResponse(BaseModel):
    success: bool = True
    message: str = "Permission revoked successfully"


class JobAccessResponse(BaseModel):
    """Current user's access to a job."""

    job_id: str
    has_access: bool
    permission_level: Optional[ResolvedLevel] = None
    error: Optional[str] = None
