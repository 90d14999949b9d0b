"""
Job access control.

Resolves whether a user may act on a job from three lookups (user, job,
explicit grant) and the fixed level hierarchy.
"""

from core.access.levels import (
    JobPermissionLevel,
    LEVEL_HIERARCHY,
    GRANTABLE_LEVELS,
    has_required_level,
    parse_level,
)

from core.access.stores import (
    UserRole,
    UserProfile,
    JobOwnership,
    PermissionGrant,
    UserStore,
    JobStore,
    GrantStore,
)

from core.access.resolver import (
    AccessResolver,
    AccessDecision,
    AccessCheck,
    DecisionReason,
    denial_message,
)

from core.access.exceptions import (
    JobAccessError,
    InvalidArgument,
    BackingStoreError,
    NotFoundError,
    JobNotFound,
    UserNotFound,
    GrantNotFound,
    AuthorizationError,
    InsufficientPermissions,
    CrossCompanyGrant,
    SelfRevocationError,
)

__all__ = [
    # Levels
    "JobPermissionLevel",
    "LEVEL_HIERARCHY",
    "GRANTABLE_LEVELS",
    "has_required_level",
    "parse_level",
    # Records and stores
    "UserRole",
    "UserProfile",
    "JobOwnership",
    "PermissionGrant",
    "UserStore",
    "JobStore",
    "GrantStore",
    # Resolver
    "AccessResolver",
    "AccessDecision",
    "AccessCheck",
    "DecisionReason",
    "denial_message",
    # Errors
    "JobAccessError",
    "InvalidArgument",
    "BackingStoreError",
    "NotFoundError",
    "JobNotFound",
    "UserNotFound",
    "GrantNotFound",
    "AuthorizationError",
    "InsufficientPermissions",
    "CrossCompanyGrant",
    "SelfRevocationError",
]
