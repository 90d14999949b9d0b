"""
Job permission levels and their ordering.

Grants are stored with one of four ordered levels. ``OWNER`` is a sentinel
reported when access comes from being a company admin or the job's creator;
it ranks above every grantable level and is never stored.
"""

from enum import Enum
from typing import Optional


class JobPermissionLevel(str, Enum):
    """Per-job access tiers."""

    VIEWER = "viewer"
    INTERVIEWER = "interviewer"
    MANAGER = "manager"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        return LEVEL_HIERARCHY[self]

    @property
    def is_grantable(self) -> bool:
        return self in GRANTABLE_LEVELS


LEVEL_HIERARCHY: dict[JobPermissionLevel, int] = {
    JobPermissionLevel.VIEWER: 1,
    JobPermissionLevel.INTERVIEWER: 2,
    JobPermissionLevel.MANAGER: 3,
    JobPermissionLevel.ADMIN: 4,
    JobPermissionLevel.OWNER: 5,
}

GRANTABLE_LEVELS: tuple[JobPermissionLevel, ...] = (
    JobPermissionLevel.VIEWER,
    JobPermissionLevel.INTERVIEWER,
    JobPermissionLevel.MANAGER,
    JobPermissionLevel.ADMIN,
)


def has_required_level(
    user_level: JobPermissionLevel,
    required_level: Optional[JobPermissionLevel],
) -> bool:
    """
    Check if a user's level meets the required level.

    Args:
        user_level: Level the user holds on the job
        required_level: Minimum level needed, or None for any access

    Returns:
        True if ``user_level`` is at or above ``required_level``
    """
    if required_level is None:
        return True
    return user_level.rank >= required_level.rank


def parse_level(value: "JobPermissionLevel | str | None") -> Optional[JobPermissionLevel]:
    """
    Coerce a raw value into a JobPermissionLevel.

    Raises:
        ValueError: If the value names no known level
    """
    if value is None or isinstance(value, JobPermissionLevel):
        return value
    try:
        return JobPermissionLevel(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Invalid permission level: {value!r}") from None
