"""
Security utilities.

Provides access token handling and audit logging for permission changes.
"""

import logging
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from enum import Enum

import jwt

from core.config import settings

logger = logging.getLogger("security.audit")


class AuditAction(str, Enum):
    """Audit log action types."""
    VIEW = "VIEW"
    GRANT = "GRANT"
    UPDATE = "UPDATE"
    REVOKE = "REVOKE"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    JOB = "JOB"
    JOB_PERMISSION = "JOB_PERMISSION"


class TokenError(Exception):
    """Raised when an access token is missing, malformed or expired."""
    pass


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        extra_claims: Additional claims to embed

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": user_id, "iat": now, "exp": expires}
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """
    Verify an access token and return its subject.

    Raises:
        TokenError: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}") from None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise TokenError("Token has no subject")
    return subject


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    company_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
):
    """
    Log an audit event for compliance tracking.

    This creates a structured log entry suitable for SIEM ingestion
    and compliance reporting.
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": resource_id,
        "user_id": user_id,
        "company_id": company_id,
        "details": details,
    }

    logger.info(json.dumps(event, default=str))
