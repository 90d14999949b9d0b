"""
Tests for core security utilities.

Tests:
- Access token creation and verification
- Token expiration and tampering
- Audit event logging
"""

import json
import logging
import pytest
from datetime import timedelta
import jwt as pyjwt

from core.config import settings
from core.security import (
    AuditAction,
    ResourceType,
    TokenError,
    create_access_token,
    decode_access_token,
    log_audit_event,
)


class TestAccessTokens:
    """Test JWT creation and validation."""

    def test_round_trip(self):
        token = create_access_token("user-123")

        assert decode_access_token(token) == "user-123"

    def test_claims(self):
        token = create_access_token("user-123", extra_claims={"company_id": "C1"})
        payload = pyjwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )

        assert payload["sub"] == "user-123"
        assert payload["company_id"] == "C1"
        assert payload["exp"] > payload["iat"]

    def test_expired_token(self):
        token = create_access_token("user-123", expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenError, match="expired"):
            decode_access_token(token)

    def test_tampered_token(self):
        token = create_access_token("user-123")
        header, payload, signature = token.split(".")

        with pytest.raises(TokenError):
            decode_access_token(f"{header}.{payload}.{signature[::-1]}")

    def test_garbage_token(self):
        with pytest.raises(TokenError):
            decode_access_token("not.a.token")

    def test_token_without_expiry_rejected(self):
        token = pyjwt.encode(
            {"sub": "user-123"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )

        with pytest.raises(TokenError):
            decode_access_token(token)

    def test_empty_subject_rejected(self):
        token = pyjwt.encode(
            {"sub": "", "exp": 9999999999},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(TokenError):
            decode_access_token(token)


class TestAuditLogging:
    """Test audit events."""

    def test_event_is_structured(self, caplog):
        with caplog.at_level(logging.INFO, logger="security.audit"):
            log_audit_event(
                AuditAction.GRANT,
                ResourceType.JOB_PERMISSION,
                resource_id="grant-1",
                user_id="A1",
                company_id="C1",
                details={"job_id": "J1", "level": "viewer"},
            )

        records = [r for r in caplog.records if r.name == "security.audit"]
        assert len(records) == 1
        event = json.loads(records[0].getMessage())
        assert event["event_type"] == "AUDIT"
        assert event["action"] == "GRANT"
        assert event["resource_type"] == "JOB_PERMISSION"
        assert event["resource_id"] == "grant-1"
        assert event["details"] == {"job_id": "J1", "level": "viewer"}
