"""
Tests for core security utilities.

Tests:
- Password hashing and verification
- JWT token creation and validation
- Token expiration
- Audit log PII masking
"""

import json
import logging
import pytest
from datetime import timedelta
import jwt as pyjwt

from core.security import (
    AuditAction,
    ResourceType,
    hash_password,
    verify_password,
    create_access_token,
    verify_jwt_token,
    log_audit_event,
    mask_pii,
)
from core.config import settings


class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing."""
        password = "SecurePassword123!"
        hashed = hash_password(password)

        assert isinstance(hashed, str)
        assert hashed != password
        assert hashed.startswith("$2b$")  # bcrypt format

    def test_hash_password_different_each_time(self):
        """Test that hashing same password produces different hashes."""
        password = "SecurePassword123!"

        assert hash_password(password) != hash_password(password)  # Different salts

    def test_verify_password_success(self):
        """Test successful password verification."""
        hashed = hash_password("SecurePassword123!")

        assert verify_password("SecurePassword123!", hashed) is True

    def test_verify_password_failure(self):
        """Test failed password verification."""
        hashed = hash_password("SecurePassword123!")

        assert verify_password("WrongPassword123!", hashed) is False

    def test_verify_password_empty(self):
        """Test password verification with empty password."""
        hashed = hash_password("SecurePassword123!")

        assert verify_password("", hashed) is False

    def test_verify_password_malformed_hash(self):
        """A corrupt stored hash fails closed instead of raising."""
        assert verify_password("SecurePassword123!", "not-a-bcrypt-hash") is False


class TestJWTTokens:
    """Test JWT token creation and validation."""

    def test_create_access_token(self):
        """Test access token creation."""
        token = create_access_token(user_id=1, email="test@example.com", user_type="recruiter")

        payload = pyjwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        assert payload["sub"] == "1"
        assert payload["user_id"] == 1
        assert payload["email"] == "test@example.com"
        assert payload["user_type"] == "recruiter"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_token_expiration_time(self):
        """Default lifetime comes from configuration."""
        token = create_access_token(user_id=1, email="test@example.com", user_type="job_seeker")

        payload = pyjwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        assert payload["exp"] - payload["iat"] == settings.access_token_expire_minutes * 60

    def test_verify_jwt_token_success(self):
        """Test successful token verification."""
        token = create_access_token(user_id=7, email="test@example.com", user_type="job_seeker")

        payload = verify_jwt_token(token)

        assert payload["user_id"] == 7
        assert payload["email"] == "test@example.com"

    def test_verify_jwt_token_expired(self):
        """Test verification of expired token."""
        token = create_access_token(
            user_id=1,
            email="test@example.com",
            user_type="job_seeker",
            expires_delta=timedelta(seconds=-1),  # Already expired
        )

        with pytest.raises(pyjwt.ExpiredSignatureError):
            verify_jwt_token(token)

    def test_verify_jwt_token_invalid(self):
        """Test verification of invalid token."""
        with pytest.raises(pyjwt.InvalidTokenError):
            verify_jwt_token("invalid.token.here")

    def test_verify_jwt_token_wrong_secret(self):
        """Test verification with wrong secret."""
        token = create_access_token(user_id=1, email="test@example.com", user_type="job_seeker")

        with pytest.raises(pyjwt.InvalidTokenError):
            verify_jwt_token(token, "wrong-secret-key-that-is-long-enough-to-use")

    def test_verify_rejects_non_access_token(self):
        """Tokens of another type are refused even with a valid signature."""
        token = pyjwt.encode(
            {"sub": "1", "type": "refresh", "exp": 9999999999},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(pyjwt.InvalidTokenError):
            verify_jwt_token(token)

    def test_verify_requires_subject(self):
        """Tokens without a subject are refused."""
        token = pyjwt.encode(
            {"type": "access", "exp": 9999999999},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(pyjwt.InvalidTokenError):
            verify_jwt_token(token)


class TestAuditLogging:
    """Test audit events and PII masking."""

    def test_mask_pii_fields(self):
        """PII keys are partially masked, everything else passes through."""
        masked = mask_pii({
            "email": "jane@example.com",
            "resume_link": "https://cv.example.com/jane.pdf",
            "job_id": 12,
        })

        assert masked["email"] == "j***[16]"
        assert masked["resume_link"].startswith("h***[")
        assert masked["job_id"] == 12

    def test_mask_pii_nested_and_empty(self):
        """Nested structures are walked and empty values fully masked."""
        masked = mask_pii({"user": {"name": "", "cover_letter": None}})

        assert masked["user"]["name"] == "[MASKED]"
        assert masked["user"]["cover_letter"] == "[MASKED]"

    def test_mask_pii_max_depth(self):
        """Deep nesting stops at the depth limit."""
        data = {"level": "leaf"}
        for _ in range(15):
            data = {"nested": data}

        assert "[MAX_DEPTH]" in json.dumps(mask_pii(data))

    def test_log_audit_event(self, caplog):
        """Audit records are JSON with masked details."""
        with caplog.at_level(logging.INFO, logger="security.audit"):
            log_audit_event(
                AuditAction.APPLY,
                ResourceType.APPLICATION,
                resource_id=5,
                user_id=3,
                details={"job_id": 9, "email": "jane@example.com"},
            )

        event = json.loads(caplog.records[-1].getMessage())
        assert event["event_type"] == "AUDIT"
        assert event["action"] == "APPLY"
        assert event["resource_type"] == "APPLICATION"
        assert event["resource_id"] == "5"
        assert event["user_id"] == 3
        assert event["details"]["job_id"] == 9
        assert "jane@example.com" not in json.dumps(event)
