"""Tests for the error taxonomy and ErrorDescriptor mapping."""

import pytest

from aso_sync.errors import (
    AppNotRegistered,
    AsoSyncError,
    AuthenticationError,
    ConfigurationMissing,
    NotFoundError,
    RateLimitError,
    SyncCancelled,
    TransactionFailure,
    TransportError,
    ValidationError,
    VersionNotFound,
    VersionStateConflict,
    describe_error,
    error_type_for,
)


class TestErrorTypeFor:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (ValidationError("bad"), "validation_error"),
            (VersionStateConflict("locked", status=409), "version_conflict"),
            (NotFoundError("gone", status=404), "not_found"),
            (VersionNotFound("none"), "not_found"),
            (AppNotRegistered("ghost"), "not_found"),
            (AuthenticationError("denied", status=401), "permission_denied"),
            (RateLimitError("slow down", status=429), "rate_limited"),
            (ConfigurationMissing("no key"), "configuration_missing"),
            (SyncCancelled("stop"), "cancelled"),
            (TransportError("boom", status=500), "server_error"),
            (TransactionFailure("commit failed", session_id="e1"), "server_error"),
            (RuntimeError("unexpected"), "server_error"),
        ],
    )
    def test_categories(self, exc, expected):
        assert error_type_for(exc) == expected


class TestDescribeError:
    def test_carries_status_and_code(self):
        exc = VersionStateConflict(
            "App Store Connect API error: 409 locked", status=409, code="STATE_ERROR"
        )

        descriptor = describe_error(exc)

        assert descriptor.error_type == "version_conflict"
        assert descriptor.message == "App Store Connect API error: 409 locked"
        assert descriptor.status == 409
        assert descriptor.code == "STATE_ERROR"
        assert "new editable version" in descriptor.corrective_action

    def test_empty_message_uses_class_name(self):
        descriptor = describe_error(SyncCancelled())
        assert descriptor.message == "SyncCancelled"
        assert descriptor.status is None

    def test_plain_exceptions_have_no_status(self):
        descriptor = describe_error(KeyError("x"))
        assert descriptor.error_type == "server_error"
        assert descriptor.code is None


class TestHierarchy:
    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)
        assert issubclass(ValidationError, AsoSyncError)

    def test_transport_subclasses(self):
        for cls in (AuthenticationError, NotFoundError, RateLimitError, VersionStateConflict):
            assert issubclass(cls, TransportError)

    def test_transaction_failure_keeps_session_id(self):
        exc = TransactionFailure("failed", session_id="edit-3")
        assert exc.session_id == "edit-3"
        assert str(exc) == "failed"
