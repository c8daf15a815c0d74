"""Error taxonomy for the sync core.

Every failure the core can surface is one of the classes below.  Remote
failures are always ``TransportError`` subclasses built by the transport
layer from the HTTP status and the platform's machine-readable error code;
nothing here inspects human-readable message text.

``describe_error`` turns any exception into an ``ErrorDescriptor`` with a
corrective action, which is what ends up in ``SyncResult.failed_locales``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class AsoSyncError(Exception):
    """Base class for all errors raised by aso_sync."""


class ConfigurationMissing(AsoSyncError):
    """A required identity or credential is absent. Never retried."""


class ValidationError(AsoSyncError, ValueError):
    """Malformed input (empty locale map, over-long field, bad version)."""


class VersionNotFound(AsoSyncError):
    """The caller required a version record and the store has none."""


class AppNotRegistered(AsoSyncError):
    """The app is not in the local registry."""


class TransportError(AsoSyncError):
    """A remote call failed.

    Attributes:
        status: HTTP status code, or ``None`` for network-level failures.
        code: Platform error code (``STATE_ERROR``, ``FAILED_PRECONDITION``,
            ``timeout`` ...), when one could be extracted.
        details: Decoded error payload returned by the platform.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.details = details


class AuthenticationError(TransportError):
    """401/403 from the platform or a failed token exchange."""


class NotFoundError(TransportError):
    """The addressed remote resource does not exist."""


class RateLimitError(TransportError):
    """429 from the platform. Retrying is left to the caller."""


class VersionStateConflict(TransportError):
    """The platform refused a field change because of the version's lifecycle state."""


class TransactionFailure(AsoSyncError):
    """An edit session could not be completed; nothing was persisted.

    Raised after the session has been aborted.  The triggering error is
    available as ``__cause__``.
    """

    def __init__(self, message: str, session_id: str | None = None) -> None:
        super().__init__(message)
        self.session_id = session_id


class SyncCancelled(AsoSyncError):
    """The caller cancelled a push between two locales."""


class ErrorDescriptor(BaseModel):
    """Structured description of one locale's failure.

    Attributes:
        error_type: Category (validation_error, version_conflict,
            not_found, permission_denied, rate_limited, cancelled,
            server_error).
        message: Human-readable error text.
        corrective_action: What the caller can do about it.
        status: HTTP status when the failure came from the platform.
        code: Platform error code when one was reported.
    """

    error_type: str
    message: str
    corrective_action: str
    status: int | None = None
    code: str | None = None

    model_config = {"frozen": True}


_CORRECTIVE_ACTIONS: dict[str, str] = {
    "validation_error": "Shorten or fix the listed fields, then push again.",
    "version_conflict": "Create a new editable version and resubmit this locale against it.",
    "not_found": "Check the app identifier and that the locale exists on the store.",
    "permission_denied": "Verify the API key or service account has access to this app.",
    "rate_limited": "Wait before pushing again.",
    "configuration_missing": "Provide the missing credentials in the environment or config.yml.",
    "cancelled": "Push the remaining locales again.",
    "server_error": "Retry later or check the store's status page.",
}


def error_type_for(exc: BaseException) -> str:
    """Return the descriptor category for *exc*."""
    match exc:
        case ValidationError():
            return "validation_error"
        case VersionStateConflict():
            return "version_conflict"
        case NotFoundError() | VersionNotFound() | AppNotRegistered():
            return "not_found"
        case AuthenticationError():
            return "permission_denied"
        case RateLimitError():
            return "rate_limited"
        case ConfigurationMissing():
            return "configuration_missing"
        case SyncCancelled():
            return "cancelled"
        case _:
            return "server_error"


def describe_error(exc: BaseException) -> ErrorDescriptor:
    """Build an ``ErrorDescriptor`` for *exc*."""
    error_type = error_type_for(exc)
    return ErrorDescriptor(
        error_type=error_type,
        message=str(exc) or type(exc).__name__,
        corrective_action=_CORRECTIVE_ACTIONS[error_type],
        status=getattr(exc, "status", None),
        code=getattr(exc, "code", None),
    )
