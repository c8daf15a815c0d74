"""Pydantic models for the sync core.

Defines the data contracts shared by the version, session, recovery and
orchestration modules:

- ``Platform``: The two supported stores.
- ``VersionRecord``: One version resource on a store.
- ``SessionState``: Lifecycle of an edit session handle.
- ``ReleaseNote``: Localized "what's new" text for one version.
- ``SyncResult``: Per-locale outcome of a push.
- ``NeedsNewVersionOutcome``: A push stopped because a new version was
  created and content has to be resubmitted against it.

Result models are frozen (immutable) for safety.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from aso_sync.errors import ErrorDescriptor


class Platform(str, Enum):
    """Supported stores."""

    APP_STORE = "appStore"
    GOOGLE_PLAY = "googlePlay"

    @property
    def label(self) -> str:
        return "App Store" if self is Platform.APP_STORE else "Google Play"


class SessionState(str, Enum):
    """Edit session lifecycle. COMMITTED and ABORTED are terminal."""

    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


# Lifecycle tags under which a version's localized fields may still change.
EDITABLE_STATES: dict[Platform, frozenset[str]] = {
    Platform.APP_STORE: frozenset(
        {
            "PREPARE_FOR_SUBMISSION",
            "DEVELOPER_REJECTED",
            "REJECTED",
            "METADATA_REJECTED",
            "INVALID_BINARY",
        }
    ),
    Platform.GOOGLE_PLAY: frozenset({"draft"}),
}


class VersionRecord(BaseModel):
    """A version resource on a store.

    Records are never mutated; a new version string always produces a new
    record.

    Attributes:
        id: Opaque store-assigned handle.
        version_string: Dot-separated non-negative integers.
        state: Store-defined lifecycle tag.
        platform: Store the record belongs to.
    """

    id: str
    version_string: str
    state: str | None = None
    platform: Platform

    model_config = {"frozen": True}

    @property
    def editable(self) -> bool:
        return self.state in EDITABLE_STATES[self.platform]


class ReleaseNote(BaseModel):
    """Localized release notes attached to one version."""

    version_string: str
    release_notes: dict[str, str] = Field(default_factory=dict)
    platform: Platform
    status: str | None = None

    model_config = {"frozen": True}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncResult(BaseModel):
    """Outcome of one push across all locales of a document.

    Every attempted locale ends in exactly one of ``updated_locales`` and
    ``failed_locales``.  A locale whose update was only partly accepted is
    listed as updated, with the refused field names in ``partial_fields``.

    Attributes:
        platform: Target store.
        attempted_locales: Locales in document order.
        updated_locales: Locales written successfully, in document order.
        failed_locales: Error descriptor per failed locale.
        partial_fields: Refused field names per partially updated locale.
        started_at: ISO 8601 timestamp when the push started.
        completed_at: ISO 8601 timestamp when the push completed.
    """

    platform: Platform
    attempted_locales: list[str] = []
    updated_locales: list[str] = []
    failed_locales: dict[str, ErrorDescriptor] = {}
    partial_fields: dict[str, list[str]] = {}
    started_at: str = Field(default_factory=_utcnow)
    completed_at: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_buckets(self) -> SyncResult:
        updated = set(self.updated_locales)
        failed = set(self.failed_locales)
        if updated & failed:
            raise ValueError(
                f"Locales both updated and failed: {sorted(updated & failed)}"
            )
        if updated | failed != set(self.attempted_locales):
            raise ValueError(
                "Updated and failed locales must cover exactly the attempted locales"
            )
        stray = set(self.partial_fields) - updated
        if stray:
            raise ValueError(
                f"Partial fields reported for locales not updated: {sorted(stray)}"
            )
        return self

    @property
    def success(self) -> bool:
        return not self.failed_locales

    def summary(self) -> str:
        """Format a one-line summary of the push."""
        text = (
            f"{self.platform.label}: {len(self.updated_locales)} updated, "
            f"{len(self.failed_locales)} failed"
        )
        if self.partial_fields:
            text += f", {len(self.partial_fields)} partial"
        return text


class NeedsNewVersionOutcome(BaseModel):
    """A push stopped because the target version is locked.

    A new editable version has already been created.  The caller resubmits
    ``pending_locales`` against ``new_version`` as an explicit next step.

    Attributes:
        new_version: The freshly created (or already existing) version.
        pending_locales: Locales still to push, starting with the one that
            hit the conflict, in document order.
        updated_locales: Locales written before the conflict.
        failed_locales: Locales that failed before the conflict.
        reason: Error text reported by the platform.
    """

    new_version: VersionRecord
    pending_locales: list[str]
    updated_locales: list[str] = []
    failed_locales: dict[str, ErrorDescriptor] = {}
    reason: str = ""

    model_config = {"frozen": True}


PushOutcome = SyncResult | NeedsNewVersionOutcome
