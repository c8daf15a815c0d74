"""Per-platform push/pull strategies.

The two stores fail in different shapes, so each gets its own driver:

* ``EditSessionDriver`` (Google Play) -- all-or-nothing.  Every valid
  locale is written inside one edit session that is committed once; any
  error inside the session discards it.
* ``VersionConflictDriver`` (App Store) -- per locale.  Failures are
  captured per locale, and a locked version hands over to
  ``ConflictRecovery`` which creates a new version.

Both validate field limits locally first: an invalid or unsupported
locale is reported as failed without a remote call.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol

from aso_sync.errors import (
    ErrorDescriptor,
    SyncCancelled,
    TransactionFailure,
    TransportError,
    ValidationError,
    VersionNotFound,
    VersionStateConflict,
    describe_error,
)
from aso_sync.sync.documents import (
    LocaleDocument,
    MultilingualDocument,
    filter_supported_locales,
)
from aso_sync.sync.models import (
    Platform,
    PushOutcome,
    ReleaseNote,
    SyncResult,
    VersionRecord,
)
from aso_sync.sync.recovery import ConflictRecovery
from aso_sync.sync.session import EditSessionManager
from aso_sync.sync.validators import validate_locale_document
from aso_sync.sync.versions import VersionLifecycle

if TYPE_CHECKING:
    from aso_sync.core.base import StoreClient
    from aso_sync.sync.session import EditSession

logger = logging.getLogger(__name__)


class CancelToken(Protocol):
    """Anything with ``is_set()``, typically a ``threading.Event``."""

    def is_set(self) -> bool: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _cancelled(cancel: CancelToken | None) -> bool:
    return cancel is not None and cancel.is_set()


class PlatformDriver(ABC):
    """Push/pull strategy bound to one store client.

    Args:
        client: Store client for the driver's platform.
    """

    platform: Platform

    def __init__(self, client: StoreClient) -> None:
        self.client = client
        self.versions = VersionLifecycle(client)

    # ------------------------------------------------------------------
    # Capability interface
    # ------------------------------------------------------------------

    @abstractmethod
    def push(
        self,
        app: str,
        document: MultilingualDocument,
        *,
        version_id: str | None = None,
        cancel: CancelToken | None = None,
    ) -> PushOutcome: ...

    @abstractmethod
    def pull(self, app: str) -> MultilingualDocument: ...

    @abstractmethod
    def ensure_version(
        self,
        app: str,
        version_string: str | None = None,
        *,
        version_codes: list[int] | None = None,
    ) -> VersionRecord: ...

    @abstractmethod
    def pull_release_notes(self, app: str) -> list[ReleaseNote]: ...

    @abstractmethod
    def update_release_notes(
        self,
        app: str,
        release_notes: dict[str, str],
        *,
        version_id: str | None = None,
    ) -> SyncResult: ...

    def extract_app_id(self, text: str) -> str | None:
        return self.client.extract_app_id(text)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def validate(
        self, document: MultilingualDocument
    ) -> tuple[list[LocaleDocument], dict[str, ErrorDescriptor]]:
        """Split *document* into pushable locales and local failures.

        Returns:
            Tuple of (valid documents in document order, failures keyed by
            locale in document order).
        """
        filtered, skipped = filter_supported_locales(document, self.platform)
        failures: dict[str, ErrorDescriptor] = {}
        for code in skipped:
            logger.warning("%s: not a %s locale, skipping", code, self.platform.label)
            failures[code] = describe_error(
                ValidationError(
                    f"Locale '{code}' is not supported by {self.platform.label}"
                )
            )

        valid: list[LocaleDocument] = []
        for code, doc in filtered.locales.items():
            ok, message = validate_locale_document(doc, self.platform)
            if ok:
                valid.append(doc)
            else:
                logger.warning("%s: %s", code, message)
                failures[code] = describe_error(ValidationError(f"{code}: {message}"))

        ordered = {code: failures[code] for code in document.locales if code in failures}
        return valid, ordered

    def with_images(
        self,
        app: str,
        doc: LocaleDocument,
        session: EditSession | None = None,
        version_id: str | None = None,
    ) -> LocaleDocument:
        """Attach screenshot and feature graphic URLs, if they can be fetched."""
        try:
            images = self.client.fetch_images(
                app, doc.locale, session=session, version_id=version_id
            )
        except (TransportError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "%s: could not fetch images (%s); continuing without them",
                doc.locale,
                exc,
            )
            return doc

        update = {}
        if images.get("screenshots"):
            update["screenshots"] = images["screenshots"]
        if images.get("feature_graphic"):
            update["feature_graphic"] = images["feature_graphic"]
        return doc.model_copy(update=update) if update else doc

    def _notes_document(self, release_notes: dict[str, str]) -> MultilingualDocument:
        return MultilingualDocument(
            locales={
                code: LocaleDocument(locale=code, whats_new=text)
                for code, text in release_notes.items()
            }
        )


class EditSessionDriver(PlatformDriver):
    """Google Play: every write shares one edit session."""

    platform = Platform.GOOGLE_PLAY

    def __init__(self, client: StoreClient) -> None:
        super().__init__(client)
        self.sessions = EditSessionManager(client)

    def push(self, app, document, *, version_id=None, cancel=None) -> SyncResult:
        """Write all valid locales in one session and commit once.

        Raises:
            TransactionFailure: On a state conflict inside the session or a
                failed commit; the session has been aborted.
            SyncCancelled: If *cancel* was set between two locales.
            TransportError: Any other remote failure, after the abort.
        """
        started_at = _now()
        valid, failed = self.validate(document)
        default_doc = document.default_document()

        def body(session: EditSession) -> list[str]:
            written: list[str] = []
            for doc in valid:
                if _cancelled(cancel):
                    raise SyncCancelled(
                        f"Push to {app} cancelled after {len(written)} of "
                        f"{len(valid)} locale(s); edit {session.session_id} discarded"
                    )
                self._guard(session, self.client.mutate_listing, session, doc.locale, doc)
                written.append(doc.locale)
                logger.info("%s: listing staged in edit %s", doc.locale, session.session_id)

            # Contact details are app-wide; they come from the default locale.
            if (
                default_doc is not None
                and default_doc.locale not in failed
                and default_doc.has_contact_details()
            ):
                self._guard(session, self.client.mutate_details, session, default_doc)
            return written

        updated: list[str] = []
        if valid:
            updated = self.sessions.with_session(app, body)
        else:
            logger.warning("No valid locales to push to %s", app)

        return SyncResult(
            platform=self.platform,
            attempted_locales=document.locale_codes,
            updated_locales=updated,
            failed_locales=failed,
            started_at=started_at,
            completed_at=_now(),
        )

    @staticmethod
    def _guard(session: EditSession, mutation, *args) -> None:
        try:
            mutation(*args)
        except VersionStateConflict as exc:
            raise TransactionFailure(
                f"Google Play refused the change in edit {session.session_id}: {exc}",
                session_id=session.session_id,
            ) from exc

    def pull(self, app) -> MultilingualDocument:
        def body(session: EditSession) -> tuple[dict[str, LocaleDocument], str | None]:
            default = self.client.get_default_locale(app, session=session)
            contact = self.client.fetch_contact_details(session)
            docs: dict[str, LocaleDocument] = {}
            for code in self.client.list_locales(app, session=session):
                doc = self.client.fetch_locale(app, code, session=session)
                doc = self.with_images(app, doc, session=session)
                if contact:
                    doc = doc.model_copy(update=contact)
                docs[code] = doc
            return docs, default

        docs, default = self.sessions.with_session(app, body, commit=False)
        logger.info("Pulled %d Google Play locale(s) for %s", len(docs), app)
        return MultilingualDocument(locales=docs, default_locale=default)

    def ensure_version(
        self, app, version_string=None, *, version_codes=None
    ) -> VersionRecord:
        return self.sessions.with_session(
            app,
            lambda session: self.versions.ensure_version(
                app, version_string, session=session, version_codes=version_codes
            ),
        )

    def pull_release_notes(self, app) -> list[ReleaseNote]:
        return self.sessions.with_session(
            app,
            lambda session: self.client.pull_release_notes(app, session=session),
            commit=False,
        )

    def update_release_notes(self, app, release_notes, *, version_id=None) -> SyncResult:
        """Merge notes into the track's newest release in one session.

        ``version_id`` is ignored: Google Play notes always go to the newest
        release on the configured track.
        """
        started_at = _now()
        document = self._notes_document(release_notes)
        valid, failed = self.validate(document)

        written: list[str] = []
        if valid:
            notes = {doc.locale: doc.whats_new for doc in valid}

            def body(session: EditSession) -> list[str]:
                try:
                    return self.client.update_release_notes(session, notes)
                except VersionStateConflict as exc:
                    raise TransactionFailure(
                        f"Google Play refused release notes in edit {session.session_id}: {exc}",
                        session_id=session.session_id,
                    ) from exc

            written = self.sessions.with_session(app, body)
        order = {code: i for i, code in enumerate(document.locales)}

        return SyncResult(
            platform=self.platform,
            attempted_locales=document.locale_codes,
            updated_locales=sorted(written, key=order.__getitem__),
            failed_locales=failed,
            started_at=started_at,
            completed_at=_now(),
        )


class VersionConflictDriver(PlatformDriver):
    """App Store: locales are independent; locked versions are recovered."""

    platform = Platform.APP_STORE

    def __init__(self, client: StoreClient) -> None:
        super().__init__(client)
        self.recovery = ConflictRecovery(self.versions)

    def push(self, app, document, *, version_id=None, cancel=None) -> PushOutcome:
        """Push locales one by one against *version_id* (default: latest).

        Returns:
            ``SyncResult``, or ``NeedsNewVersionOutcome`` when the version
            was locked and a new one has been created.
        """
        started_at = _now()
        attempted = document.locale_codes
        valid, failed = self.validate(document)
        valid_codes = {doc.locale for doc in valid}

        if valid and version_id is None:
            target = self.versions.require_latest(app)
            version_id = target.id
            logger.info(
                "Pushing to App Store version %s (%s)", target.version_string, target.state
            )

        updated: list[str] = []
        partial: dict[str, list[str]] = {}
        for index, code in enumerate(attempted):
            if code not in valid_codes:
                continue
            if _cancelled(cancel):
                for rest in attempted[index:]:
                    if rest in valid_codes:
                        failed[rest] = describe_error(
                            SyncCancelled(f"Push to {app} cancelled before {rest}")
                        )
                logger.warning("Push to %s cancelled before %s", app, code)
                break

            doc = document.locales[code]
            try:
                refused = self.recovery.push_locale(app, version_id, doc)
            except VersionStateConflict as exc:
                pending = [c for c in attempted[index:] if c in valid_codes]
                return self.recovery.recover(
                    app,
                    exc,
                    pending_locales=pending,
                    updated_locales=updated,
                    failed_locales=failed,
                )
            except TransportError as exc:
                logger.error("%s: push failed: %s", code, exc)
                failed[code] = describe_error(exc)
                continue

            updated.append(code)
            if refused:
                partial[code] = refused
            logger.info("%s: updated%s", code, " (partial)" if refused else "")

        return SyncResult(
            platform=self.platform,
            attempted_locales=attempted,
            updated_locales=updated,
            failed_locales=failed,
            partial_fields=partial,
            started_at=started_at,
            completed_at=_now(),
        )

    def pull(self, app) -> MultilingualDocument:
        latest = self.versions.require_latest(app)
        default = self.client.get_default_locale(app)
        docs: dict[str, LocaleDocument] = {}
        for code in self.client.list_locales(app, version_id=latest.id):
            doc = self.client.fetch_locale(app, code, version_id=latest.id)
            docs[code] = self.with_images(app, doc, version_id=latest.id)
        logger.info(
            "Pulled %d App Store locale(s) for %s from version %s",
            len(docs),
            app,
            latest.version_string,
        )
        return MultilingualDocument(locales=docs, default_locale=default)

    def ensure_version(
        self, app, version_string=None, *, version_codes=None
    ) -> VersionRecord:
        return self.versions.ensure_version(
            app, version_string, version_codes=version_codes
        )

    def pull_release_notes(self, app) -> list[ReleaseNote]:
        return self.client.pull_release_notes(app)

    def update_release_notes(self, app, release_notes, *, version_id=None) -> SyncResult:
        """Write "what's new" per locale on *version_id* or the editable version.

        Raises:
            VersionNotFound: If no version id is given and no version is
                editable.
        """
        started_at = _now()
        document = self._notes_document(release_notes)
        valid, failed = self.validate(document)

        if valid and version_id is None:
            editable = self.versions.find_editable_version(app)
            if editable is None:
                raise VersionNotFound(
                    f"No editable App Store version for {app}; create one first"
                )
            version_id = editable.id

        updated: list[str] = []
        for doc in valid:
            try:
                self.client.mutate_version_field(
                    app, version_id, doc.locale, {"whatsNew": doc.whats_new}
                )
            except TransportError as exc:
                logger.error("%s: release notes failed: %s", doc.locale, exc)
                failed[doc.locale] = describe_error(exc)
                continue
            updated.append(doc.locale)

        return SyncResult(
            platform=self.platform,
            attempted_locales=document.locale_codes,
            updated_locales=updated,
            failed_locales=failed,
            started_at=started_at,
            completed_at=_now(),
        )


DRIVERS: dict[Platform, type[PlatformDriver]] = {
    Platform.GOOGLE_PLAY: EditSessionDriver,
    Platform.APP_STORE: VersionConflictDriver,
}
