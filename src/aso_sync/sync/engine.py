"""Sync orchestrator: the entry point for pushing and pulling listings.

``SyncOrchestrator`` holds one driver per configured store and routes each
call by ``Platform``.  It owns the pieces that are the same for every
store:

1. Rejecting documents without locales before anything else happens.
2. Delegating to the platform driver (see ``drivers``).
3. Recording the updated locales in the local registry, best-effort.

The orchestrator keeps no state between calls.  Concurrent pushes for the
same app and store are not coordinated; callers must serialize them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aso_sync.errors import ConfigurationMissing, ValidationError
from aso_sync.sync.documents import LocaleDocument, MultilingualDocument, to_multilingual
from aso_sync.sync.drivers import DRIVERS, CancelToken, PlatformDriver
from aso_sync.sync.models import (
    NeedsNewVersionOutcome,
    Platform,
    PushOutcome,
    ReleaseNote,
    SyncResult,
    VersionRecord,
)

if TYPE_CHECKING:
    from aso_sync.config import Config
    from aso_sync.core.base import StoreClient
    from aso_sync.registry import AppRegistry

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Drive pushes and pulls against the configured stores.

    Args:
        clients: Store client per platform.  Platforms without a client
            raise ``ConfigurationMissing`` when used.
        registry: Optional local registry updated after successful pushes.
    """

    def __init__(
        self,
        clients: dict[Platform, StoreClient],
        registry: AppRegistry | None = None,
    ) -> None:
        self.registry = registry
        self._drivers: dict[Platform, PlatformDriver] = {
            platform: DRIVERS[platform](client) for platform, client in clients.items()
        }

    @property
    def platforms(self) -> list[Platform]:
        return list(self._drivers)

    def driver(self, platform: Platform) -> PlatformDriver:
        try:
            return self._drivers[platform]
        except KeyError:
            raise ConfigurationMissing(
                f"No {platform.label} client configured"
            ) from None

    # ------------------------------------------------------------------
    # Push / pull
    # ------------------------------------------------------------------

    def push_document(
        self,
        app: str,
        platform: Platform,
        document: MultilingualDocument | LocaleDocument,
        *,
        version_id: str | None = None,
        cancel: CancelToken | None = None,
    ) -> PushOutcome:
        """Push every locale of *document* to *platform*.

        Args:
            app: Bundle id (App Store) or package name (Google Play).
            platform: Target store.
            document: Listing to push.  A single ``LocaleDocument`` is
                wrapped as a one-locale document.
            version_id: App Store version to target; defaults to the
                latest.  Use ``NeedsNewVersionOutcome.new_version.id`` to
                resubmit after a conflict.
            cancel: Checked between locales.

        Returns:
            ``SyncResult``, or ``NeedsNewVersionOutcome`` if the App Store
            version was locked and a new version has been created.

        Raises:
            ValidationError: If *document* has no locales.
            TransactionFailure: If a Google Play edit could not be committed.
            SyncCancelled: If a Google Play push was cancelled.
        """
        if isinstance(document, LocaleDocument):
            document = to_multilingual(document)
        if not document.locales:
            raise ValidationError("Document has no locales to push")

        driver = self.driver(platform)
        logger.info(
            "Pushing %d locale(s) for %s to %s",
            len(document.locales),
            app,
            platform.label,
        )
        outcome = driver.push(app, document, version_id=version_id, cancel=cancel)

        if isinstance(outcome, NeedsNewVersionOutcome):
            logger.warning(
                "%s: version locked; new version %s created, %d locale(s) to resubmit",
                app,
                outcome.new_version.version_string,
                len(outcome.pending_locales),
            )
        else:
            logger.info(outcome.summary())
        self._record_synced(app, platform, outcome.updated_locales)
        return outcome

    def pull_document(self, app: str, platform: Platform) -> MultilingualDocument:
        """Fetch the current listing of *app* in every locale the store has."""
        return self.driver(platform).pull(app)

    # ------------------------------------------------------------------
    # Versions and release notes
    # ------------------------------------------------------------------

    def ensure_version(
        self,
        app: str,
        platform: Platform,
        version_string: str | None = None,
        *,
        version_codes: list[int] | None = None,
    ) -> VersionRecord:
        """Return *version_string* (or the next version), creating it if needed.

        *version_codes* (Google Play only) are attached to a newly created
        release; existing releases are returned unchanged.
        """
        return self.driver(platform).ensure_version(
            app, version_string, version_codes=version_codes
        )

    def pull_release_notes(self, app: str, platform: Platform) -> list[ReleaseNote]:
        return self.driver(platform).pull_release_notes(app)

    def update_release_notes(
        self,
        app: str,
        platform: Platform,
        release_notes: dict[str, str],
        *,
        version_id: str | None = None,
    ) -> SyncResult:
        """Write localized release notes.

        Raises:
            ValidationError: If *release_notes* is empty.
        """
        if not release_notes:
            raise ValidationError("No release notes to update")
        result = self.driver(platform).update_release_notes(
            app, release_notes, version_id=version_id
        )
        logger.info("Release notes: %s", result.summary())
        return result

    def extract_app_id(self, platform: Platform, text: str) -> str | None:
        return self.driver(platform).extract_app_id(text)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_synced(self, app: str, platform: Platform, locales: list[str]) -> None:
        if self.registry is None or not locales:
            return
        try:
            self.registry.record_synced_locales(app, platform, locales)
        except Exception as exc:
            logger.warning("Could not update registry for %s: %s", app, exc)


def build_orchestrator(
    config: Config, platforms: list[Platform] | None = None
) -> SyncOrchestrator:
    """Build an orchestrator with fresh clients for *platforms*.

    Args:
        config: Runtime configuration.
        platforms: Stores to connect; defaults to every store with
            credentials in *config*.

    Raises:
        ConfigurationMissing: If no store is configured, or a requested
            store has no credentials.
    """
    # Import here to avoid circular imports (core imports sync.models)
    from aso_sync.core import create_client
    from aso_sync.registry import AppRegistry

    platforms = platforms or config.configured_platforms
    if not platforms:
        raise ConfigurationMissing(
            "No store credentials configured; set App Store or Google Play credentials"
        )
    clients = {platform: create_client(platform, config) for platform in platforms}
    return SyncOrchestrator(clients, registry=AppRegistry(config.registry_path))
