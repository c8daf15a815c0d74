"""Common interface of the two store clients.

Both clients expose the same operations so the sync layer can drive them
uniformly; the variant is picked by ``Platform``, never by probing for
methods.  Operations a store has no concept of raise
``NotImplementedError``:

* Edit sessions (``begin_session`` ...) and ``mutate_listing`` exist only
  on Google Play.
* ``mutate_app_info`` and ``mutate_version_field`` exist only on the App
  Store.

Read operations take an optional ``session``; Google Play requires it
because every read goes through an edit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..sync.models import Platform

if TYPE_CHECKING:
    from ..sync.documents import LocaleDocument
    from ..sync.models import ReleaseNote, VersionRecord
    from ..sync.session import EditSession
    from .transport import ApiTransport


class StoreClient(ABC):
    """Base class for store clients.

    Args:
        transport: Authenticated transport for the store API.
    """

    platform: Platform

    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    def _unsupported(self, operation: str) -> NotImplementedError:
        return NotImplementedError(
            f"{self.platform.label} does not support {operation}"
        )

    # ------------------------------------------------------------------
    # Edit sessions
    # ------------------------------------------------------------------

    def begin_session(self, app: str) -> str:
        raise self._unsupported("edit sessions")

    def commit_session(self, session: EditSession) -> None:
        raise self._unsupported("edit sessions")

    def abort_session(self, session: EditSession) -> None:
        raise self._unsupported("edit sessions")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mutate_listing(
        self, session: EditSession, locale: str, document: LocaleDocument
    ) -> None:
        raise self._unsupported("session-scoped listing updates")

    def mutate_details(
        self, session: EditSession, document: LocaleDocument
    ) -> None:
        raise self._unsupported("app contact details")

    def mutate_app_info(
        self, app: str, locale: str, attributes: dict[str, Any]
    ) -> None:
        raise self._unsupported("app info localizations")

    def mutate_version_field(
        self,
        app: str,
        version_id: str,
        locale: str,
        attributes: dict[str, Any],
    ) -> None:
        raise self._unsupported("version localizations")

    def update_release_notes(
        self,
        session: EditSession,
        release_notes: dict[str, str],
        track: str = "production",
    ) -> list[str]:
        raise self._unsupported("track release notes")

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    @abstractmethod
    def list_versions(
        self, app: str, session: EditSession | None = None
    ) -> list[VersionRecord]: ...

    @abstractmethod
    def create_version(
        self,
        app: str,
        version_string: str,
        session: EditSession | None = None,
        *,
        version_codes: list[int] | None = None,
    ) -> VersionRecord: ...

    @abstractmethod
    def pull_release_notes(
        self, app: str, session: EditSession | None = None
    ) -> list[ReleaseNote]: ...

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    def list_locales(
        self,
        app: str,
        session: EditSession | None = None,
        version_id: str | None = None,
    ) -> list[str]: ...

    @abstractmethod
    def fetch_locale(
        self,
        app: str,
        locale: str,
        session: EditSession | None = None,
        version_id: str | None = None,
    ) -> LocaleDocument: ...

    @abstractmethod
    def fetch_images(
        self,
        app: str,
        locale: str,
        session: EditSession | None = None,
        version_id: str | None = None,
    ) -> dict[str, Any]:
        """Return ``{"screenshots": {...}, "feature_graphic": url|None}``."""

    @abstractmethod
    def get_default_locale(
        self, app: str, session: EditSession | None = None
    ) -> str | None: ...

    @abstractmethod
    def extract_app_id(self, text: str) -> str | None:
        """Pull the store's app identifier out of a URL or raw input."""
