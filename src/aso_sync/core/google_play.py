"""Google Play Android Publisher client.

Every read and write goes through an *edit* (see ``aso_sync.sync.session``).
Store listings are per language; contact details are app-wide; versions
are the releases on a track.

A refused mutation (e.g. a track already under review) comes back as
``409``/``412`` with ``error.status`` ``FAILED_PRECONDITION`` or
``ABORTED``, which the transport maps to ``VersionStateConflict``.
"""

import logging
import re
from typing import Any

from ..errors import NotFoundError, VersionNotFound
from ..sync.documents import LocaleDocument
from ..sync.models import Platform, ReleaseNote, VersionRecord
from ..sync.versions import sort_versions
from .base import StoreClient
from .transport import ApiTransport

logger = logging.getLogger(__name__)

API_ROOT = "https://androidpublisher.googleapis.com/androidpublisher/v3/applications"

# Android Publisher image type -> device class used in LocaleDocument.screenshots
SCREENSHOT_IMAGE_TYPES: dict[str, str] = {
    "phoneScreenshots": "phone",
    "sevenInchScreenshots": "tablet7",
    "tenInchScreenshots": "tablet10",
    "tvScreenshots": "tv",
    "wearScreenshots": "wear",
}
FEATURE_GRAPHIC = "featureGraphic"

CONFLICT_STATUSES = frozenset({"FAILED_PRECONDITION", "ABORTED"})

_PLAY_URL_ID = re.compile(r"[?&]id=([A-Za-z][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)+)")
_PACKAGE_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)+$")

# LocaleDocument field -> listing attribute
LISTING_FIELDS: dict[str, str] = {
    "title": "title",
    "subtitle": "shortDescription",
    "description": "fullDescription",
    "video_url": "video",
}
# LocaleDocument field -> app details attribute
DETAILS_FIELDS: dict[str, str] = {
    "contact_email": "contactEmail",
    "contact_phone": "contactPhone",
    "contact_website": "contactWebsite",
}


class GooglePlayTransport(ApiTransport):
    name = "Google Play"

    def parse_error(self, payload: Any) -> tuple[str | None, str]:
        error = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(error, dict):
            return None, ""
        return error.get("status"), error.get("message") or ""

    def is_state_conflict(self, status: int, code: str | None) -> bool:
        return status in (409, 412) and code in CONFLICT_STATUSES


class GooglePlayClient(StoreClient):
    """Android Publisher client for one service account.

    Apps are addressed by package name.

    Args:
        transport: Transport authenticated with a service-account token.
        track: Release track whose releases are treated as versions.
    """

    platform = Platform.GOOGLE_PLAY

    def __init__(self, transport: ApiTransport, track: str = "production"):
        super().__init__(transport)
        self.track = track

    @staticmethod
    def _edit_path(session, suffix: str = "") -> str:
        if session is None:
            raise ValueError("Google Play operations require an edit session")
        if not session.is_open:
            raise AssertionError(
                f"Edit session {session.session_id} is {session.state.value}"
            )
        return f"/{session.app}/edits/{session.session_id}{suffix}"

    # ------------------------------------------------------------------
    # Edit sessions
    # ------------------------------------------------------------------

    def begin_session(self, app: str) -> str:
        response = self.transport.request("POST", f"/{app}/edits", json={})
        return response["id"]

    def commit_session(self, session) -> None:
        self.transport.request("POST", self._edit_path(session, ":commit"))

    def abort_session(self, session) -> None:
        self.transport.request("DELETE", self._edit_path(session))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mutate_listing(self, session, locale, document) -> None:
        body = {
            attribute: getattr(document, field_name)
            for field_name, attribute in LISTING_FIELDS.items()
            if getattr(document, field_name) is not None
        }
        if not body:
            logger.debug("%s: no listing fields to update", locale)
            return
        path = self._edit_path(session, f"/listings/{locale}")
        try:
            self.transport.request("PATCH", path, json=body)
        except NotFoundError:
            # New language: create the listing instead.
            self.transport.request("PUT", path, json={"language": locale, **body})

    def mutate_details(self, session, document) -> None:
        body = {
            attribute: getattr(document, field_name)
            for field_name, attribute in DETAILS_FIELDS.items()
            if getattr(document, field_name) is not None
        }
        if body:
            self.transport.request(
                "PATCH", self._edit_path(session, "/details"), json=body
            )

    def update_release_notes(self, session, release_notes, track=None) -> list[str]:
        """Merge *release_notes* into the newest release on *track*.

        Returns:
            Languages whose notes were written.

        Raises:
            VersionNotFound: If the track has no release.
        """
        track = track or self.track
        track_data = self._get_track(session, track)
        releases = track_data.get("releases") or []
        if not releases:
            raise VersionNotFound(f"No release on Google Play track '{track}'")

        records = [
            self._to_record(release, index, track)
            for index, release in enumerate(releases)
        ]
        target = releases[records.index(sort_versions(records)[0])]
        notes = {
            note["language"]: note["text"]
            for note in target.get("releaseNotes") or []
        }
        notes.update(release_notes)
        target["releaseNotes"] = [
            {"language": language, "text": text}
            for language, text in sorted(notes.items())
        ]
        self.transport.request(
            "PUT",
            self._edit_path(session, f"/tracks/{track}"),
            json={"track": track, "releases": releases},
        )
        logger.info(
            "Updated release notes for %d language(s) on %s release %s",
            len(release_notes),
            track,
            target.get("name"),
        )
        return list(release_notes)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def _get_track(self, session, track: str | None = None) -> dict[str, Any]:
        track = track or self.track
        try:
            return self.transport.request(
                "GET", self._edit_path(session, f"/tracks/{track}")
            )
        except NotFoundError:
            return {"track": track, "releases": []}

    def _to_record(
        self, release: dict[str, Any], index: int, track: str | None = None
    ) -> VersionRecord:
        codes = release.get("versionCodes") or []
        name = release.get("name") or (str(max(int(c) for c in codes)) if codes else "")
        # Unnamed drafts without codes are keyed by position.
        key = release.get("name") or ",".join(str(c) for c in codes) or f"#{index}"
        return VersionRecord(
            id=f"{track or self.track}:{key}",
            version_string=name,
            state=release.get("status"),
            platform=Platform.GOOGLE_PLAY,
        )

    def list_versions(self, app, session=None) -> list[VersionRecord]:
        releases = self._get_track(session).get("releases") or []
        return [self._to_record(release, index) for index, release in enumerate(releases)]

    def create_version(
        self, app, version_string, session=None, *, version_codes=None
    ) -> VersionRecord:
        """Add a draft release named *version_string* to the track."""
        track_data = self._get_track(session)
        releases = list(track_data.get("releases") or [])
        release: dict[str, Any] = {"name": version_string, "status": "draft"}
        if version_codes:
            release["versionCodes"] = [str(code) for code in version_codes]
        releases.insert(0, release)
        self.transport.request(
            "PUT",
            self._edit_path(session, f"/tracks/{self.track}"),
            json={"track": self.track, "releases": releases},
        )
        return self._to_record(release, 0)

    def pull_release_notes(self, app, session=None) -> list[ReleaseNote]:
        releases = self._get_track(session).get("releases") or []
        notes = [
            ReleaseNote(
                version_string=self._to_record(release, index).version_string,
                release_notes={
                    note["language"]: note["text"]
                    for note in release.get("releaseNotes") or []
                },
                platform=Platform.GOOGLE_PLAY,
                status=release.get("status"),
            )
            for index, release in enumerate(releases)
        ]
        return [note for note in notes if note.release_notes]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_details(self, session) -> dict[str, Any]:
        return self.transport.request("GET", self._edit_path(session, "/details"))

    def fetch_contact_details(self, session) -> dict[str, str]:
        """App-wide contact details keyed by LocaleDocument field name."""
        details = self.get_details(session)
        return {
            field_name: details[attribute]
            for field_name, attribute in DETAILS_FIELDS.items()
            if details.get(attribute)
        }

    def list_locales(self, app, session=None, version_id=None) -> list[str]:
        response = self.transport.request("GET", self._edit_path(session, "/listings"))
        return [
            listing["language"]
            for listing in response.get("listings") or []
            if listing.get("language")
        ]

    def fetch_locale(self, app, locale, session=None, version_id=None) -> LocaleDocument:
        listing = self.transport.request(
            "GET", self._edit_path(session, f"/listings/{locale}")
        )
        return LocaleDocument(
            locale=locale,
            title=listing.get("title"),
            subtitle=listing.get("shortDescription"),
            description=listing.get("fullDescription"),
            video_url=listing.get("video") or None,
        )

    def _image_urls(self, session, locale: str, image_type: str) -> list[str]:
        response = self.transport.request(
            "GET", self._edit_path(session, f"/listings/{locale}/{image_type}")
        )
        return [image["url"] for image in response.get("images") or [] if image.get("url")]

    def fetch_images(self, app, locale, session=None, version_id=None) -> dict[str, Any]:
        screenshots: dict[str, list[str]] = {}
        for image_type, device in SCREENSHOT_IMAGE_TYPES.items():
            urls = self._image_urls(session, locale, image_type)
            if urls:
                screenshots[device] = urls
        graphics = self._image_urls(session, locale, FEATURE_GRAPHIC)
        return {
            "screenshots": screenshots,
            "feature_graphic": graphics[0] if graphics else None,
        }

    def get_default_locale(self, app, session=None) -> str | None:
        return self.get_details(session).get("defaultLanguage")

    def extract_app_id(self, text: str) -> str | None:
        text = (text or "").strip()
        if _PACKAGE_NAME.match(text):
            return text
        match = _PLAY_URL_ID.search(text)
        return match.group(1) if match else None
