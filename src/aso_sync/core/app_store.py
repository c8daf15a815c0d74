"""App Store Connect client.

Talks to the JSON:API style App Store Connect REST API.  Listing metadata
lives on two resources per locale:

* ``appInfoLocalizations`` -- name, subtitle, privacy policy URL.  Shared
  by every version and locked while a version is in review.
* ``appStoreVersionLocalizations`` -- description, keywords, promotional
  text, URLs, what's new.  Owned by one version.

A refused update comes back as ``409`` with error code ``STATE_ERROR``
(or a dotted sub-code), which the transport maps to
``VersionStateConflict``.
"""

import logging
import re
from typing import Any

from ..errors import NotFoundError
from ..sync.documents import LocaleDocument
from ..sync.models import EDITABLE_STATES, Platform, ReleaseNote, VersionRecord
from ..sync.versions import sort_versions
from .base import StoreClient
from .transport import ApiTransport

logger = logging.getLogger(__name__)

API_ROOT = "https://api.appstoreconnect.apple.com/v1"

# screenshotDisplayType -> device class used in LocaleDocument.screenshots
SCREENSHOT_TYPE_MAP: dict[str, str] = {
    "APP_IPHONE_67": "iphone65",
    "APP_IPHONE_65": "iphone65",
    "APP_IPHONE_61": "iphone61",
    "APP_IPHONE_58": "iphone58",
    "APP_IPHONE_55": "iphone55",
    "APP_IPHONE_47": "iphone47",
    "APP_IPHONE_40": "iphone40",
    "APP_IPAD_PRO_3GEN_129": "ipadPro129",
    "APP_IPAD_PRO_129": "ipadPro129",
    "APP_IPAD_PRO_3GEN_11": "ipadPro11",
    "APP_IPAD_105": "ipad105",
    "APP_IPAD_97": "ipad97",
    "APP_WATCH_ULTRA": "appleWatch",
    "APP_WATCH_SERIES_7": "appleWatch",
    "APP_WATCH_SERIES_4": "appleWatch",
    "APP_WATCH_SERIES_3": "appleWatch",
}

_APP_URL_ID = re.compile(r"/id(\d+)")


class AppStoreTransport(ApiTransport):
    name = "App Store Connect"

    def parse_error(self, payload: Any) -> tuple[str | None, str]:
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if not errors:
            return None, ""
        # Prefer a state error if the response lists several.
        chosen = next(
            (e for e in errors if str(e.get("code", "")).startswith("STATE_ERROR")),
            errors[0],
        )
        message = chosen.get("detail") or chosen.get("title") or ""
        return chosen.get("code"), message

    def is_state_conflict(self, status: int, code: str | None) -> bool:
        return status == 409 and code is not None and (
            code == "STATE_ERROR" or code.startswith("STATE_ERROR.")
        )


def _template_url(asset: dict[str, Any] | None) -> str | None:
    if not asset or not asset.get("templateUrl"):
        return None
    return (
        asset["templateUrl"]
        .replace("{w}", str(asset.get("width", "")))
        .replace("{h}", str(asset.get("height", "")))
        .replace("{f}", "png")
    )


class AppStoreClient(StoreClient):
    """App Store Connect client for one account.

    Apps are addressed by bundle id (or numeric Apple id).

    Args:
        transport: Transport authenticated with an App Store Connect key.
        platform_filter: App Store platform of the versions to manage.
    """

    platform = Platform.APP_STORE

    def __init__(self, transport: ApiTransport, platform_filter: str = "IOS"):
        super().__init__(transport)
        self.platform_filter = platform_filter
        self._app_ids: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve_app_id(self, app: str) -> str:
        """Return the numeric Apple id for a bundle id (or pass an id through)."""
        if app.isdigit():
            return app
        if app not in self._app_ids:
            response = self.transport.request(
                "GET", "/apps", params={"filter[bundleId]": app}
            )
            data = response.get("data") or []
            if not data:
                raise NotFoundError(
                    f'App not found for bundle id "{app}"', status=404
                )
            self._app_ids[app] = data[0]["id"]
        return self._app_ids[app]

    def _app_info_id(self, app_id: str) -> str:
        response = self.transport.request("GET", f"/apps/{app_id}/appInfos")
        infos = response.get("data") or []
        if not infos:
            raise NotFoundError(
                f'App info not found for app id "{app_id}"', status=404
            )
        editable = EDITABLE_STATES[Platform.APP_STORE]
        for info in infos:
            attributes = info.get("attributes") or {}
            state = attributes.get("appStoreState") or attributes.get("state")
            if state in editable:
                return info["id"]
        return infos[0]["id"]

    def _app_info_localization(
        self, app_info_id: str, locale: str
    ) -> dict[str, Any] | None:
        response = self.transport.request(
            "GET",
            f"/appInfos/{app_info_id}/appInfoLocalizations",
            params={"filter[locale]": locale},
        )
        data = response.get("data") or []
        return data[0] if data else None

    def _version_localizations(
        self, version_id: str, locale: str | None = None
    ) -> list[dict[str, Any]]:
        params = {"filter[locale]": locale} if locale else None
        response = self.transport.request(
            "GET",
            f"/appStoreVersions/{version_id}/appStoreVersionLocalizations",
            params=params,
        )
        return response.get("data") or []

    def _latest_version_id(self, app: str) -> str:
        versions = sort_versions(self.list_versions(app))
        if not versions:
            raise NotFoundError(f"No App Store version found for {app}", status=404)
        return versions[0].id

    def _to_record(self, item: dict[str, Any]) -> VersionRecord:
        attributes = item.get("attributes") or {}
        return VersionRecord(
            id=item["id"],
            version_string=attributes.get("versionString", ""),
            state=attributes.get("appStoreState")
            or attributes.get("appVersionState"),
            platform=Platform.APP_STORE,
        )

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def list_versions(self, app, session=None) -> list[VersionRecord]:
        app_id = self.resolve_app_id(app)
        response = self.transport.request(
            "GET",
            f"/apps/{app_id}/appStoreVersions",
            params={"filter[platform]": self.platform_filter, "limit": 50},
        )
        return [self._to_record(item) for item in response.get("data") or []]

    def create_version(
        self, app, version_string, session=None, *, version_codes=None
    ) -> VersionRecord:
        """Create *version_string* as a new App Store version.

        *version_codes* is ignored: builds are attached to App Store
        versions separately.
        """
        app_id = self.resolve_app_id(app)
        response = self.transport.request(
            "POST",
            "/appStoreVersions",
            json={
                "data": {
                    "type": "appStoreVersions",
                    "attributes": {
                        "platform": self.platform_filter,
                        "versionString": version_string,
                    },
                    "relationships": {
                        "app": {"data": {"type": "apps", "id": app_id}}
                    },
                }
            },
        )
        return self._to_record(response["data"])

    def pull_release_notes(self, app, session=None) -> list[ReleaseNote]:
        notes: list[ReleaseNote] = []
        for version in sort_versions(self.list_versions(app)):
            texts = {
                loc["attributes"]["locale"]: loc["attributes"]["whatsNew"]
                for loc in self._version_localizations(version.id)
                if (loc.get("attributes") or {}).get("locale")
                and loc["attributes"].get("whatsNew")
            }
            if texts:
                notes.append(
                    ReleaseNote(
                        version_string=version.version_string,
                        release_notes=texts,
                        platform=Platform.APP_STORE,
                        status=version.state,
                    )
                )
        return notes

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mutate_app_info(self, app, locale, attributes) -> None:
        app_info_id = self._app_info_id(self.resolve_app_id(app))
        existing = self._app_info_localization(app_info_id, locale)
        if existing:
            self.transport.request(
                "PATCH",
                f"/appInfoLocalizations/{existing['id']}",
                json={
                    "data": {
                        "type": "appInfoLocalizations",
                        "id": existing["id"],
                        "attributes": attributes,
                    }
                },
            )
            return

        self.transport.request(
            "POST",
            "/appInfoLocalizations",
            json={
                "data": {
                    "type": "appInfoLocalizations",
                    "attributes": {"locale": locale, **attributes},
                    "relationships": {
                        "appInfo": {
                            "data": {"type": "appInfos", "id": app_info_id}
                        }
                    },
                }
            },
        )

    def mutate_version_field(self, app, version_id, locale, attributes) -> None:
        existing = self._version_localizations(version_id, locale)
        if existing:
            localization_id = existing[0]["id"]
            self.transport.request(
                "PATCH",
                f"/appStoreVersionLocalizations/{localization_id}",
                json={
                    "data": {
                        "type": "appStoreVersionLocalizations",
                        "id": localization_id,
                        "attributes": attributes,
                    }
                },
            )
            return

        self.transport.request(
            "POST",
            "/appStoreVersionLocalizations",
            json={
                "data": {
                    "type": "appStoreVersionLocalizations",
                    "attributes": {"locale": locale, **attributes},
                    "relationships": {
                        "appStoreVersion": {
                            "data": {"type": "appStoreVersions", "id": version_id}
                        }
                    },
                }
            },
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_locales(self, app, session=None, version_id=None) -> list[str]:
        version_id = version_id or self._latest_version_id(app)
        return [
            loc["attributes"]["locale"]
            for loc in self._version_localizations(version_id)
            if (loc.get("attributes") or {}).get("locale")
        ]

    def fetch_locale(self, app, locale, session=None, version_id=None) -> LocaleDocument:
        version_id = version_id or self._latest_version_id(app)
        app_info_id = self._app_info_id(self.resolve_app_id(app))
        info = self._app_info_localization(app_info_id, locale) or {}
        info_attrs = info.get("attributes") or {}
        localizations = self._version_localizations(version_id, locale)
        version_attrs = (localizations[0].get("attributes") or {}) if localizations else {}
        return LocaleDocument(
            locale=locale,
            title=info_attrs.get("name"),
            subtitle=info_attrs.get("subtitle"),
            privacy_policy_url=info_attrs.get("privacyPolicyUrl"),
            description=version_attrs.get("description"),
            keywords=version_attrs.get("keywords"),
            promotional_text=version_attrs.get("promotionalText"),
            support_url=version_attrs.get("supportUrl"),
            marketing_url=version_attrs.get("marketingUrl"),
            whats_new=version_attrs.get("whatsNew"),
        )

    def fetch_images(self, app, locale, session=None, version_id=None) -> dict[str, Any]:
        version_id = version_id or self._latest_version_id(app)
        localizations = self._version_localizations(version_id, locale)
        screenshots: dict[str, list[str]] = {}
        if not localizations:
            return {"screenshots": screenshots, "feature_graphic": None}

        sets = self.transport.request(
            "GET",
            f"/appStoreVersionLocalizations/{localizations[0]['id']}/appScreenshotSets",
        ).get("data") or []
        for screenshot_set in sets:
            display_type = (screenshot_set.get("attributes") or {}).get(
                "screenshotDisplayType"
            )
            device = SCREENSHOT_TYPE_MAP.get(display_type or "")
            if device is None:
                logger.debug("Unmapped screenshot display type %s", display_type)
                continue
            shots = self.transport.request(
                "GET", f"/appScreenshotSets/{screenshot_set['id']}/appScreenshots"
            ).get("data") or []
            urls = [
                url
                for url in (
                    _template_url((shot.get("attributes") or {}).get("imageAsset"))
                    for shot in shots
                )
                if url
            ]
            if urls:
                screenshots.setdefault(device, []).extend(urls)
        return {"screenshots": screenshots, "feature_graphic": None}

    def get_default_locale(self, app, session=None) -> str | None:
        app_id = self.resolve_app_id(app)
        response = self.transport.request("GET", f"/apps/{app_id}")
        return ((response.get("data") or {}).get("attributes") or {}).get(
            "primaryLocale"
        )

    def extract_app_id(self, text: str) -> str | None:
        text = (text or "").strip()
        if text.isdigit():
            return text
        match = _APP_URL_ID.search(text)
        return match.group(1) if match else None
