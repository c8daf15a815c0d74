"""Local registry of known apps.

A JSON file listing the apps this installation manages, keyed by a
user-chosen slug, with the App Store bundle id and/or Google Play package
name of each.  After a successful push the orchestrator records which
locales each store now carries.

Writes are atomic: ``save()`` writes to a temp file in the same directory
then calls ``os.replace()`` so readers never see partial data.

File layout::

    {
      "apps": [
        {
          "slug": "my-app",
          "name": "My App",
          "appStore": {"bundleId": "com.example.app", "supportedLocales": ["en-US"]},
          "googlePlay": {"packageName": "com.example.app"}
        }
      ]
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import AppNotRegistered, ValidationError
from .sync.models import Platform

logger = logging.getLogger(__name__)

# Platform -> (registry section, identifier key)
_SECTIONS: dict[Platform, tuple[str, str]] = {
    Platform.APP_STORE: ("appStore", "bundleId"),
    Platform.GOOGLE_PLAY: ("googlePlay", "packageName"),
}


class AppRegistry:
    """Load, save, and query the registered apps file.

    Args:
        path: Location of the JSON file.  ``~`` is expanded.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """Return the registry contents, or an empty registry if the file is absent."""
        if not self._path.exists():
            return {"apps": []}
        with open(self._path, encoding="utf-8") as fh:
            data = json.load(fh)
        data.setdefault("apps", [])
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Persist *data* atomically, creating the parent directory if needed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_apps(self) -> list[dict[str, Any]]:
        return self.load()["apps"]

    @staticmethod
    def _matches(entry: dict[str, Any], identifier: str) -> bool:
        return (
            entry.get("slug") == identifier
            or (entry.get("appStore") or {}).get("bundleId") == identifier
            or (entry.get("googlePlay") or {}).get("packageName") == identifier
        )

    def find_app(self, identifier: str) -> dict[str, Any] | None:
        """Find an app by slug, bundle id or package name."""
        for entry in self.list_apps():
            if self._matches(entry, identifier):
                return entry
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register_app(self, entry: dict[str, Any]) -> dict[str, Any]:
        """Add *entry* to the registry.

        Raises:
            ValidationError: If the slug is missing or already registered.
        """
        slug = entry.get("slug")
        if not slug:
            raise ValidationError("Registered apps need a slug")
        data = self.load()
        if any(app.get("slug") == slug for app in data["apps"]):
            raise ValidationError(f'App with slug "{slug}" already exists')
        data["apps"].append(entry)
        self.save(data)
        logger.info("Registered app %s", slug)
        return entry

    def record_synced_locales(
        self, app: str, platform: Platform, locales: list[str]
    ) -> list[str]:
        """Merge *locales* into the app's supported locales for *platform*.

        Returns:
            The merged, sorted locale list.

        Raises:
            AppNotRegistered: If no registry entry matches *app*.
        """
        data = self.load()
        entry = next((e for e in data["apps"] if self._matches(e, app)), None)
        if entry is None:
            raise AppNotRegistered(f'App "{app}" is not in the registry')

        section_name, id_key = _SECTIONS[platform]
        section = entry.setdefault(section_name, {id_key: app})
        merged = sorted(set(section.get("supportedLocales") or []) | set(locales))
        section["supportedLocales"] = merged
        section["lastSyncedAt"] = datetime.now(timezone.utc).isoformat()
        self.save(data)
        logger.debug(
            "Recorded %d synced %s locale(s) for %s",
            len(merged),
            platform.label,
            entry.get("slug", app),
        )
        return merged
