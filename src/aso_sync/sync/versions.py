"""Version lifecycle: parse, compare, increment, list and ensure versions.

Version strings are dot-separated non-negative integers.  Comparison is
component-wise with missing trailing components treated as 0, so
``1.2`` and ``1.2.0`` compare equal.

``VersionLifecycle`` wraps a platform client.  On Google Play every read
or write happens inside an edit session, so the methods accept the
session handle and pass it through; on the App Store it stays ``None``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aso_sync.errors import ValidationError, VersionNotFound
from aso_sync.sync.models import VersionRecord

if TYPE_CHECKING:
    from aso_sync.core.base import StoreClient
    from aso_sync.sync.session import EditSession

logger = logging.getLogger(__name__)

INITIAL_VERSION = "1.0.0"


def parse_version(version_string: str) -> tuple[int, ...]:
    """Split a version string into integer components.

    Raises:
        ValidationError: If any component is empty or not a decimal integer.
    """
    parts = (version_string or "").strip().split(".")
    if not all(part.isdigit() and part.isascii() for part in parts):
        raise ValidationError(
            f"Invalid version string '{version_string}': "
            "expected dot-separated non-negative integers"
        )
    return tuple(int(part) for part in parts)


def _normalized(components: tuple[int, ...]) -> tuple[int, ...]:
    """Strip trailing zero components so padding never affects ordering."""
    end = len(components)
    while end > 0 and components[end - 1] == 0:
        end -= 1
    return components[:end]


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as *a* is lower than, equal to or higher than *b*."""
    left = _normalized(parse_version(a))
    right = _normalized(parse_version(b))
    return (left > right) - (left < right)


def increment_version(version_string: str) -> str:
    """Increment the last component, padding to at least three components.

    ``1.2.9`` -> ``1.2.10``, ``1.2`` -> ``1.2.1``, ``2`` -> ``2.0.1``.
    """
    parts = list(parse_version(version_string))
    while len(parts) < 3:
        parts.append(0)
    parts[-1] += 1
    return ".".join(str(part) for part in parts)


def _sort_key(record: VersionRecord) -> tuple[int, ...]:
    try:
        return _normalized(parse_version(record.version_string))
    except ValidationError:
        # Unparseable names sort after every real version.
        logger.debug(
            "Unparseable version string %r on %s",
            record.version_string,
            record.id,
        )
        return ()


def sort_versions(records: list[VersionRecord]) -> list[VersionRecord]:
    """Sort records newest first; equal versions keep their original order."""
    return sorted(records, key=_sort_key, reverse=True)


class VersionLifecycle:
    """Locate version records on a store and create new ones.

    Args:
        client: Platform client providing ``list_versions`` and
            ``create_version``.
    """

    def __init__(self, client: StoreClient) -> None:
        self.client = client

    def list_versions(
        self, app: str, session: EditSession | None = None
    ) -> list[VersionRecord]:
        """All versions of *app*, newest first."""
        return sort_versions(self.client.list_versions(app, session=session))

    def latest_version(
        self, app: str, session: EditSession | None = None
    ) -> VersionRecord | None:
        """Newest version, or ``None`` when the app has no versions yet."""
        versions = self.list_versions(app, session=session)
        return versions[0] if versions else None

    def require_latest(
        self, app: str, session: EditSession | None = None
    ) -> VersionRecord:
        """Like ``latest_version`` but raises when nothing exists."""
        latest = self.latest_version(app, session=session)
        if latest is None:
            raise VersionNotFound(
                f"No {self.client.platform.label} version found for {app}"
            )
        return latest

    def find_version(
        self,
        app: str,
        version_string: str,
        session: EditSession | None = None,
    ) -> VersionRecord | None:
        for record in self.list_versions(app, session=session):
            if record.version_string == version_string:
                return record
        return None

    def find_editable_version(
        self, app: str, session: EditSession | None = None
    ) -> VersionRecord | None:
        """Newest version whose lifecycle state still accepts edits."""
        for record in self.list_versions(app, session=session):
            if record.editable:
                return record
        return None

    def ensure_version(
        self,
        app: str,
        version_string: str | None = None,
        session: EditSession | None = None,
        *,
        version_codes: list[int] | None = None,
    ) -> VersionRecord:
        """Return a version record for *version_string*, creating it if needed.

        With an explicit version string that already exists, the existing
        record is returned unchanged and nothing is created.  Without one,
        the latest version is incremented (or ``1.0.0`` is used when the app
        has no versions yet).

        *version_codes* are attached to a newly created Google Play release.

        Raises:
            ValidationError: If *version_string* is malformed.
        """
        versions = self.list_versions(app, session=session)

        if version_string is not None:
            parse_version(version_string)
            target = version_string
        elif versions:
            target = increment_version(versions[0].version_string)
            logger.info(
                "Latest %s version %s -> new %s",
                self.client.platform.label,
                versions[0].version_string,
                target,
            )
        else:
            target = INITIAL_VERSION
            logger.info(
                "No existing %s versions for %s, starting with %s",
                self.client.platform.label,
                app,
                target,
            )

        for record in versions:
            if record.version_string == target:
                logger.info("Version %s already exists for %s", target, app)
                return record

        record = self.client.create_version(
            app, target, session=session, version_codes=version_codes
        )
        logger.info(
            "Created %s version %s for %s",
            self.client.platform.label,
            record.version_string,
            app,
        )
        return record
