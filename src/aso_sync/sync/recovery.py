"""Recovery from version-state conflicts on the App Store.

App Store Connect has no transactions.  Instead it refuses some field
updates while the targeted version is in a locked lifecycle state
(waiting for review, ready for sale ...), reported as a
``VersionStateConflict``.

Two grains of refusal are handled here:

* **Field group** -- app-level fields (name, subtitle, privacy URL) may be
  refused on their own.  The remaining groups for the locale are still
  pushed and the locale counts as partially updated.
* **Version** -- the version localization itself is locked.  A new
  editable version is created and a ``NeedsNewVersionOutcome`` is handed
  back.  The refused mutation is never retried automatically: the new
  version may need fresh content (e.g. its own "what's new" text), so
  resubmitting is the caller's explicit next step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aso_sync.errors import ErrorDescriptor, VersionStateConflict
from aso_sync.sync.models import NeedsNewVersionOutcome

if TYPE_CHECKING:
    from aso_sync.sync.documents import LocaleDocument
    from aso_sync.sync.versions import VersionLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldGroup:
    """Document fields that the store updates through one resource.

    Attributes:
        name: Group name used in logs.
        fields: Document field name -> store attribute name.
        version_bound: ``True`` if the resource belongs to a version, so a
            conflict means the whole version is locked.
    """

    name: str
    fields: dict[str, str]
    version_bound: bool

    def attributes_for(self, doc: LocaleDocument) -> dict[str, str]:
        return {
            attribute: getattr(doc, field_name)
            for field_name, attribute in self.fields.items()
            if getattr(doc, field_name) is not None
        }


APP_INFO_FIELDS = FieldGroup(
    name="app_info",
    fields={
        "title": "name",
        "subtitle": "subtitle",
        "privacy_policy_url": "privacyPolicyUrl",
    },
    version_bound=False,
)

VERSION_LOCALIZATION_FIELDS = FieldGroup(
    name="version_localization",
    fields={
        "description": "description",
        "keywords": "keywords",
        "promotional_text": "promotionalText",
        "support_url": "supportUrl",
        "marketing_url": "marketingUrl",
        "whats_new": "whatsNew",
    },
    version_bound=True,
)

FIELD_GROUPS: tuple[FieldGroup, ...] = (
    APP_INFO_FIELDS,
    VERSION_LOCALIZATION_FIELDS,
)


class ConflictRecovery:
    """Push field groups and turn version locks into new versions.

    Args:
        versions: Version lifecycle controller bound to the App Store client.
    """

    def __init__(self, versions: VersionLifecycle) -> None:
        self.versions = versions
        self.client = versions.client

    def push_locale(
        self, app: str, version_id: str, doc: LocaleDocument
    ) -> list[str]:
        """Push every field group of *doc*, tolerating app-level refusals.

        Returns:
            Document field names the store refused (empty when the locale
            was fully updated).

        Raises:
            VersionStateConflict: If the version localization is locked.
        """
        refused: list[str] = []
        for group in FIELD_GROUPS:
            attributes = group.attributes_for(doc)
            if not attributes:
                continue
            try:
                if group.version_bound:
                    self.client.mutate_version_field(
                        app, version_id, doc.locale, attributes
                    )
                else:
                    self.client.mutate_app_info(app, doc.locale, attributes)
            except VersionStateConflict as exc:
                if group.version_bound:
                    raise
                names = [
                    field_name
                    for field_name, attribute in group.fields.items()
                    if attribute in attributes
                ]
                refused.extend(names)
                logger.warning(
                    "%s: %s fields %s refused in current version state (%s); "
                    "continuing with remaining fields",
                    doc.locale,
                    group.name,
                    ", ".join(names),
                    exc.code,
                )
        return refused

    def recover(
        self,
        app: str,
        conflict: VersionStateConflict,
        *,
        pending_locales: list[str],
        updated_locales: list[str] | None = None,
        failed_locales: dict[str, ErrorDescriptor] | None = None,
    ) -> NeedsNewVersionOutcome:
        """Create a new editable version and describe what is left to push."""
        logger.warning(
            "Version state conflict for %s (%s); creating a new version",
            app,
            conflict.code,
        )
        new_version = self.versions.ensure_version(app)
        logger.info(
            "New version %s (%s) ready; %d locale(s) to resubmit",
            new_version.version_string,
            new_version.id,
            len(pending_locales),
        )
        return NeedsNewVersionOutcome(
            new_version=new_version,
            pending_locales=list(pending_locales),
            updated_locales=list(updated_locales or []),
            failed_locales=dict(failed_locales or {}),
            reason=str(conflict),
        )
