"""Locale document model.

``LocaleDocument`` is one locale's listing metadata in a shape shared by
both stores; ``MultilingualDocument`` maps locale codes to documents and
carries the default locale.  A field left as ``None`` means "do not change
this field on push".

Store exports use different key names for the same concept (``name`` vs
``title``, ``shortDescription`` vs ``subtitle``), so both spellings are
accepted on input.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field, model_validator

from aso_sync.locales import (
    DEFAULT_LOCALE,
    is_app_store_locale,
    is_google_play_language,
    select_default_locale,
)
from aso_sync.sync.models import Platform


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class LocaleDocument(BaseModel):
    """Listing metadata for a single locale.

    Attributes:
        locale: Locale code this document belongs to.
        title: App name (App Store) / title (Google Play).
        subtitle: Subtitle (App Store) / short description (Google Play).
        description: Full description.
        keywords: Comma-separated search keywords (App Store only).
        promotional_text: Promotional text (App Store only).
        whats_new: Release notes for the targeted version.
        screenshots: Screenshot URLs keyed by device class.
        feature_graphic: Feature graphic URL (Google Play only).
        video_url: Promo video URL (Google Play only).
        support_url, marketing_url, privacy_policy_url: App Store URLs.
        contact_email, contact_phone, contact_website: Google Play contact
            details (app-level, taken from the default locale on push).
    """

    locale: str | None = Field(
        default=None, validation_alias=_alias("locale", "language")
    )
    title: str | None = Field(
        default=None, validation_alias=_alias("title", "name")
    )
    subtitle: str | None = Field(
        default=None,
        validation_alias=_alias("subtitle", "short_description", "shortDescription"),
    )
    description: str | None = Field(
        default=None,
        validation_alias=_alias("description", "full_description", "fullDescription"),
    )
    keywords: str | None = None
    promotional_text: str | None = Field(
        default=None, validation_alias=_alias("promotional_text", "promotionalText")
    )
    whats_new: str | None = Field(
        default=None, validation_alias=_alias("whats_new", "whatsNew")
    )
    screenshots: dict[str, list[str]] | None = None
    feature_graphic: str | None = Field(
        default=None, validation_alias=_alias("feature_graphic", "featureGraphic")
    )
    video_url: str | None = Field(
        default=None, validation_alias=_alias("video_url", "video", "youtubeUrl")
    )
    support_url: str | None = Field(
        default=None, validation_alias=_alias("support_url", "supportUrl")
    )
    marketing_url: str | None = Field(
        default=None, validation_alias=_alias("marketing_url", "marketingUrl")
    )
    privacy_policy_url: str | None = Field(
        default=None,
        validation_alias=_alias("privacy_policy_url", "privacyPolicyUrl"),
    )
    contact_email: str | None = Field(
        default=None, validation_alias=_alias("contact_email", "contactEmail")
    )
    contact_phone: str | None = Field(
        default=None, validation_alias=_alias("contact_phone", "contactPhone")
    )
    contact_website: str | None = Field(
        default=None, validation_alias=_alias("contact_website", "contactWebsite")
    )

    model_config = {"frozen": True, "populate_by_name": True}

    def changed_fields(self) -> list[str]:
        """Names of the content fields this document sets."""
        return [
            name
            for name in type(self).model_fields
            if name != "locale" and getattr(self, name) is not None
        ]

    def has_contact_details(self) -> bool:
        return any(
            value is not None
            for value in (
                self.contact_email,
                self.contact_phone,
                self.contact_website,
            )
        )


class MultilingualDocument(BaseModel):
    """Locale code to ``LocaleDocument`` map with a default locale.

    Once any locale exists, ``default_locale`` is guaranteed to be one of
    its keys (see ``select_default_locale``).  Each document's ``locale``
    is filled in from its key.
    """

    locales: dict[str, LocaleDocument] = Field(default_factory=dict)
    default_locale: str | None = Field(
        default=None, validation_alias=_alias("default_locale", "defaultLocale")
    )

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _normalize(self) -> MultilingualDocument:
        normalized: dict[str, LocaleDocument] = {}
        for code, doc in self.locales.items():
            if doc.locale is None:
                doc = doc.model_copy(update={"locale": code})
            elif doc.locale != code:
                raise ValueError(
                    f"Locale key '{code}' does not match document locale '{doc.locale}'"
                )
            normalized[code] = doc
        self.locales = normalized
        if normalized:
            self.default_locale = select_default_locale(
                normalized, self.default_locale
            )
        return self

    @property
    def locale_codes(self) -> list[str]:
        return list(self.locales)

    def default_document(self) -> LocaleDocument | None:
        if self.default_locale is None:
            return None
        return self.locales.get(self.default_locale)


def to_multilingual(
    doc: LocaleDocument, explicit_default: str | None = None
) -> MultilingualDocument:
    """Wrap a single document as the sole locale of a multilingual document.

    The locale key is *explicit_default*, else the document's own locale,
    else ``DEFAULT_LOCALE``.
    """
    code = explicit_default or doc.locale or DEFAULT_LOCALE
    if doc.locale != code:
        doc = doc.model_copy(update={"locale": code})
    return MultilingualDocument(locales={code: doc}, default_locale=code)


def filter_supported_locales(
    document: MultilingualDocument, platform: Platform
) -> tuple[MultilingualDocument, list[str]]:
    """Drop locales the target store does not accept.

    Returns:
        Tuple of (filtered document, skipped locale codes in document order).
    """
    supported = (
        is_app_store_locale
        if platform is Platform.APP_STORE
        else is_google_play_language
    )
    kept = {
        code: doc for code, doc in document.locales.items() if supported(code)
    }
    skipped = [code for code in document.locales if code not in kept]
    preferred = (
        document.default_locale if document.default_locale in kept else None
    )
    return (
        MultilingualDocument(locales=kept, default_locale=preferred),
        skipped,
    )
