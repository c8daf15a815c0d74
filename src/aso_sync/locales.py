"""Locale constants and default-locale selection.

The supported-locale lists mirror what App Store Connect and the Google
Play Console accept for store listings.  ``DEFAULT_LOCALE`` is the
canonical fallback used whenever a preferred default is not available.
"""

import re
from collections.abc import Iterable

from .errors import ValidationError

DEFAULT_LOCALE = "en-US"

APP_STORE_SUPPORTED_LOCALES: tuple[str, ...] = (
    "en-US", "en-AU", "en-CA", "en-GB",
    "ko", "ko-KR", "ja", "ja-JP",
    "zh-Hans", "zh-Hant", "zh-HK",
    "fr-FR", "fr-CA", "de-DE", "it", "it-IT",
    "es-ES", "es-MX", "pt-BR", "pt-PT",
    "ru", "ru-RU", "ar-SA", "nl-NL", "sv", "sv-SE",
    "da", "da-DK", "no", "no-NO", "fi", "fi-FI",
    "pl", "pl-PL", "tr", "tr-TR", "vi", "vi-VN",
    "th", "th-TH", "id", "id-ID", "ms", "ms-MY",
    "hi", "hi-IN", "cs", "cs-CZ", "sk", "sk-SK",
    "hu", "hu-HU", "ro", "ro-RO", "uk", "uk-UA",
    "he", "he-IL", "el", "el-GR", "ca", "hr",
)

GOOGLE_PLAY_SUPPORTED_LANGUAGES: tuple[str, ...] = (
    "en-US", "en-AU", "en-CA", "en-GB", "en-IN", "en-SG",
    "ko-KR", "ja-JP", "zh-CN", "zh-TW", "zh-HK",
    "fr-FR", "fr-CA", "de-DE", "it-IT",
    "es-ES", "es-419", "es-US", "pt-BR", "pt-PT",
    "ru-RU", "ar", "nl-NL", "sv-SE", "da-DK", "no-NO",
    "fi-FI", "pl-PL", "tr-TR", "vi", "th", "id",
    "ms", "hi-IN", "cs-CZ", "sk", "hu-HU", "ro",
    "uk", "iw-IL", "el-GR", "bg", "hr", "sr",
    "sl", "et", "lv", "lt",
)

# language[-Script|-Region|-UN M.49 area]
_LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}(-([A-Z][a-z]{3}|[A-Z]{2}|[0-9]{3}))?$")


def is_valid_locale_code(code: str) -> bool:
    """Return ``True`` if *code* looks like a BCP-47 style store locale."""
    return bool(_LOCALE_PATTERN.match(code or ""))


def is_app_store_locale(code: str) -> bool:
    return code in APP_STORE_SUPPORTED_LOCALES


def is_google_play_language(code: str) -> bool:
    return code in GOOGLE_PLAY_SUPPORTED_LANGUAGES


def select_default_locale(locales: Iterable[str], preferred: str | None) -> str:
    """Pick the default locale for a set of locale codes.

    Selection order: *preferred* if present, then ``DEFAULT_LOCALE`` if
    present, then the lexicographically smallest code.  The result never
    depends on the iteration order of *locales*.

    Raises:
        ValidationError: If *locales* is empty.
    """
    available = set(locales)
    if not available:
        raise ValidationError(
            "Cannot select a default locale from an empty locale set"
        )
    if preferred and preferred in available:
        return preferred
    if DEFAULT_LOCALE in available:
        return DEFAULT_LOCALE
    return min(available)
