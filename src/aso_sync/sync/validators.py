"""
Input validation for store listing documents.

Checks locale codes and per-store field length limits before any remote
call is made, so over-long text is rejected locally instead of by the
store halfway through a push.
"""

from aso_sync.locales import is_valid_locale_code
from aso_sync.sync.documents import LocaleDocument
from aso_sync.sync.models import Platform

# Maximum lengths in characters, per store and document field.
FIELD_LIMITS: dict[Platform, dict[str, int]] = {
    Platform.APP_STORE: {
        "title": 30,
        "subtitle": 30,
        "keywords": 100,
        "promotional_text": 170,
        "description": 4000,
        "whats_new": 4000,
    },
    Platform.GOOGLE_PLAY: {
        "title": 30,
        "subtitle": 80,
        "description": 4000,
        "whats_new": 500,
    },
}

# Store-facing names used in error messages.
FIELD_LABELS: dict[Platform, dict[str, str]] = {
    Platform.APP_STORE: {
        "title": "name",
        "subtitle": "subtitle",
        "keywords": "keywords",
        "promotional_text": "promotional text",
        "description": "description",
        "whats_new": "what's new",
    },
    Platform.GOOGLE_PLAY: {
        "title": "title",
        "subtitle": "short description",
        "description": "full description",
        "whats_new": "release notes",
    },
}


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Short description")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_locale_code(locale: str) -> tuple[bool, str]:
    """
    Validate a store locale code.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not locale or not locale.strip():
        return (
            False,
            format_validation_error("Locale", "cannot be empty"),
        )

    if not is_valid_locale_code(locale):
        return (
            False,
            format_validation_error(
                f"Locale '{locale}'", "is not a valid locale code"
            ),
        )

    return (True, "")


def validate_text_length(
    value: str | None, label: str, max_length: int
) -> tuple[bool, str]:
    """
    Validate that a text field fits the store limit.

    ``None`` is always valid (the field is not being changed).
    """
    if value is None:
        return (True, "")

    if len(value) > max_length:
        return (
            False,
            format_validation_error(
                label.capitalize(),
                f"exceeds maximum length of {max_length} characters ({len(value)})",
            ),
        )

    return (True, "")


def validate_locale_document(
    doc: LocaleDocument, platform: Platform
) -> tuple[bool, str]:
    """
    Validate one locale's document against the target store's limits.

    Args:
        doc: The document to validate (its ``locale`` must be set)
        platform: Target store

    Returns:
        Tuple of (is_valid, error_message). All violations are reported,
        joined with "; ".
    """
    ok, message = validate_locale_code(doc.locale or "")
    if not ok:
        return (False, message)

    problems: list[str] = []
    labels = FIELD_LABELS[platform]
    for field_name, max_length in FIELD_LIMITS[platform].items():
        ok, message = validate_text_length(
            getattr(doc, field_name), labels[field_name], max_length
        )
        if not ok:
            problems.append(message)

    if problems:
        return (False, "; ".join(problems))

    return (True, "")
