"""Push outcome formatting.

- ``format_sync_result`` -- human-readable summary of a ``SyncResult``.
- ``format_needs_new_version`` -- next steps after a version conflict.
- ``outcome_to_json`` -- structured dict for either outcome.
"""

from __future__ import annotations

from typing import Any

from aso_sync.sync.models import NeedsNewVersionOutcome, PushOutcome, SyncResult


def format_sync_result(result: SyncResult) -> str:
    """Format a push result as human-readable text.

    Sections are only included when they contain at least one locale.
    """
    lines: list[str] = [f"{result.platform.label} sync report"]
    lines.append(f"Started: {result.started_at}")
    if result.completed_at:
        lines.append(f"Completed: {result.completed_at}")
    lines.append("")
    lines.append(result.summary())
    lines.append("")

    if result.updated_locales:
        lines.append("Updated:")
        for locale in result.updated_locales:
            refused = result.partial_fields.get(locale)
            if refused:
                lines.append(f"  {locale} (not updated: {', '.join(refused)})")
            else:
                lines.append(f"  {locale}")
        lines.append("")

    if result.failed_locales:
        lines.append("Failed:")
        for locale, error in result.failed_locales.items():
            lines.append(f"  {locale}: [{error.error_type}] {error.message}")
            lines.append(f"    -> {error.corrective_action}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_needs_new_version(outcome: NeedsNewVersionOutcome) -> str:
    version = outcome.new_version
    lines = [
        "Version is locked for editing.",
        f"New version {version.version_string} ({version.id}) is ready.",
    ]
    if outcome.reason:
        lines.append(f"Reason: {outcome.reason}")
    if outcome.updated_locales:
        lines.append(f"Already updated: {', '.join(outcome.updated_locales)}")
    if outcome.failed_locales:
        lines.append(f"Failed: {', '.join(outcome.failed_locales)}")
    lines.append(
        f"Resubmit {len(outcome.pending_locales)} locale(s) against version "
        f"{version.id}: {', '.join(outcome.pending_locales)}"
    )
    return "\n".join(lines)


def outcome_to_json(outcome: PushOutcome) -> dict[str, Any]:
    """Convert a push outcome into a JSON-serializable dict.

    The ``status`` key is ``success``, ``partial`` or ``needs_new_version``.
    """
    if isinstance(outcome, NeedsNewVersionOutcome):
        return {
            "status": "needs_new_version",
            "new_version": outcome.new_version.model_dump(mode="json"),
            "pending_locales": list(outcome.pending_locales),
            "updated_locales": list(outcome.updated_locales),
            "failed_locales": {
                locale: error.model_dump()
                for locale, error in outcome.failed_locales.items()
            },
            "reason": outcome.reason,
        }

    data = outcome.model_dump(mode="json")
    data["status"] = (
        "success" if outcome.success and not outcome.partial_fields else "partial"
    )
    return data
