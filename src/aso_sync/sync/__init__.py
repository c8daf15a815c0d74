"""Store listing sync core.

Pushes a multilingual listing document to App Store Connect or Google
Play, and pulls it back.

Modules:

- ``engine``     -- ``SyncOrchestrator``: routes push/pull by platform.
- ``drivers``    -- per-platform strategies: edit sessions (Google Play)
  and version-conflict recovery (App Store).
- ``session``    -- ``EditSessionManager``: begin/commit/abort with
  guaranteed cleanup.
- ``versions``   -- version parsing, ordering and ``VersionLifecycle``.
- ``recovery``   -- ``ConflictRecovery``: field-group pushes and new
  version creation on a locked version.
- ``documents``  -- ``LocaleDocument`` and ``MultilingualDocument``.
- ``validators`` -- per-store field length limits.
- ``models``     -- ``SyncResult``, ``NeedsNewVersionOutcome`` and friends.
- ``reporter``   -- human-readable and JSON result formatting.

Usage example
-------------
::

    from aso_sync.config import load_runtime_config
    from aso_sync.sync import (
        MultilingualDocument, NeedsNewVersionOutcome, Platform,
        build_orchestrator, format_sync_result,
    )

    orchestrator = build_orchestrator(load_runtime_config(configure_logging=True))
    document = MultilingualDocument(locales={
        "en-US": {"title": "My App", "description": "..."},
        "ko-KR": {"title": "내 앱"},
    })

    outcome = orchestrator.push_document(
        "com.example.app", Platform.APP_STORE, document
    )
    if isinstance(outcome, NeedsNewVersionOutcome):
        outcome = orchestrator.push_document(
            "com.example.app",
            Platform.APP_STORE,
            document,
            version_id=outcome.new_version.id,
        )
    print(format_sync_result(outcome))
"""

from .documents import LocaleDocument, MultilingualDocument, to_multilingual
from .engine import SyncOrchestrator, build_orchestrator
from .models import (
    NeedsNewVersionOutcome,
    Platform,
    PushOutcome,
    ReleaseNote,
    SyncResult,
    VersionRecord,
)
from .reporter import (
    format_needs_new_version,
    format_sync_result,
    outcome_to_json,
)

__all__ = [
    "LocaleDocument",
    "MultilingualDocument",
    "NeedsNewVersionOutcome",
    "Platform",
    "PushOutcome",
    "ReleaseNote",
    "SyncOrchestrator",
    "SyncResult",
    "VersionRecord",
    "build_orchestrator",
    "format_needs_new_version",
    "format_sync_result",
    "outcome_to_json",
]
