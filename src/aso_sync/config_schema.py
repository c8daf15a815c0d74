"""Unified configuration schema for aso_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for App Store credentials, Google Play credentials, sync
behaviour and logging.  Includes an adapter to the runtime ``Config``
dataclass.

Usage:
    from aso_sync.config_schema import build_config, to_runtime_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_runtime_config(unified, cli_overrides={"debug": True})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class AppStoreSection(BaseModel):
    """App Store Connect API key settings.

    All fields are optional: env vars can supply them at runtime instead.
    """

    issuer_id: str | None = Field(default=None, description="API key issuer id")
    key_id: str | None = Field(default=None, description="API key id")
    private_key: str | None = Field(
        default=None, description="PEM encoded .p8 private key"
    )
    private_key_path: str | None = Field(
        default=None, description="Path to the .p8 private key file"
    )

    model_config = {"frozen": True}


class GooglePlaySection(BaseModel):
    """Google Play service account settings."""

    service_account_json: str | None = Field(
        default=None, description="Service account JSON document"
    )
    service_account_path: str | None = Field(
        default=None, description="Path to the service account JSON file"
    )
    track: str = Field(default="production", description="Release track")

    model_config = {"frozen": True}


class SyncSection(BaseModel):
    """Sync behaviour."""

    registry_path: str | None = Field(
        default=None, description="Path of the registered apps JSON file"
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Read timeout for store API requests in seconds",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="text or json")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    app_store: AppStoreSection = Field(default_factory=AppStoreSection)
    google_play: GooglePlaySection = Field(default_factory=GooglePlaySection)
    sync: SyncSection = Field(default_factory=SyncSection)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    def fallbacks(self) -> dict[str, Any]:
        """Flatten the credential and sync sections into ``load_config`` fallbacks.

        ``None`` values are dropped so they never mask an env var.
        """
        merged: dict[str, Any] = {}
        for section in (self.app_store, self.google_play, self.sync):
            merged.update(
                {k: v for k, v in section.model_dump().items() if v is not None}
            )
        return merged


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> runtime Config dataclass
# ---------------------------------------------------------------------------


def to_runtime_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the runtime ``Config`` dataclass.

    Precedence: CLI override > unified config value > default.  Environment
    variables are not consulted here; use ``load_config`` for the full
    resolution order.

    Credentials whose required values are incomplete are left as ``None``
    so that ``Config.require`` reports them as missing.
    """
    # Import here to avoid circular imports (config.py imports config_schema)
    from .config import (
        DEFAULT_REGISTRY_PATH,
        AppStoreCredentials,
        Config,
        GooglePlayCredentials,
        read_secret_file,
    )

    overrides = cli_overrides or {}
    store = unified.app_store
    play = unified.google_play

    private_key = overrides.get("private_key") or store.private_key
    if not private_key and store.private_key_path:
        private_key = read_secret_file(store.private_key_path, "App Store private key")

    app_store = None
    if store.issuer_id and store.key_id and private_key:
        app_store = AppStoreCredentials(
            issuer_id=store.issuer_id,
            key_id=store.key_id,
            private_key=private_key,
        )

    account_json = overrides.get("service_account_json") or play.service_account_json
    if not account_json and play.service_account_path:
        account_json = read_secret_file(
            play.service_account_path, "Google Play service account"
        )

    return Config(
        app_store=app_store,
        google_play=(
            GooglePlayCredentials(service_account_json=account_json)
            if account_json
            else None
        ),
        registry_path=overrides.get("registry_path")
        or unified.sync.registry_path
        or DEFAULT_REGISTRY_PATH,
        request_timeout=unified.sync.request_timeout,
        google_play_track=play.track,
        debug=overrides.get("debug", False) or unified.sync.debug,
    )
