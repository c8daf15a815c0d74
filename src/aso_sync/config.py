"""Runtime configuration for aso_sync.

Reads store credentials and sync settings from explicit arguments,
environment variables, .env files and YAML config file fallbacks.

Precedence (highest to lowest):
    Explicit args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    ASO_APP_STORE_ISSUER_ID: App Store Connect API key issuer id
    ASO_APP_STORE_KEY_ID: App Store Connect API key id
    ASO_APP_STORE_PRIVATE_KEY: PEM encoded .p8 key (``\\n`` escapes allowed)
    ASO_APP_STORE_PRIVATE_KEY_PATH: Path to the .p8 key file
    ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_JSON: Service account JSON document
    ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_PATH: Path to the service account file
    ASO_GOOGLE_PLAY_TRACK: Release track (optional, default: production)
    ASO_REGISTRY_PATH: Registered apps JSON file
    ASO_REQUEST_TIMEOUT: API read timeout in seconds (optional, default: 60)
    ASO_DEBUG: Enable debug logging (optional, default: false)

Credentials for a platform are optional until that platform is used;
``Config.require`` raises ``ConfigurationMissing`` then.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationMissing
from .sync.models import Platform

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = "~/.config/aso_sync/registered-apps.json"


@dataclass
class AppStoreCredentials:
    issuer_id: str
    key_id: str
    private_key: str


@dataclass
class GooglePlayCredentials:
    service_account_json: str

    @property
    def service_account(self) -> dict[str, Any]:
        """Parsed service account document.

        Raises:
            ConfigurationMissing: If the JSON is malformed or lacks the
                ``client_email``/``private_key`` entries.
        """
        try:
            account = json.loads(self.service_account_json)
        except ValueError as exc:
            raise ConfigurationMissing(
                f"Google Play service account JSON is invalid: {exc}"
            ) from exc
        if not isinstance(account, dict):
            raise ConfigurationMissing(
                "Google Play service account JSON must be an object"
            )
        missing = [k for k in ("client_email", "private_key") if not account.get(k)]
        if missing:
            raise ConfigurationMissing(
                "Google Play service account JSON is missing: " + ", ".join(missing)
            )
        return account


@dataclass
class Config:
    app_store: AppStoreCredentials | None = None
    google_play: GooglePlayCredentials | None = None
    registry_path: str = DEFAULT_REGISTRY_PATH
    request_timeout: float = 60.0
    google_play_track: str = "production"
    debug: bool = False

    def require(self, platform: Platform) -> AppStoreCredentials | GooglePlayCredentials:
        """Return the credentials for *platform* or raise ``ConfigurationMissing``."""
        if platform is Platform.APP_STORE:
            if self.app_store is None:
                raise ConfigurationMissing(
                    "App Store credentials not configured. Set "
                    "ASO_APP_STORE_ISSUER_ID, ASO_APP_STORE_KEY_ID and "
                    "ASO_APP_STORE_PRIVATE_KEY (or ASO_APP_STORE_PRIVATE_KEY_PATH)."
                )
            return self.app_store
        if self.google_play is None:
            raise ConfigurationMissing(
                "Google Play credentials not configured. Set "
                "ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_JSON or "
                "ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_PATH."
            )
        return self.google_play

    @property
    def configured_platforms(self) -> list[Platform]:
        platforms = []
        if self.app_store is not None:
            platforms.append(Platform.APP_STORE)
        if self.google_play is not None:
            platforms.append(Platform.GOOGLE_PLAY)
        return platforms


def read_secret_file(path: str, label: str) -> str:
    """Read a key or credentials file.

    Raises:
        ConfigurationMissing: If the file cannot be read.
    """
    resolved = Path(path).expanduser()
    try:
        return resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationMissing(f"{label} file not readable: {resolved} ({exc})") from exc


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    issuer_id: str | None = None,
    key_id: str | None = None,
    private_key: str | None = None,
    service_account_json: str | None = None,
    registry_path: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        explicit arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        issuer_id: Override App Store issuer id.
        key_id: Override App Store key id.
        private_key: Override App Store private key (PEM text).
        service_account_json: Override Google Play service account JSON.
        registry_path: Override registered apps file path.
        debug: Enable debug logging.
        yaml_fallbacks: Flat dict from ``UnifiedConfig.fallbacks()``.

    Returns:
        Config instance.  Platforms with incomplete credentials are left
        unconfigured.

    Raises:
        ConfigurationMissing: If a configured key file cannot be read or
            a numeric setting is out of range.
    """
    fb = yaml_fallbacks or {}

    # --- App Store: arg > env > YAML ---

    final_issuer = issuer_id or os.getenv("ASO_APP_STORE_ISSUER_ID") or fb.get("issuer_id")
    final_key_id = key_id or os.getenv("ASO_APP_STORE_KEY_ID") or fb.get("key_id")
    final_key = private_key or os.getenv("ASO_APP_STORE_PRIVATE_KEY") or fb.get("private_key")
    if not final_key:
        key_path = os.getenv("ASO_APP_STORE_PRIVATE_KEY_PATH") or fb.get("private_key_path")
        if key_path:
            final_key = read_secret_file(key_path, "App Store private key")

    app_store = None
    if final_issuer and final_key_id and final_key:
        app_store = AppStoreCredentials(
            issuer_id=final_issuer.strip(),
            key_id=final_key_id.strip(),
            private_key=final_key,
        )
    elif final_issuer or final_key_id or final_key:
        logger.warning(
            "App Store credentials incomplete; issuer id, key id and private key "
            "are all required"
        )

    # --- Google Play: arg > env > YAML ---

    final_account = (
        service_account_json
        or os.getenv("ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_JSON")
        or fb.get("service_account_json")
    )
    if not final_account:
        account_path = os.getenv("ASO_GOOGLE_PLAY_SERVICE_ACCOUNT_PATH") or fb.get(
            "service_account_path"
        )
        if account_path:
            final_account = read_secret_file(account_path, "Google Play service account")

    google_play = (
        GooglePlayCredentials(service_account_json=final_account) if final_account else None
    )
    track = os.getenv("ASO_GOOGLE_PLAY_TRACK") or fb.get("track") or "production"

    # --- Sync settings ---

    final_registry = (
        registry_path
        or os.getenv("ASO_REGISTRY_PATH")
        or fb.get("registry_path")
        or DEFAULT_REGISTRY_PATH
    )

    timeout_raw = os.getenv("ASO_REQUEST_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = float(timeout_raw)
        except ValueError:
            raise ConfigurationMissing(
                f"Invalid ASO_REQUEST_TIMEOUT '{timeout_raw}': must be a number of seconds"
            ) from None
        if not (0 < final_timeout <= 600):
            raise ConfigurationMissing(
                f"Invalid ASO_REQUEST_TIMEOUT '{timeout_raw}': must be between 0 and 600"
            )
    elif "request_timeout" in fb:
        final_timeout = float(fb["request_timeout"])
    else:
        final_timeout = 60.0

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("ASO_DEBUG")
        final_debug = env_debug if env_debug is not None else bool(fb.get("debug", False))

    return Config(
        app_store=app_store,
        google_play=google_play,
        registry_path=final_registry,
        request_timeout=final_timeout,
        google_play_track=track,
        debug=final_debug,
    )


def load_runtime_config(
    overrides: dict[str, Any] | None = None,
    configure_logging: bool = False,
) -> Config:
    """Load .env, the YAML config hierarchy and the environment into a ``Config``.

    Args:
        overrides: Keyword arguments forwarded to ``load_config``.
        configure_logging: Also call ``setup_logging`` with the YAML
            ``logging`` section and the resolved debug flag.
    """
    from .config_loader import discover_config_files, load_hierarchical_config
    from .config_schema import UnifiedConfig, build_config
    from .logger import setup_logging

    # .env first so ${VAR} interpolation in YAML can see its values
    load_dotenv()

    unified = UnifiedConfig()
    yaml_fallbacks: dict[str, Any] | None = None
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = unified.fallbacks()

    config = load_config(**(overrides or {}), yaml_fallbacks=yaml_fallbacks)

    if configure_logging:
        setup_logging(
            debug=config.debug,
            log_file=unified.logging.file,
            debug_format=unified.logging.format,
            level=unified.logging.level,
        )
    if config_files:
        logger.debug("Using config file: %s", config_files[0])
    return config
