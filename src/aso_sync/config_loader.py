"""
Hierarchical configuration loader for aso_sync.

Config file discovery, ``${VAR}`` interpolation and a shallow merge where
the project file wins over the global one.

Usage:
    from aso_sync.config_loader import load_hierarchical_config

    config = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".aso_sync"

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` becomes ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) if match.group(2) is not None else ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``ASO_SYNC_CONFIG`` env var (explicit single path)
        2. ``.aso_sync/config.yml`` in CWD (project-level)
        3. ``~/.config/aso_sync/config.yml`` (global)
    """
    candidates: list[Path] = []

    env_path = os.environ.get("ASO_SYNC_CONFIG")
    if env_path:
        explicit = Path(env_path).expanduser().resolve()
        if not explicit.exists():
            logger.warning("ASO_SYNC_CONFIG points to missing file %s", explicit)
        candidates.append(explicit)

    candidates.append(Path.cwd() / CONFIG_DIR_NAME / "config.yml")
    candidates.append(Path.home() / ".config" / "aso_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


def _load_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are loaded from lowest precedence to highest; each file's
    top-level keys replace (not deep-merge) those from earlier files.
    Env var interpolation is applied after merging.

    Returns an empty dict when no config files exist (zero-config).
    """
    paths = discover_config_files()

    if not paths:
        logger.debug("No config files found, using zero-config defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
