"""Tests for aso_sync.config_loader: hierarchical config loading."""

import logging

import pytest

from aso_sync.config_loader import (
    _interpolate_recursive,
    discover_config_files,
    interpolate_env_vars,
    load_hierarchical_config,
)

# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("MY_ISSUER", "issuer-1")
        assert interpolate_env_vars("${MY_ISSUER}") == "issuer-1"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-production}") == "production"

    def test_empty_env_var_uses_default(self, monkeypatch):
        monkeypatch.setenv("EMPTY_VAR", "")
        assert interpolate_env_vars("${EMPTY_VAR:-fallback}") == "fallback"

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("${NO_CLOSE") == "${NO_CLOSE"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("KEY_PATH", "/keys/AuthKey.p8")
        data = {
            "app_store": {"private_key_path": "${KEY_PATH}", "retries": 2},
            "tracks": ["${UNSET_TRACK_XYZ:-beta}", 7],
        }
        assert _interpolate_recursive(data) == {
            "app_store": {"private_key_path": "/keys/AuthKey.p8", "retries": 2},
            "tracks": ["beta", 7],
        }


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Empty CWD and HOME under tmp_path."""
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return tmp_path


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestDiscoverConfigFiles:
    def test_empty_filesystem_returns_empty(self, isolated):
        assert discover_config_files() == []

    def test_env_var_takes_highest_precedence(self, isolated, monkeypatch):
        explicit = _write(isolated / "custom.yml", "sync: {}\n")
        project = _write(isolated / ".aso_sync" / "config.yml", "sync: {}\n")
        monkeypatch.setenv("ASO_SYNC_CONFIG", str(explicit))

        assert discover_config_files() == [explicit.resolve(), project]

    def test_project_before_global(self, isolated):
        project = _write(isolated / ".aso_sync" / "config.yml", "a: 1\n")
        global_cfg = _write(
            isolated / "home" / ".config" / "aso_sync" / "config.yml", "a: 2\n"
        )

        assert discover_config_files() == [project, global_cfg]

    def test_missing_explicit_file_warns(self, isolated, monkeypatch, caplog):
        monkeypatch.setenv("ASO_SYNC_CONFIG", str(isolated / "nope.yml"))

        with caplog.at_level(logging.WARNING, logger="aso_sync.config_loader"):
            assert discover_config_files() == []
        assert "missing file" in caplog.text


class TestLoadHierarchicalConfig:
    def test_zero_config_returns_empty_dict(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_overrides_global_at_section_level(self, isolated):
        _write(
            isolated / "home" / ".config" / "aso_sync" / "config.yml",
            "google_play:\n  track: beta\nsync:\n  debug: true\n",
        )
        _write(
            isolated / ".aso_sync" / "config.yml",
            "google_play:\n  service_account_path: /sa.json\n",
        )

        result = load_hierarchical_config()

        # Whole section replaced, not deep-merged.
        assert result["google_play"] == {"service_account_path": "/sa.json"}
        assert result["sync"] == {"debug": True}

    def test_env_var_interpolation_after_merge(self, isolated, monkeypatch):
        monkeypatch.setenv("PLAY_TRACK", "internal")
        _write(isolated / ".aso_sync" / "config.yml", "google_play:\n  track: ${PLAY_TRACK}\n")

        assert load_hierarchical_config() == {"google_play": {"track": "internal"}}

    def test_non_dict_root_skipped(self, isolated):
        _write(isolated / ".aso_sync" / "config.yml", "- just\n- a list\n")

        assert load_hierarchical_config() == {}
