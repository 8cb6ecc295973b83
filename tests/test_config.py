"""Tests for better_airtable.config: XDG paths, atomic writes, profiles, precedence."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest

from better_airtable.config import (
    atomic_write,
    delete_profile,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    get_profiles_dir,
    list_profiles,
    load_global_config,
    load_profile,
    load_project_config,
    profile_exists,
    profile_to_client_config,
    resolve_credential,
    resolve_profile,
    resolve_profile_name,
    save_global_config,
    save_profile,
)
from better_airtable.exceptions import ConfigurationError
from better_airtable.models import CacheConfig, GlobalConfig, Profile


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _make_profile(name: str = "tasks", **kwargs: Any) -> Profile:
    kwargs.setdefault("base_id", "appTEST")
    kwargs.setdefault("table_name", "Tasks")
    return Profile(name=name, **kwargs)


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "better-airtable"
        assert get_config_dir().is_dir()

    def test_cache_dir(self, isolated_config: Path) -> None:
        assert get_cache_dir() == isolated_config / "cache" / "better-airtable"

    def test_data_dir(self, isolated_config: Path) -> None:
        assert get_data_dir() == isolated_config / "data" / "better-airtable"

    def test_profiles_dir(self, isolated_config: Path) -> None:
        assert get_profiles_dir() == get_config_dir() / "profiles"

    def test_xdg_default_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("better_airtable.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_config_dir() == tmp_path / ".config" / "better-airtable"

    def test_non_xdg_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("better_airtable.config._is_xdg_platform", lambda: False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_config_dir() == tmp_path / ".better-airtable"
        assert get_cache_dir() == tmp_path / ".better-airtable" / "cache"
        assert get_data_dir() == tmp_path / ".better-airtable" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_text(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b.json"
        atomic_write(target, '{"x": 1}')
        assert target.read_text() == '{"x": 1}'

    def test_bytes(self, tmp_path: Path) -> None:
        target = tmp_path / "img.png"
        atomic_write(str(target), b"\x89PNG")
        assert target.read_bytes() == b"\x89PNG"

    def test_replaces_and_leaves_no_temp_files(self, tmp_path: Path) -> None:
        target = tmp_path / "f.txt"
        atomic_write(target, "old")
        atomic_write(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]

    def test_failure_keeps_original(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = tmp_path / "f.txt"
        target.write_text("original")

        def fail(*args: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("better_airtable.config.os.replace", fail)
        with pytest.raises(OSError, match="disk full"):
            atomic_write(target, "new")
        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]


# ---------------------------------------------------------------------------
# Global config and profiles
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_missing_file_gives_defaults(self, isolated_config: Path) -> None:
        assert load_global_config() == GlobalConfig()

    def test_roundtrip(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(default_profile="tasks", cache=CacheConfig(enabled=False)))
        loaded = load_global_config()
        assert loaded.default_profile == "tasks"
        assert loaded.cache.enabled is False

    def test_invalid_json(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{nope")
        with pytest.raises(ConfigurationError, match="Invalid global config"):
            load_global_config()

    def test_invalid_shape(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"cache": {"enabled": "sometimes"}})
        with pytest.raises(ConfigurationError):
            load_global_config()


class TestProfiles:
    def test_save_load_list(self, isolated_config: Path) -> None:
        save_profile(_make_profile("b"))
        save_profile(_make_profile("a", cache_dir="/tmp/x"))
        assert list_profiles() == ["a", "b"]
        assert profile_exists("a")
        assert load_profile("a").cache_dir == "/tmp/x"

    def test_missing_profile(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError, match="Profile 'nope' not found"):
            load_profile("nope")

    def test_invalid_profile(self, isolated_config: Path) -> None:
        _write_json(get_profiles_dir() / "bad.json", {"name": "bad"})
        with pytest.raises(ConfigurationError, match="Invalid profile 'bad'"):
            load_profile("bad")

    @pytest.mark.parametrize("name", ["../x", ".hidden", "a/b", "", "with space", "x\n"])
    def test_invalid_names_rejected(self, isolated_config: Path, name: str) -> None:
        with pytest.raises(ConfigurationError, match="Invalid profile name"):
            save_profile(_make_profile(name))
        with pytest.raises(ConfigurationError, match="Invalid profile name"):
            load_profile(name)
        assert list(isolated_config.rglob("*.json")) == []

    def test_dotted_names_allowed(self, isolated_config: Path) -> None:
        save_profile(_make_profile("team.tasks-2_b"))
        assert list_profiles() == ["team.tasks-2_b"]

    def test_delete(self, isolated_config: Path) -> None:
        save_profile(_make_profile())
        delete_profile("tasks")
        assert not profile_exists("tasks")
        with pytest.raises(ConfigurationError):
            delete_profile("tasks")


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestProfilePrecedence:
    @pytest.fixture(autouse=True)
    def _profiles(self, isolated_config: Path) -> None:
        for name in ("cli", "env", "project", "global"):
            save_profile(_make_profile(name))
        save_global_config(GlobalConfig(default_profile="global"))
        _write_json(isolated_config / "better-airtable.json", {"default_profile": "project"})

    def test_cli_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BETTER_AIRTABLE_PROFILE", "env")
        assert resolve_profile_name("cli") == "cli"

    def test_env_over_project(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BETTER_AIRTABLE_PROFILE", "env")
        assert resolve_profile_name() == "env"

    def test_project_over_global(self) -> None:
        assert resolve_profile_name() == "project"

    def test_global_default(self, isolated_config: Path) -> None:
        (isolated_config / "better-airtable.json").unlink()
        assert resolve_profile_name() == "global"
        assert resolve_profile().name == "global"


class TestProfileFallbacks:
    def test_single_profile(self, isolated_config: Path) -> None:
        save_profile(_make_profile("only"))
        assert resolve_profile_name() == "only"

    def test_nothing_selected(self, isolated_config: Path) -> None:
        save_profile(_make_profile("a"))
        save_profile(_make_profile("b"))
        assert resolve_profile_name() is None
        with pytest.raises(ConfigurationError, match="No profile selected"):
            resolve_profile()

    def test_project_config_must_be_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "better-airtable.json", ["x"])
        with pytest.raises(ConfigurationError, match="expected an object"):
            load_project_config()

    def test_no_project_config(self, isolated_config: Path) -> None:
        assert load_project_config() is None


# ---------------------------------------------------------------------------
# Profile -> client settings
# ---------------------------------------------------------------------------


class TestProfileToClientConfig:
    @pytest.fixture(autouse=True)
    def _key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIRTABLE_API_KEY", "keyENV")

    def test_default_cache_locations(self, isolated_config: Path) -> None:
        config = profile_to_client_config(_make_profile(), GlobalConfig())
        root = get_cache_dir() / "tasks"
        assert config.api_key == "keyENV"
        assert config.cache_dir == str(root)
        assert config.file_cache_dir == str(root / "files")

    def test_profile_directories_win(self, isolated_config: Path) -> None:
        profile = _make_profile(cache_dir="./c", file_cache_dir="./c/files", timeout=5)
        config = profile_to_client_config(profile, GlobalConfig())
        assert config.cache_dir == "./c"
        assert config.file_cache_dir == "./c/files"
        assert config.timeout == 5

    def test_global_switches(self, isolated_config: Path) -> None:
        global_config = GlobalConfig(cache=CacheConfig(enabled=False, attachments=False))
        config = profile_to_client_config(_make_profile(), global_config)
        assert config.cache_dir is None
        assert config.file_cache_dir is None

    def test_use_cache_false(self, isolated_config: Path) -> None:
        profile = _make_profile(cache_dir="./c", file_cache_dir="./c/files")
        config = profile_to_client_config(profile, GlobalConfig(), use_cache=False)
        assert config.cache_dir is None
        assert config.file_cache_dir is None

    def test_empty_key(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIRTABLE_API_KEY", "")
        with pytest.raises(ConfigurationError, match="API key cannot be empty"):
            profile_to_client_config(_make_profile(), GlobalConfig())


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_KEY", "secret")
        assert resolve_credential("env:MY_KEY") == "secret"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="MY_KEY"):
            resolve_credential("env:MY_KEY")

    def test_file(self, tmp_path: Path) -> None:
        key_file = tmp_path / "key"
        key_file.write_text("secret\n")
        assert resolve_credential(f"file:{key_file}") == "secret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(ConfigurationError, match="not a TTY"):
            resolve_credential("prompt")

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown credential source"):
            resolve_credential("vault:thing")
