"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for better_airtable:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.better-airtable/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- a single :class:`~better_airtable.models.GlobalConfig`
  JSON file storing defaults (output format, cache switches, default
  profile).
* **Profiles** -- one JSON file per table connection, each deserialised
  into a :class:`~better_airtable.models.Profile`.
* **Precedence resolution** -- :func:`resolve_profile` picks the active
  profile from CLI flag, environment, project-local file and global config.
* **Credential resolution** -- :func:`resolve_credential` reads the API key
  from an env var, a file, or an interactive prompt.

All file writes go through :func:`atomic_write` (temp file then rename), and
the response cache uses the same helper for its entry files.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from better_airtable.exceptions import ConfigurationError
from better_airtable.models import ClientConfig, GlobalConfig, Profile

_APP_NAME = "better-airtable"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "better-airtable.json"
PROFILE_ENV_VAR = "BETTER_AIRTABLE_PROFILE"
_PROFILE_NAME_RE = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from *env_var*, else ``$HOME/<segments>``."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def _ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/better-airtable/`` (default
    ``~/.config/better-airtable/``). Elsewhere: ``~/.better-airtable/``.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME)
    return _ensure(_fallback_base_dir())


def get_cache_dir() -> Path:
    """Return the root under which per-profile caches are kept.

    On Linux/BSD: ``$XDG_CACHE_HOME/better-airtable/`` (default
    ``~/.cache/better-airtable/``). Elsewhere: ``~/.better-airtable/cache/``.
    Everything below it can be deleted at any time.
    """
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME)
    return _ensure(_fallback_base_dir() / "cache")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary."""
    if _is_xdg_platform():
        return _ensure(_xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME)
    return _ensure(_fallback_base_dir() / "logs")


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    return _ensure(get_config_dir() / "profiles")


# --- Atomic file writes ---


def atomic_write(path: Union[str, Path], data: Union[str, bytes]) -> None:
    """Write *data* to *path* atomically using a sibling temp file + rename.

    The parent directory is created first. On any failure the temp file is
    removed and the original exception propagates (``OSError`` for I/O
    problems), leaving any previous content of *path* untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    binary = isinstance(data, bytes)
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb" if binary else "w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding=None if binary else "utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load ``config.json``; a missing file yields the defaults.

    Raises:
        ConfigurationError: If the file holds invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    atomic_write(_global_config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    if not _PROFILE_NAME_RE.fullmatch(name):
        raise ConfigurationError(
            f"Invalid profile name '{name}': use letters, digits, '.', '_' or '-' "
            "and do not start with '.'"
        )
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return the names of all saved profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load and validate ``profiles/<name>.json``.

    Raises:
        ConfigurationError: If the profile is missing, not JSON, or invalid.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigurationError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    atomic_write(_profile_path(profile.name), json.dumps(profile.model_dump(mode="json"), indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a saved profile.

    Raises:
        ConfigurationError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigurationError(f"Profile '{name}' not found at {path}")
    path.unlink()


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./better-airtable.json`` if present (used to pin a default profile)."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid project config at {path}: expected an object")
    return data


# --- Precedence resolution ---


def resolve_profile_name(cli_profile: Optional[str] = None) -> Optional[str]:
    """Pick the active profile name.

    Precedence (high to low):
        1. ``--profile`` flag
        2. ``BETTER_AIRTABLE_PROFILE`` environment variable
        3. ``default_profile`` in ``./better-airtable.json``
        4. ``default_profile`` in the global config
        5. the only saved profile, when exactly one exists
    """
    if cli_profile:
        return cli_profile
    env_profile = os.environ.get(PROFILE_ENV_VAR)
    if env_profile:
        return env_profile
    project = load_project_config()
    if project is not None and project.get("default_profile"):
        return project["default_profile"]
    global_cfg = load_global_config()
    if global_cfg.default_profile:
        return global_cfg.default_profile
    profiles = list_profiles()
    if len(profiles) == 1:
        return profiles[0]
    return None


def resolve_profile(cli_profile: Optional[str] = None) -> Profile:
    """Load the active profile.

    Raises:
        ConfigurationError: If no profile can be selected or it cannot be loaded.
    """
    name = resolve_profile_name(cli_profile)
    if name is None:
        raise ConfigurationError(
            "No profile selected. Create one with 'better-airtable profile add' "
            f"or set {PROFILE_ENV_VAR}."
        )
    return load_profile(name)


def profile_to_client_config(
    profile: Profile,
    global_config: Optional[GlobalConfig] = None,
    use_cache: bool = True,
) -> ClientConfig:
    """Turn a saved profile into the settings for an ``AirtableClient``.

    The API key is resolved from ``profile.api_key_source``. When the
    profile sets no cache directories and caching is enabled globally, the
    caches live under ``<cache_dir>/<profile>/`` and
    ``<cache_dir>/<profile>/files/``. ``use_cache=False`` disables both.

    Raises:
        ConfigurationError: If the credential cannot be resolved or a
            required value is empty.
    """
    global_config = global_config or load_global_config()
    api_key = resolve_credential(profile.api_key_source)

    cache_dir = profile.cache_dir
    file_cache_dir = profile.file_cache_dir
    if use_cache:
        default_root = get_cache_dir() / profile.name
        if cache_dir is None and global_config.cache.enabled:
            cache_dir = str(default_root)
        if file_cache_dir is None and global_config.cache.attachments:
            file_cache_dir = str(default_root / "files")
    else:
        cache_dir = None
        file_cache_dir = None

    try:
        return ClientConfig(
            api_key=api_key,
            base_id=profile.base_id,
            table_name=profile.table_name,
            cache_dir=cache_dir,
            file_cache_dir=file_cache_dir,
            timeout=profile.timeout,
            base_url=profile.base_url,
        )
    except ValidationError as exc:
        raise ConfigurationError(describe_validation_error(exc)) from exc


def describe_validation_error(exc: ValidationError) -> str:
    """Return the first validation problem as a short sentence."""
    first = exc.errors()[0]
    message = str(first.get("msg", exc))
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix):]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {message}" if location else message


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads the file, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigurationError: If the source cannot be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigurationError(
                "Cannot prompt for the API key: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Airtable API key: ")

    raise ConfigurationError(f"Unknown credential source format: {source}")
