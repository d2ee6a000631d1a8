"""
Configuration file discovery, loading and saving for gitsync.

Provides convention-based config path resolution, env var interpolation
helpers, and round-trip persistence so that ignore rules added during an
interactive sync survive to the next run.

Usage:
    from gitsync.config_loader import load_config, save_config

    config, path = load_config()
    ...
    save_config(config, path)
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gitsync.config_schema import Config
from gitsync.errors import ConfigError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yml", ".yaml")

# ---------------------------------------------------------------------------
# 1. Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` patterns with env values.

    * ``${VAR}`` is replaced with ``os.environ.get(VAR, "")``.
    * ``${VAR:-default}`` uses *default* when VAR is unset or empty.
    * Literal ``${`` with no closing ``}`` is left untouched.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        default = match.group(2)  # None when no :- clause
        env_val = os.environ.get(var_name)
        if env_val is not None and env_val != "":
            return env_val
        if default is not None:
            return default
        return ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


# ---------------------------------------------------------------------------
# 2. Convention-based path resolution
# ---------------------------------------------------------------------------


def default_config_path() -> Path:
    """Return the default config location.

    ``$XDG_CONFIG_HOME/gitsync/config.json`` when ``XDG_CONFIG_HOME`` is
    set, ``~/.config/gitsync/config.json`` otherwise.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "gitsync" / "config.json"
    return Path.home() / ".config" / "gitsync" / "config.json"


def resolve_config_path(explicit: str | None = None) -> Path:
    """Return the config file path that should be used.

    Precedence (highest first):
        1. *explicit* (the ``-c`` CLI option).
        2. ``GITSYNC_CONFIG`` env var.
        3. ``default_config_path()``.

    Raises:
        ConfigError: If no path was given and the default file is missing.
    """
    if explicit:
        return Path(explicit).expanduser()

    env_path = os.environ.get("GITSYNC_CONFIG")
    if env_path:
        return Path(env_path).expanduser()

    path = default_config_path()
    if not path.exists():
        raise ConfigError(
            f"'-c' was not provided and there was no default config file "
            f"located at: {path}"
        )
    return path


# ---------------------------------------------------------------------------
# 3. Load / save
# ---------------------------------------------------------------------------


def _read_raw(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fh:
        if path.suffix in _YAML_SUFFIXES:
            return yaml.safe_load(fh)
        return json.load(fh)


def load_config(path: str | Path | None = None) -> tuple[Config, Path]:
    """Read and validate the configuration file.

    Args:
        path: Explicit config path; resolved with ``resolve_config_path()``
            when omitted.

    Returns:
        ``(config, path)`` so the caller can save back to the same file.

    Raises:
        ConfigError: If the file cannot be read, parsed, or validated.
    """
    config_path = resolve_config_path(str(path) if path else None)
    logger.debug("Loading config: %s", config_path)

    try:
        raw = _read_raw(config_path)
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(
            f"failed to parse config file {config_path}: {exc}"
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigError(
            f"config file {config_path} has non-object root "
            f"({type(raw).__name__})"
        )

    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"config validation failed: {exc}") from exc

    return config, config_path


def dump_config(config: Config) -> dict[str, Any]:
    """Return the JSON-ready representation of *config*."""
    return config.model_dump(mode="json", by_alias=True, exclude_none=True)


def save_config(config: Config, path: Path) -> None:
    """Persist *config* to *path* atomically.

    Writes to a temporary file in the same directory, then replaces the
    target, so a crash never leaves a half-written config behind.  The
    format (JSON or YAML) follows the file suffix.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = dump_config(config)
    try:
        _write_atomic(path, data)
    except OSError as exc:
        raise ConfigError(f"failed to save config to {path}: {exc}") from exc
    logger.debug("Saved config: %s", path)


def _write_atomic(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            if path.suffix in _YAML_SUFFIXES:
                yaml.safe_dump(data, fh, sort_keys=False, allow_unicode=True)
            else:
                json.dump(data, fh, indent=2)
                fh.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
