# reviewsync Configuration Loader
# Locates the YAML config file and turns it into a validated ReviewSyncConfig

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from reviewsync.config.defaults import DEFAULT_CONFIG, generate_default_config, get_default_config
from reviewsync.config.schema import ReviewSyncConfig

CONFIG_ENV = "REVIEWSYNC_CONFIG"

# Sections whose keys are merged over the defaults one by one
_MERGED_SECTIONS = ("remote", "polling", "view", "output")

# Values that replace the defaults as a whole (null keeps the default)
_REPLACED_KEYS = ("scope", "linked", "state_file")


class ConfigError(Exception):
    """A configuration file exists but cannot be used."""

    def __init__(self, path: Path, problems: list[str]):
        self.path = path
        self.problems = problems
        super().__init__(f"Invalid configuration: {path}")


def get_config_path() -> Path:
    """Get the configuration file path (REVIEWSYNC_CONFIG overrides the default)."""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "reviewsync" / "config.yaml"


def write_default_config(config_path: Optional[Path] = None, *, overwrite: bool = False) -> tuple[Path, bool]:
    """
    Write the commented default configuration.

    Args:
        config_path: Target file. Uses the default path if not provided.
        overwrite: Replace an existing file.

    Returns:
        Tuple of (config_path, written).
    """
    path = config_path or get_config_path()
    if path.exists() and not overwrite:
        return path, False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_default_config(), encoding="utf-8")
    return path, True


def load_config(config_path: Optional[Path] = None) -> ReviewSyncConfig:
    """
    Load the configuration, filling in defaults for anything not set.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML or fails validation.
    """
    path = config_path or get_config_path()
    data = _read(path)
    try:
        return ReviewSyncConfig.model_validate(_merge_with_defaults(data))
    except ValidationError as e:
        raise ConfigError(path, _format_validation_errors(e)) from e


def validate_config_file(config_path: Optional[Path] = None) -> list[str]:
    """
    Check a configuration file for everything that would stop a sync.

    Beyond schema errors this reports settings that validate but cannot work:
    placeholder table IDs from `config init`, an empty scope and linked
    fields configured twice.

    Returns:
        Problems found; an empty list means the file is usable.
    """
    path = config_path or get_config_path()
    try:
        config = load_config(path)
    except FileNotFoundError:
        return [f"Configuration file not found: {path}"]
    except ConfigError as e:
        return e.problems

    problems: list[str] = []
    for key in ("base_id", "table_id"):
        if getattr(config.remote, key) == DEFAULT_CONFIG["remote"][key]:
            problems.append(f"remote -> {key}: still the placeholder written by 'config init'")

    if not config.scope:
        problems.append("scope: no rules defined (every record would be in the working set)")

    seen: set[str] = set()
    for linked in config.linked:
        if linked.field in seen:
            problems.append(f"linked: field '{linked.field}' is configured more than once")
        seen.add(linked.field)

    return problems


def _read(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}\nRun 'reviewsync config init' to create one.")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(path, [f"Invalid YAML syntax: {e}"]) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, ["Configuration must be a mapping"])
    return data


def _merge_with_defaults(data: dict[str, Any]) -> dict[str, Any]:
    result = get_default_config()

    for section in _MERGED_SECTIONS:
        if isinstance(data.get(section), dict):
            result[section] = {**result[section], **data[section]}

    for key in _REPLACED_KEYS:
        if data.get(key) is not None:
            result[key] = data[key]

    return result


def _format_validation_errors(error: ValidationError) -> list[str]:
    return [" -> ".join(str(part) for part in e["loc"]) + f": {e['msg']}" for e in error.errors()]
