"""Configuration manager for cargogen using TOML files."""

from __future__ import annotations

from typing import Any, Dict

import toml

from . import config
from .errors import ConfigError
from .generator import DEFAULT_EDITION, DEFAULT_GENERATOR_NAME, DEFAULT_VERSION

DEFAULT_GENERATOR_CONFIG: Dict[str, Any] = {
    "output_dir": config.DEFAULT_OUTPUT_DIR,
    "generator_name": DEFAULT_GENERATOR_NAME,
    "default_version": DEFAULT_VERSION,
    "default_edition": DEFAULT_EDITION,
    "jobs": 1,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Raises:
        ConfigError: The file exists but is not valid TOML.
    """
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        raise ConfigError(f"Failed to parse {config.CONFIG_FILE}: {exc}") from exc


def load_generator_config() -> Dict[str, Any]:
    """Return the ``[generator]`` section merged over the defaults."""
    section = load_full_config().get("generator", {})
    if not isinstance(section, dict):
        raise ConfigError("[generator] must be a table")
    merged = DEFAULT_GENERATOR_CONFIG.copy()
    merged.update({key: value for key, value in section.items() if key in DEFAULT_GENERATOR_CONFIG})
    try:
        merged["jobs"] = max(1, int(merged["jobs"]))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"generator.jobs must be an integer, got {merged['jobs']!r}") from exc
    for key in ("output_dir", "generator_name", "default_version", "default_edition"):
        merged[key] = str(merged[key])
    return merged


def save_generator_config(**values: Any) -> None:
    """Update the ``[generator]`` section, preserving other sections."""
    unknown = set(values) - set(DEFAULT_GENERATOR_CONFIG)
    if unknown:
        raise ConfigError(f"Unknown generator setting(s): {', '.join(sorted(unknown))}")
    full = load_full_config()
    section = full.setdefault("generator", {})
    section.update(values)
    config.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
        toml.dump(full, f)
