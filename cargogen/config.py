"""Configuration paths and defaults for cargogen."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CARGOGEN_HOME", str(Path.home() / ".cargogen"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_OUTPUT_DIR = "cargo-manifests"
WORKSPACE_MANIFEST = "Cargo.toml"
