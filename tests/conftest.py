"""Pytest configuration and fixtures for cargogen tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from cargogen.generator import ManifestGenerator

SAMPLE_GRAPH = """\
workspace_root = "."

[[targets]]
label = "//lib1:lib1"
kind = "library"
version = "0.1.0"
edition = "2021"
srcs = ["lib1/src/lib.rs"]
deps = ["@serde//:serde", "//proto:proto_gen"]

[[targets]]
label = "//app:app"
kind = "binary"
version = "1.2.0"
edition = "2018"
srcs = ["app/src/main.rs", "app/src/cli.rs"]
deps = ["//lib1:lib1"]

[[targets]]
label = "//proto:proto_gen"
kind = "genrule"

[[targets]]
label = "@serde//:serde"
kind = "library"
version = "1.0.190"
edition = "2018"
srcs = ["src/lib.rs", "src/de/mod.rs"]
"""


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir: Path, monkeypatch) -> Path:
    """Point the config file at a temporary location for every test."""
    config_file = temp_dir / "home" / "config.toml"
    monkeypatch.setattr("cargogen.config.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """A small source tree with one external repository."""
    root = temp_dir / "ws"
    write_file(root / "lib1" / "src" / "lib.rs", "pub fn hello() {}\n")
    write_file(root / "app" / "src" / "main.rs", "fn main() { lib1::hello() }\n")
    write_file(root / "app" / "src" / "cli.rs", "pub fn parse() {}\n")
    write_file(root / "external" / "serde" / "src" / "lib.rs", "pub mod de;\n")
    write_file(root / "external" / "serde" / "src" / "de" / "mod.rs", "pub trait Deserialize {}\n")
    return root


@pytest.fixture
def sample_graph_file(workspace: Path) -> Path:
    return write_file(workspace / "graph.toml", SAMPLE_GRAPH)


@pytest.fixture
def generator(temp_dir: Path) -> ManifestGenerator:
    return ManifestGenerator(temp_dir / "out")


@pytest.fixture
def make_file():
    """Return a helper that writes a file, creating parent directories."""
    return write_file
