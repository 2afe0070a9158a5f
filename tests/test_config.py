"""Tests for the TOML configuration manager."""

from pathlib import Path

import pytest
import toml

from cargogen import config_manager
from cargogen.errors import ConfigError


def test_defaults_without_file(isolated_config: Path):
    assert not isolated_config.exists()
    settings = config_manager.load_generator_config()
    assert settings == config_manager.DEFAULT_GENERATOR_CONFIG


def test_generator_section_overrides_defaults(isolated_config: Path, make_file):
    make_file(isolated_config, '[generator]\ndefault_edition = "2018"\njobs = 4\nunknown = 1\n')

    settings = config_manager.load_generator_config()

    assert settings["default_edition"] == "2018"
    assert settings["jobs"] == 4
    assert settings["default_version"] == "0.0.0"
    assert "unknown" not in settings


def test_malformed_config(isolated_config: Path, make_file):
    make_file(isolated_config, "[generator\n")
    with pytest.raises(ConfigError):
        config_manager.load_generator_config()


def test_bad_jobs_value(isolated_config: Path, make_file):
    make_file(isolated_config, '[generator]\njobs = "many"\n')
    with pytest.raises(ConfigError):
        config_manager.load_generator_config()


def test_save_preserves_other_sections(isolated_config: Path, make_file):
    make_file(isolated_config, '[other]\nkeep = true\n')

    config_manager.save_generator_config(default_version="1.0.0")

    data = toml.load(str(isolated_config))
    assert data["other"] == {"keep": True}
    assert data["generator"] == {"default_version": "1.0.0"}
    assert config_manager.load_generator_config()["default_version"] == "1.0.0"


def test_save_rejects_unknown_keys():
    with pytest.raises(ConfigError):
        config_manager.save_generator_config(colour="blue")
